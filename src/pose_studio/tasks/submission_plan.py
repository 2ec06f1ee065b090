from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Sequence

from pydantic import BaseModel, Field, RootModel, ValidationError, field_validator

from ..codec import decode_upload, sniff_media_type
from ..submission import Submission
from ..types import ImageAsset


def read_image_file(path: str | Path, kind: str) -> ImageAsset:
    """Read an image from disk and identify its media type from the content."""
    file_path = Path(path)
    if not file_path.is_file():
        raise RuntimeError(f"{kind} file not found: {file_path}")
    raw = file_path.read_bytes()
    return decode_upload(raw, sniff_media_type(raw))


class ModifierFields(BaseModel):
    """Modifier inputs shared by single specs and matrix profiles."""

    pose: str = Field(default="", description="Description of the new pose")
    clothing: str = Field(default="", description="Description of the new clothing")
    clothing_image_path: str | None = Field(
        default=None, description="Reference image of the clothing; wins over the description"
    )
    background: str = Field(default="", description="Description of the new background")
    background_image_path: str | None = Field(
        default=None, description="Reference image of the background; wins over the description"
    )
    preserve_body_shape: bool = Field(default=True)


class SubmissionSpec(ModifierFields):
    """Single edit identified by name."""

    name: str
    source_image_path: str = Field(..., description="Path to the photo being edited")

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not value.strip() or value in {".", ".."} or "/" in value or "\\" in value:
            raise ValueError(f"Submission name must be a plain file name: {value!r}")
        return value

    def resolved(self, base_dir: Path) -> "SubmissionSpec":
        """Return a copy whose relative paths are anchored at ``base_dir``."""
        updates: dict[str, str] = {}
        for key in ("source_image_path", "clothing_image_path", "background_image_path"):
            value = getattr(self, key)
            if value and not Path(value).is_absolute():
                updates[key] = str(base_dir / value)
        return self.model_copy(update=updates)

    def to_submission(self) -> Submission:
        """Read the referenced files and build a submission."""
        return Submission(
            source_image=read_image_file(self.source_image_path, "Source image"),
            pose=self.pose,
            clothing=self.clothing,
            clothing_image=(
                read_image_file(self.clothing_image_path, "Clothing reference")
                if self.clothing_image_path
                else None
            ),
            background=self.background,
            background_image=(
                read_image_file(self.background_image_path, "Background reference")
                if self.background_image_path
                else None
            ),
            preserve_body_shape=self.preserve_body_shape,
        )


class SourceImage(BaseModel):
    """Photo reused across multiple modifier profiles."""

    name: str = Field(..., description="Identifier applied to submission names when combined with a profile")
    image_path: str = Field(..., description="Path to the photo that will be edited")


class ModifierProfile(ModifierFields):
    """Named set of modifiers applied to one or more source photos."""

    name: str


class SubmissionMatrix(BaseModel):
    """
    Matrix-style plan that combines source photos with shared modifier profiles.

    Each profile is applied to every source, producing the cartesian product.
    """

    sources: List[SourceImage]
    profiles: List[ModifierProfile]
    name_pattern: str = Field(
        default="{source}-{profile}",
        description=(
            "Python str.format template used to derive submission names. "
            "Available placeholders: {source}, {profile}, {index}, {index1}."
        ),
    )

    def to_specs(self) -> List[SubmissionSpec]:
        specs: List[SubmissionSpec] = []
        for source in self.sources:
            for profile in self.profiles:
                context = {
                    "source": source.name,
                    "profile": profile.name,
                    "index": len(specs),
                    "index1": len(specs) + 1,
                }
                try:
                    name = self.name_pattern.format(**context)
                except KeyError as exc:
                    raise RuntimeError(
                        f"Invalid name_pattern placeholder '{exc.args[0]}'. "
                        "Supported placeholders: {source}, {profile}, {index}, {index1}."
                    ) from exc

                fields = profile.model_dump(mode="python", exclude={"name"})
                specs.append(
                    SubmissionSpec(name=name, source_image_path=source.image_path, **fields)
                )
        return specs


class SubmissionPlan(RootModel[List[SubmissionSpec]]):
    """Ordered collection of edits loaded from a JSON document."""

    @classmethod
    def from_specs(cls, specs: Sequence[SubmissionSpec]) -> "SubmissionPlan":
        return cls(root=list(specs))

    def names(self) -> Sequence[str]:
        return [spec.name for spec in self.root]

    def __iter__(self) -> Iterable[SubmissionSpec]:
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


def load_submission_plan(path: str | Path) -> SubmissionPlan:
    """Load and validate a plan file; relative image paths are resolved against it."""
    plan_path = Path(path)
    with plan_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if isinstance(data, list):
        try:
            specs = [SubmissionSpec.model_validate(item) for item in data]
        except ValidationError as exc:
            raise RuntimeError(f"Invalid submission plan at {path}") from exc
    elif isinstance(data, dict):
        try:
            specs = SubmissionMatrix.model_validate(data).to_specs()
        except ValidationError as exc:
            raise RuntimeError(f"Invalid matrix submission plan at {path}") from exc
    else:
        raise RuntimeError(
            f"Unsupported submission plan structure at {path}; expected list or matrix-style object."
        )

    names = [spec.name for spec in specs]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise RuntimeError(f"Duplicate submission names in {path}: {', '.join(duplicates)}")

    base_dir = plan_path.parent
    return SubmissionPlan.from_specs([spec.resolved(base_dir) for spec in specs])
