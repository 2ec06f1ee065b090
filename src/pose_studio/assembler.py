from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .codec import to_wire_form
from .submission import Submission
from .types import WireImage

Directive = Union[WireImage, str]


@dataclass(frozen=True, slots=True)
class ModifierDirectives:
    """One directive per modifier category; ``""`` means no change requested."""

    pose: str = ""
    clothing: Directive = ""
    background: Directive = ""


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Frozen payload handed to the generation client.

    Holds decoded copies of every image, so later edits to the submission
    cannot leak into a request that is already in flight.
    """

    source: WireImage
    directives: ModifierDirectives
    preserve_body_shape: bool = True

    def reference_images(self) -> list[WireImage]:
        """Images in transfer order: source, clothing reference, background reference."""
        images = [self.source]
        for directive in (self.directives.clothing, self.directives.background):
            if isinstance(directive, WireImage):
                images.append(directive)
        return images

    def describe(self) -> dict[str, Any]:
        """Summary without image payloads, for logs and metadata sidecars."""

        def _summarize(directive: Directive) -> Any:
            if isinstance(directive, WireImage):
                return {"image": directive.media_type, "bytes": len(directive.data)}
            return directive

        return {
            "source": {"image": self.source.media_type, "bytes": len(self.source.data)},
            "pose": self.directives.pose,
            "clothing": _summarize(self.directives.clothing),
            "background": _summarize(self.directives.background),
            "preserve_body_shape": self.preserve_body_shape,
        }


def assemble(submission: Submission) -> GenerationRequest:
    """
    Build the request for an already validated and normalized submission.

    Reference images take precedence over text for clothing and background.
    Raises ``CodecError`` only if an asset's payload cannot be decoded.
    """
    if submission.source_image is None:
        raise ValueError("assemble() requires a validated submission with a source image")

    clothing: Directive = (
        to_wire_form(submission.clothing_image)
        if submission.clothing_image is not None
        else submission.clothing
    )
    background: Directive = (
        to_wire_form(submission.background_image)
        if submission.background_image is not None
        else submission.background
    )
    return GenerationRequest(
        source=to_wire_form(submission.source_image),
        directives=ModifierDirectives(
            pose=submission.pose or "",
            clothing=clothing,
            background=background,
        ),
        preserve_body_shape=bool(submission.preserve_body_shape),
    )
