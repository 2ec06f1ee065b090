from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .types import ImageAsset


class ModifierCategory(str, Enum):
    """The three independently editable aspects of a photo."""

    POSE = "pose"
    CLOTHING = "clothing"
    BACKGROUND = "background"


@dataclass(slots=True)
class Submission:
    """Live set of editing inputs as entered by the user.

    Clothing and background may each carry a text description, a reference
    image, or both; the validator decides which one is authoritative. Pose
    is text only.
    """

    source_image: ImageAsset | None = None
    pose: str = ""
    clothing: str = ""
    clothing_image: ImageAsset | None = None
    background: str = ""
    background_image: ImageAsset | None = None
    preserve_body_shape: bool = True

    def snapshot(self) -> "Submission":
        """Return an independent copy; assets are immutable and shared safely."""
        return replace(self)

    def text_for(self, category: ModifierCategory) -> str:
        return {
            ModifierCategory.POSE: self.pose,
            ModifierCategory.CLOTHING: self.clothing,
            ModifierCategory.BACKGROUND: self.background,
        }[category]

    def image_for(self, category: ModifierCategory) -> ImageAsset | None:
        if category is ModifierCategory.CLOTHING:
            return self.clothing_image
        if category is ModifierCategory.BACKGROUND:
            return self.background_image
        return None
