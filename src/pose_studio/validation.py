"""
Admissibility checks for a submission before anything leaves the process.

Rules run in order and the first failing rule wins:

1. a source image must be present;
2. at least one modifier (pose text, clothing text/image, background
   text/image) must be active;
3. when clothing or background has both a description and a reference
   image, the image wins and the description is dropped. This is reported
   as a normalization, never a rejection.

The presentation layer disables a text box once an image is chosen, but
nothing here relies on that.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from .submission import ModifierCategory, Submission

logger = logging.getLogger(__name__)

_IMAGE_CAPABLE = (ModifierCategory.CLOTHING, ModifierCategory.BACKGROUND)


class RejectionReason(str, Enum):
    NO_SOURCE_IMAGE = "no_source_image"
    NO_MODIFIER_SPECIFIED = "no_modifier_specified"

    @property
    def message(self) -> str:
        if self is RejectionReason.NO_SOURCE_IMAGE:
            return "Please upload a source image first."
        return "Please describe what you want to change (pose, clothing, or background)."


@dataclass(frozen=True, slots=True)
class Normalization:
    """A text description ignored because a reference image took precedence."""

    category: ModifierCategory
    dropped_text: str

    @property
    def note(self) -> str:
        return (
            f"Both a {self.category.value} description and a reference image were given; "
            "using the image."
        )


@dataclass(frozen=True, slots=True)
class Accepted:
    submission: Submission
    normalizations: tuple[Normalization, ...] = ()


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: RejectionReason


ValidationResult = Union[Accepted, Rejected]


def has_active_modifier(submission: Submission) -> bool:
    """True when at least one of pose, clothing or background asks for a change."""
    if submission.pose.strip():
        return True
    for category in _IMAGE_CAPABLE:
        if submission.text_for(category).strip() or submission.image_for(category) is not None:
            return True
    return False


def validate(submission: Submission) -> ValidationResult:
    """Gate a submission and return it normalized, or the first rejection reason."""
    if submission.source_image is None:
        logger.info("Submission rejected: no source image")
        return Rejected(RejectionReason.NO_SOURCE_IMAGE)

    if not has_active_modifier(submission):
        logger.info("Submission rejected: no modifier specified")
        return Rejected(RejectionReason.NO_MODIFIER_SPECIFIED)

    normalized = replace(
        submission,
        pose=submission.pose.strip(),
        clothing=submission.clothing.strip(),
        background=submission.background.strip(),
    )
    normalizations: list[Normalization] = []
    for category in _IMAGE_CAPABLE:
        text = normalized.text_for(category)
        if text and normalized.image_for(category) is not None:
            normalizations.append(Normalization(category=category, dropped_text=text))
            normalized = replace(normalized, **{category.value: ""})
            logger.info("Ignoring %s description in favour of the reference image", category.value)

    return Accepted(submission=normalized, normalizations=tuple(normalizations))
