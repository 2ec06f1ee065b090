from __future__ import annotations

import logging
from typing import Callable

from .codec import decode_upload
from .errors import InitialLoadFailure
from .lifecycle import GenerationLifecycleController, LifecycleState, Listener
from .sample import SampleImageLoader
from .submission import Submission
from .validation import has_active_modifier

logger = logging.getLogger(__name__)

SAMPLE_LOAD_NOTICE = "Could not load the sample image. Please upload your own."


class EditingSession:
    """
    Presentation-facing facade over one submission and its generation lifecycle.

    Front ends push raw bytes and text into the setters and observe the
    lifecycle through ``subscribe``. Image setters do not clear the matching
    text; precedence is decided during validation.
    """

    def __init__(
        self,
        controller: GenerationLifecycleController,
        *,
        sample_loader: SampleImageLoader | None = None,
    ) -> None:
        self._controller = controller
        self._sample_loader = sample_loader
        self._submission = Submission()
        self.notice: str | None = None

    @property
    def submission(self) -> Submission:
        return self._submission

    @property
    def state(self) -> LifecycleState:
        return self._controller.state

    @property
    def can_generate(self) -> bool:
        return (
            not self._controller.is_pending
            and self._submission.source_image is not None
            and has_active_modifier(self._submission)
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._controller.subscribe(listener)

    async def load_sample(self) -> bool:
        """Try to use the configured sample photo as the source image."""
        if self._sample_loader is None or not self._sample_loader.enabled:
            return False
        try:
            asset = await self._sample_loader.load()
        except InitialLoadFailure as exc:
            logger.warning("Failed to load initial image: %s", exc)
            self.notice = SAMPLE_LOAD_NOTICE
            return False
        self._submission.source_image = asset
        self.notice = None
        return True

    def upload_source(self, raw: bytes, media_type: str | None) -> None:
        """Replace the source photo; clears any previous result or error."""
        self._submission.source_image = decode_upload(raw, media_type)
        self.notice = None
        self._controller.reset()

    def set_pose(self, text: str) -> None:
        self._submission.pose = text

    def set_clothing(self, text: str) -> None:
        self._submission.clothing = text

    def set_clothing_image(self, raw: bytes, media_type: str | None) -> None:
        self._submission.clothing_image = decode_upload(raw, media_type)

    def clear_clothing_image(self) -> None:
        self._submission.clothing_image = None

    def set_background(self, text: str) -> None:
        self._submission.background = text

    def set_background_image(self, raw: bytes, media_type: str | None) -> None:
        self._submission.background_image = decode_upload(raw, media_type)

    def clear_background_image(self) -> None:
        self._submission.background_image = None

    def set_preserve_body_shape(self, value: bool) -> None:
        self._submission.preserve_body_shape = value

    async def generate(self) -> LifecycleState:
        return await self._controller.request_generation(self._submission.snapshot())

    async def retry(self) -> LifecycleState:
        return await self._controller.retry(self._submission.snapshot())
