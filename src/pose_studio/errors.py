from __future__ import annotations


class PoseStudioError(Exception):
    """Base class for errors raised by the pose studio package."""


class CodecError(PoseStudioError):
    """Raised when an image cannot be converted to or from its wire form."""


class UnsupportedMediaType(CodecError):
    """The declared media type is not an accepted raster image type."""

    def __init__(self, media_type: str | None) -> None:
        super().__init__(f"Unsupported media type: {media_type!r}. Use PNG, JPEG or WEBP.")
        self.media_type = media_type


class MalformedAsset(CodecError):
    """The asset carries no usable payload segment."""


class InitialLoadFailure(PoseStudioError):
    """The default sample image could not be fetched."""


class GenerationServiceError(PoseStudioError):
    """The image generation service reported an error or returned no usable image."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
