from __future__ import annotations

import logging

import httpx

from .codec import decode_upload, normalize_media_type, sniff_media_type
from .config import SampleImageConfig
from .errors import CodecError, InitialLoadFailure
from .types import ImageAsset

logger = logging.getLogger(__name__)


class SampleImageLoader:
    """Fetch the default photo shown before the user uploads their own."""

    def __init__(
        self,
        config: SampleImageConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._config.url)

    async def load(self) -> ImageAsset:
        """Return the sample image, or raise ``InitialLoadFailure``."""
        if not self._config.url:
            raise InitialLoadFailure("No sample image URL is configured.")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=True,
                transport=self._transport,
            ) as session:
                response = await session.get(self._config.url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise InitialLoadFailure(f"Failed to fetch sample image: {exc}") from exc

        content = response.content
        media_type = response.headers.get("content-type")
        try:
            if not media_type or not media_type.startswith("image/"):
                media_type = sniff_media_type(content)
            else:
                media_type = normalize_media_type(media_type)
            asset = decode_upload(content, media_type)
        except CodecError as exc:
            raise InitialLoadFailure(f"Sample image is not usable: {exc}") from exc

        logger.info("Loaded sample image (%s, %d bytes)", asset.media_type, len(content))
        return asset
