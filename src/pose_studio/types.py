from __future__ import annotations

import base64
from dataclasses import dataclass

ACCEPTED_MEDIA_TYPES: frozenset[str] = frozenset({"image/png", "image/jpeg", "image/webp"})


@dataclass(frozen=True, slots=True)
class ImageAsset:
    """An image held by one submission field.

    ``payload`` is either the raw file bytes or an encoded string (a
    ``data:`` URL or bare base64) as produced by a browser file reader.
    Assets are replaced wholesale, never mutated.
    """

    payload: bytes | str
    media_type: str

    @property
    def is_encoded(self) -> bool:
        return isinstance(self.payload, str)

    def __repr__(self) -> str:
        kind = "chars" if self.is_encoded else "bytes"
        return f"ImageAsset(media_type={self.media_type!r}, {kind}={len(self.payload)})"


@dataclass(frozen=True, slots=True)
class WireImage:
    """Transport-ready image: decoded bytes plus their declared media type."""

    data: bytes
    media_type: str

    def b64(self) -> str:
        """Return the payload base64-encoded for JSON transports."""
        return base64.b64encode(self.data).decode("ascii")

    def __repr__(self) -> str:
        return f"WireImage(media_type={self.media_type!r}, size={len(self.data)})"
