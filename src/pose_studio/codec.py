"""
Conversions between submission image assets and the transport wire form.

Everything here is pure: callers do the file reads and network fetches and
hand over bytes plus whatever media type they were told.
"""
from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from .errors import MalformedAsset, UnsupportedMediaType
from .types import ACCEPTED_MEDIA_TYPES, ImageAsset, WireImage

_MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


def normalize_media_type(media_type: str | None) -> str:
    """Map a loosely declared type (header, alias, odd case) to its canonical form.

    For collaborators such as HTTP responses; ``decode_upload`` itself only
    takes canonical types so that the declared type survives unchanged.
    """
    if not media_type:
        raise UnsupportedMediaType(media_type)
    canonical = media_type.split(";", 1)[0].strip().lower()
    canonical = _MEDIA_TYPE_ALIASES.get(canonical, canonical)
    if canonical not in ACCEPTED_MEDIA_TYPES:
        raise UnsupportedMediaType(media_type)
    return canonical


def _require_accepted(media_type: str | None) -> str:
    if media_type not in ACCEPTED_MEDIA_TYPES:
        raise UnsupportedMediaType(media_type)
    return media_type


def decode_upload(raw: bytes, media_type: str | None) -> ImageAsset:
    """Wrap uploaded file bytes into an ``ImageAsset``."""
    accepted = _require_accepted(media_type)
    if not raw:
        raise MalformedAsset("Uploaded image is empty.")
    return ImageAsset(payload=bytes(raw), media_type=accepted)


def parse_data_url(data_url: str) -> ImageAsset:
    """Build an asset from a ``data:<type>;base64,<payload>`` string."""
    header, sep, _ = data_url.partition(",")
    if not sep or not header.startswith("data:") or not _payload_segment(data_url):
        raise MalformedAsset("Invalid image data URL.")
    media_type = header[len("data:"):].split(";", 1)[0]
    return ImageAsset(payload=data_url, media_type=normalize_media_type(media_type))


def to_data_url(asset: ImageAsset) -> str:
    """Return the asset in the browser ``data:`` URL envelope."""
    wire = to_wire_form(asset)
    return f"data:{wire.media_type};base64,{wire.b64()}"


def _payload_segment(encoded: str) -> str:
    if encoded.startswith("data:"):
        _, sep, segment = encoded.partition(",")
        if not sep:
            return ""
        return segment.strip()
    return encoded.strip()


def to_wire_form(asset: ImageAsset) -> WireImage:
    """Strip any transport envelope and return decoded bytes plus media type."""
    media_type = _require_accepted(asset.media_type)
    if isinstance(asset.payload, (bytes, bytearray)):
        data = bytes(asset.payload)
    else:
        segment = _payload_segment(asset.payload)
        if not segment:
            raise MalformedAsset("Invalid image data URL.")
        try:
            data = base64.b64decode(segment, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise MalformedAsset("Image payload is not valid base64.") from exc
    if not data:
        raise MalformedAsset("Image payload is empty.")
    return WireImage(data=data, media_type=media_type)


def from_wire_form(wire: WireImage) -> ImageAsset:
    """Turn a wire image returned by the generation service into an asset."""
    return decode_upload(wire.data, normalize_media_type(wire.media_type))


def sniff_media_type(data: bytes) -> str:
    """Identify the raster type of ``data`` without decoding the pixels."""
    if not data:
        raise MalformedAsset("Image payload is empty.")
    try:
        with Image.open(io.BytesIO(data)) as image:
            detected = image.get_format_mimetype()
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedMediaType(None) from exc
    return normalize_media_type(detected)
