"""Shared pytest fixtures for pose studio tests."""

from __future__ import annotations

import asyncio
import io

import pytest
from PIL import Image

from pose_studio.assembler import GenerationRequest
from pose_studio.codec import decode_upload
from pose_studio.submission import Submission
from pose_studio.types import ImageAsset, WireImage


def _image_bytes(fmt: str, color: tuple[int, int, int] = (200, 40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG", (20, 120, 220))


@pytest.fixture
def webp_bytes() -> bytes:
    return _image_bytes("WEBP", (40, 200, 90))


@pytest.fixture
def source_asset(jpeg_bytes: bytes) -> ImageAsset:
    return decode_upload(jpeg_bytes, "image/jpeg")


@pytest.fixture
def clothing_asset(png_bytes: bytes) -> ImageAsset:
    return decode_upload(png_bytes, "image/png")


@pytest.fixture
def pose_submission(source_asset: ImageAsset) -> Submission:
    return Submission(source_image=source_asset, pose="superhero landing pose")


class FakeGenerationClient:
    """Records requests and returns a canned image or raises a canned error.

    When ``gate`` is set, each call waits on it before completing so tests
    can observe the Pending state.
    """

    def __init__(self, result: WireImage | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.requests: list[GenerationRequest] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def generate(self, request: GenerationRequest) -> WireImage:
        self.requests.append(request)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result


@pytest.fixture
def result_wire(png_bytes: bytes) -> WireImage:
    return WireImage(data=png_bytes, media_type="image/png")


@pytest.fixture
def fake_client(result_wire: WireImage) -> FakeGenerationClient:
    return FakeGenerationClient(result=result_wire)


@pytest.fixture
def client_factory():
    """Build additional fake clients inside a test."""
    return FakeGenerationClient
