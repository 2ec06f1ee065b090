from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..assembler import GenerationRequest
from ..types import WireImage


@runtime_checkable
class GenerationClient(Protocol):
    """Boundary to the external image generation capability.

    Implementations return the edited image or raise; the lifecycle
    controller turns any exception into a failed outcome. Timeouts are the
    implementation's responsibility.
    """

    async def generate(self, request: GenerationRequest) -> WireImage: ...
