from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any, Dict

import httpx
from PIL import Image, UnidentifiedImageError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..assembler import Directive, GenerationRequest
from ..config import GeminiConfig
from ..errors import GenerationServiceError
from ..types import WireImage

logger = logging.getLogger(__name__)

_ORDINALS = ("first", "second", "third")
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, GenerationServiceError) and exc.status_code in _RETRYABLE_STATUS


def build_instruction(request: GenerationRequest) -> str:
    """Compose the text part that accompanies the images in a request."""
    image_index = 1
    lines = [
        f"Edit the person in the {_ORDINALS[0]} image. "
        "Keep their face and identity exactly as they are."
    ]

    pose = request.directives.pose
    if pose:
        lines.append(f"Change the person's pose to: {pose}.")
    else:
        lines.append("Keep the person's pose unchanged.")

    def _directive_line(directive: Directive, subject: str, text_template: str, image_template: str) -> str:
        nonlocal image_index
        if isinstance(directive, WireImage):
            ordinal = _ORDINALS[image_index]
            image_index += 1
            return image_template.format(ordinal=ordinal)
        if directive:
            return text_template.format(text=directive)
        return f"Keep the {subject} unchanged."

    lines.append(
        _directive_line(
            request.directives.clothing,
            "clothing",
            "Change the person's clothing to: {text}.",
            "Dress the person in the outfit shown in the {ordinal} image.",
        )
    )
    lines.append(
        _directive_line(
            request.directives.background,
            "background",
            "Replace the background with: {text}.",
            "Replace the background with the scene shown in the {ordinal} image.",
        )
    )

    if request.preserve_body_shape:
        lines.append("Preserve the person's original body shape and proportions.")
    lines.append("Return only the edited photograph.")
    return "\n".join(lines)


class GeminiImageClient:
    """Async client for Gemini image editing through the generateContent endpoint."""

    def __init__(self, config: GeminiConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._session = httpx.AsyncClient(
            base_url=config.api_url.rstrip("/") + "/",
            headers={
                "x-goog-api-key": config.api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )
        self._generate_path = f"models/{config.model}:generateContent"

    async def aclose(self) -> None:
        await self._session.aclose()

    def _build_body(self, request: GenerationRequest) -> Dict[str, Any]:
        parts: list[Dict[str, Any]] = [
            {"inline_data": {"mime_type": image.media_type, "data": image.b64()}}
            for image in request.reference_images()
        ]
        parts.append({"text": build_instruction(request)})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = None
        error = payload.get("error") if isinstance(payload, dict) else None
        message = (error.get("message") if isinstance(error, dict) else None) or response.text
        raise GenerationServiceError(
            f"Gemini request failed with status {response.status_code}: {message}",
            status_code=response.status_code,
        )

    def _extract_image(self, data: Dict[str, Any]) -> WireImage:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GenerationServiceError(f"Request was blocked by the model: {block_reason}")

        texts: list[str] = []
        for candidate in data.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    media_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                    return WireImage(data=self._decode_image(inline["data"]), media_type=media_type)
                if part.get("text"):
                    texts.append(part["text"].strip())

        if texts:
            raise GenerationServiceError(f"The model did not return an image. It said: {' '.join(texts)}")
        finish_reason = next(
            (c.get("finishReason") for c in data.get("candidates") or [] if c.get("finishReason")),
            None,
        )
        if finish_reason:
            raise GenerationServiceError(f"The model did not return an image (finish reason: {finish_reason}).")
        raise GenerationServiceError("The model did not return an image.")

    @staticmethod
    def _decode_image(data_b64: str) -> bytes:
        try:
            image_bytes = base64.b64decode(data_b64)
        except (ValueError, binascii.Error) as exc:
            raise GenerationServiceError(f"Failed to decode base64 image data: {exc}") from exc
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError) as exc:
            raise GenerationServiceError("The model returned image data that could not be read.") from exc
        return image_bytes

    async def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._session.post(self._generate_path, json=body)
        self._raise_for_status(response)
        return response.json()

    async def generate(self, request: GenerationRequest) -> WireImage:
        """
        Submit the edit and return the first image the model produced.

        Transport errors and overload responses (429/5xx) are retried with
        exponential backoff; everything else raises immediately.
        """
        body = self._build_body(request)
        data: Dict[str, Any] = {}
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(multiplier=self._config.backoff_seconds, max=20),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying Gemini request (attempt %d/%d)",
                        attempt.retry_state.attempt_number,
                        self._config.max_attempts,
                    )
                data = await self._post(body)
        return self._extract_image(data)

    async def __aenter__(self) -> "GeminiImageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
