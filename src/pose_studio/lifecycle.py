"""
Single-slot generation state machine.

    Idle -> Pending -> Succeeded | Failed

Succeeded and Failed go back to Pending only through an explicit
``request_generation`` or ``retry``. At most one attempt is pending at a
time; a trigger that arrives while one is pending is ignored, not queued.

The pending check and the transition to Pending happen without an
intervening ``await``, which is what makes the guarantee hold under
cooperative scheduling.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Union

from .assembler import GenerationRequest, assemble
from .clients.base import GenerationClient
from .codec import from_wire_form
from .errors import CodecError
from .submission import Submission
from .types import ImageAsset
from .validation import Normalization, Rejected, RejectionReason, validate

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    NO_SOURCE_IMAGE = "no_source_image"
    NO_MODIFIER_SPECIFIED = "no_modifier_specified"
    INVALID_INPUT = "invalid_input"
    EXTERNAL_CALL = "external_call"


@dataclass(frozen=True, slots=True)
class FailureDescriptor:
    kind: FailureKind
    message: str
    detail: str
    retryable: bool = True


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Pending:
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class Succeeded:
    asset: ImageAsset
    normalizations: tuple[Normalization, ...] = ()


@dataclass(frozen=True, slots=True)
class Failed:
    descriptor: FailureDescriptor


LifecycleState = Union[Idle, Pending, Succeeded, Failed]
Listener = Callable[[LifecycleState], None]

_REJECTION_KINDS = {
    RejectionReason.NO_SOURCE_IMAGE: FailureKind.NO_SOURCE_IMAGE,
    RejectionReason.NO_MODIFIER_SPECIFIED: FailureKind.NO_MODIFIER_SPECIFIED,
}


def _error_detail(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class GenerationLifecycleController:
    """Own the generation lifecycle and notify listeners of every transition."""

    def __init__(self, client: GenerationClient) -> None:
        self._client = client
        self._state: LifecycleState = Idle()
        self._listeners: list[Listener] = []
        self._last_submission: Submission | None = None
        self._last_request: GenerationRequest | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return isinstance(self._state, Pending)

    @property
    def last_submission(self) -> Submission | None:
        return self._last_submission

    @property
    def last_request(self) -> GenerationRequest | None:
        """The request sent by the most recent attempt that reached the client."""
        return self._last_request

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def reset(self) -> None:
        """Return to Idle, dropping the previous outcome. Ignored while pending."""
        if self.is_pending:
            logger.debug("Ignoring reset while a generation is pending")
            return
        self._transition(Idle())

    async def request_generation(self, submission: Submission) -> LifecycleState:
        """Validate, assemble and run one generation attempt.

        Returns the state the attempt ended in. A call made while another
        attempt is pending returns that Pending state and does nothing else.
        """
        if self.is_pending:
            logger.warning("Generation already in progress; ignoring overlapping request")
            return self._state

        self._last_submission = submission
        outcome = validate(submission)
        if isinstance(outcome, Rejected):
            return self._fail(
                _REJECTION_KINDS[outcome.reason], outcome.reason.message, outcome.reason.value
            )

        try:
            request = assemble(outcome.submission)
        except CodecError as exc:
            logger.info("Submission rejected: %s", exc)
            return self._fail(FailureKind.INVALID_INPUT, f"Invalid image input. {exc}", str(exc))

        self._last_request = request
        self._transition(Pending())
        logger.info("Generation started: %s", request.describe())

        try:
            wire = await self._client.generate(request)
            asset = from_wire_form(wire)
        except asyncio.CancelledError:
            self._fail(FailureKind.EXTERNAL_CALL, "Generation was cancelled.", "cancelled")
            raise
        except Exception as exc:
            logger.exception("Generation failed")
            detail = _error_detail(exc)
            return self._fail(
                FailureKind.EXTERNAL_CALL, f"Failed to generate new image. {detail}", detail
            )

        logger.info("Generation succeeded (%s)", asset.media_type)
        return self._transition(Succeeded(asset=asset, normalizations=outcome.normalizations))

    async def retry(self, submission: Submission | None = None) -> LifecycleState:
        """Run a fresh attempt from the latest submission.

        The request is rebuilt from the submission rather than resent, since
        fields may have changed since the failed attempt.
        """
        target = submission if submission is not None else self._last_submission
        if target is None:
            target = Submission()
        return await self.request_generation(target)

    def _fail(self, kind: FailureKind, message: str, detail: str) -> LifecycleState:
        return self._transition(Failed(FailureDescriptor(kind=kind, message=message, detail=detail)))

    def _transition(self, state: LifecycleState) -> LifecycleState:
        logger.debug("Lifecycle %s -> %s", type(self._state).__name__, type(state).__name__)
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Lifecycle listener %r raised", listener)
        return state
