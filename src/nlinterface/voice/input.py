"""Microphone session control with a single-resolution capture result."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from nlinterface.errors import CaptureInProgressError, RecognitionUnavailable
from nlinterface.events import EventChannel

from .interfaces import RecognitionEngine


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class CaptureOutcome(str, Enum):
    """Terminal outcome of one capture session."""

    TRANSCRIPT = "transcript"
    NO_MATCH = "no_match"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class CaptureResult:
    outcome: CaptureOutcome
    transcript: str | None = None
    error: str | None = None


class CaptureRequestKind(str, Enum):
    BEGIN = "begin"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class CaptureRequest:
    """Begin/cancel notification for recognition collaborators."""

    kind: CaptureRequestKind
    session_id: str


@dataclass(slots=True)
class CaptureSession:
    """One listening attempt, bounded by start and exactly one result."""

    id: str
    result: asyncio.Future[CaptureResult]
    state: CaptureState = CaptureState.LISTENING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    task: asyncio.Task[None] | None = None


@dataclass(slots=True)
class CaptureConfig:
    """Per-session limits for speech capture."""

    timeout_seconds: float | None = 10.0


class SpeechCaptureController:
    """Owns the microphone: at most one session listens at any time."""

    def __init__(
        self,
        engine: RecognitionEngine | None,
        *,
        config: CaptureConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or CaptureConfig()
        self._logger = logger or logging.getLogger("nlinterface.voice.input")
        self._session: CaptureSession | None = None
        self._engine_call: asyncio.Future[list[str]] | None = None

        self.listening_changed: EventChannel[bool] = EventChannel("listening_changed")
        self.capture_requests: EventChannel[CaptureRequest] = EventChannel("capture_requests")

    @property
    def is_listening(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> CaptureSession | None:
        return self._session

    def begin_listening(self) -> asyncio.Future[CaptureResult]:
        """Start a capture session and return the future of its single result.

        Raises ``CaptureInProgressError`` while another session is listening;
        the active session is left untouched.
        """
        if self._session is not None:
            raise CaptureInProgressError(f"Capture session {self._session.id} is already listening")

        loop = asyncio.get_running_loop()
        result: asyncio.Future[CaptureResult] = loop.create_future()
        if self._engine is None:
            result.set_result(CaptureResult(outcome=CaptureOutcome.ERROR, error="Recognition engine is not available"))
            self._logger.warning("capture_unavailable")
            return result

        session = CaptureSession(id=uuid4().hex, result=result)
        self._session = session
        session.task = loop.create_task(self._run_session(session), name=f"capture-{session.id}")
        self._logger.info("capture_started", extra={"session_id": session.id})
        self.capture_requests.publish(CaptureRequest(kind=CaptureRequestKind.BEGIN, session_id=session.id))
        self.listening_changed.publish(True)
        return result

    def cancel_listening(self) -> None:
        """Cancel the active session, resolving it as ``CANCELLED``; no-op when idle."""
        session = self._session
        if session is None:
            return

        self.capture_requests.publish(CaptureRequest(kind=CaptureRequestKind.CANCEL, session_id=session.id))
        try:
            self._engine.stop()
        except Exception:  # noqa: BLE001 - the session resolves as cancelled regardless.
            self._logger.exception("capture_stop_failed", extra={"session_id": session.id})
        self._resolve(session, CaptureResult(outcome=CaptureOutcome.CANCELLED))
        if session.task is not None:
            session.task.cancel()

    async def _run_session(self, session: CaptureSession) -> None:
        try:
            candidates = await asyncio.wait_for(self._listen(session), timeout=self._config.timeout_seconds)
        except asyncio.TimeoutError:
            self._logger.info("capture_timeout", extra={"session_id": session.id})
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.NO_MATCH))
            return
        except RecognitionUnavailable as exc:
            self._logger.warning("capture_failed", extra={"session_id": session.id, "error": str(exc)})
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.ERROR, error=str(exc)))
            return
        except asyncio.CancelledError:
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.CANCELLED))
            raise
        except Exception as exc:  # noqa: BLE001 - recognizer failures surface as an error result.
            self._logger.exception("capture_failed", extra={"session_id": session.id})
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.ERROR, error=f"{type(exc).__name__}: {exc}"))
            return

        transcript = next((text.strip() for text in candidates or () if text and text.strip()), None)
        if transcript is None:
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.NO_MATCH))
        else:
            self._resolve(session, CaptureResult(outcome=CaptureOutcome.TRANSCRIPT, transcript=transcript))

    async def _listen(self, session: CaptureSession) -> list[str]:
        # The engine call outlives a timed-out or cancelled session; never run two at once.
        previous = self._engine_call
        if previous is not None and not previous.done():
            self._logger.info("capture_waiting_for_engine", extra={"session_id": session.id})
            await asyncio.wait({previous})

        call = asyncio.ensure_future(asyncio.to_thread(self._engine.listen))
        call.add_done_callback(self._engine_call_done)
        self._engine_call = call
        return await asyncio.shield(call)

    def _engine_call_done(self, call: asyncio.Future[list[str]]) -> None:
        if call.cancelled():
            return
        exc = call.exception()
        if exc is not None:
            self._logger.debug("capture_engine_call_failed", extra={"error": f"{type(exc).__name__}: {exc}"})

    def _resolve(self, session: CaptureSession, result: CaptureResult) -> None:
        if session.result.done():
            self._logger.debug(
                "capture_result_suppressed",
                extra={"session_id": session.id, "outcome": result.outcome.value},
            )
            return

        session.state = CaptureState.IDLE
        if self._session is session:
            self._session = None
        session.result.set_result(result)
        self._logger.info("capture_finished", extra={"session_id": session.id, "outcome": result.outcome.value})
        self.listening_changed.publish(False)
