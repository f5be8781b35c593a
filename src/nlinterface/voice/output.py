"""Serialized narration queue with flush and enqueue disciplines."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from nlinterface.events import EventChannel

from .interfaces import NarrationEngine


class UtteranceMode(str, Enum):
    """Queuing discipline for one narration request."""

    FLUSH = "flush"
    ENQUEUE = "enqueue"


@dataclass(frozen=True, slots=True)
class Utterance:
    text: str
    mode: UtteranceMode = UtteranceMode.FLUSH


@dataclass(frozen=True, slots=True)
class UtteranceOutcome:
    """Completion event for a committed utterance."""

    utterance: Utterance
    interrupted: bool = False


@dataclass(slots=True)
class NarrationConfig:
    """Configurable controls for spoken output."""

    enabled: bool = True
    max_chars: int = 500


@dataclass(slots=True)
class _QueuedUtterance:
    utterance: Utterance
    done: asyncio.Future[UtteranceOutcome]
    # Read by the playback thread, which cannot inspect the loop-owned future.
    cancelled: threading.Event = field(default_factory=threading.Event)


class SpeechOutputQueue:
    """Plays utterances one at a time through a narration engine.

    ``FLUSH`` stops the utterance in progress, discards everything queued and
    plays next; ``ENQUEUE`` appends to the FIFO tail. Every committed utterance
    completes exactly once, in commit order. Narration is best-effort: with no
    usable engine every call completes immediately.
    """

    def __init__(
        self,
        engine: NarrationEngine | None,
        *,
        config: NarrationConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or NarrationConfig()
        self._logger = logger or logging.getLogger("nlinterface.voice.output")

        self._pending: deque[_QueuedUtterance] = deque()
        self._current: _QueuedUtterance | None = None
        self._wakeup = asyncio.Event()
        self._worker_task: asyncio.Task[None] | None = None

        self.narrations: EventChannel[Utterance] = EventChannel("narrations")
        self.completions: EventChannel[UtteranceOutcome] = EventChannel("narration_completions")

    @property
    def available(self) -> bool:
        return self._engine is not None and self._config.enabled

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    async def start(self) -> None:
        """Start the playback worker once for this queue."""
        self._ensure_worker()

    async def stop(self) -> None:
        """Stop playback, release every waiting caller and stop the worker."""
        self._interrupt_all()
        if not self._worker_task:
            return

        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        finally:
            self._worker_task = None

        self._logger.info("narration_queue_stopped")

    def say(self, text: str, mode: UtteranceMode = UtteranceMode.FLUSH) -> asyncio.Future[UtteranceOutcome]:
        """Commit an utterance and return a future resolved when it completes."""
        loop = asyncio.get_running_loop()
        utterance = Utterance(text=self._prepare(text), mode=mode)
        done: asyncio.Future[UtteranceOutcome] = loop.create_future()

        if not self.available or not utterance.text:
            done.set_result(UtteranceOutcome(utterance=utterance, interrupted=True))
            self._logger.debug("utterance_skipped", extra={"text": utterance.text})
            return done

        if mode == UtteranceMode.FLUSH:
            self._interrupt_all()

        self._pending.append(_QueuedUtterance(utterance=utterance, done=done))
        self._logger.info(
            "utterance_committed",
            extra={"text": utterance.text, "mode": mode.value, "queue_size": len(self._pending)},
        )
        self.narrations.publish(utterance)
        self._ensure_worker()
        self._wakeup.set()
        return done

    async def say_and_await(self, text: str) -> UtteranceOutcome:
        """Flush-speak ``text`` and wait until it has played or was stopped."""
        # Shielded so a cancelled caller leaves the utterance playing.
        return await asyncio.shield(self.say(text, UtteranceMode.FLUSH))

    def _prepare(self, text: str) -> str:
        return " ".join(text.split())[: self._config.max_chars]

    def _ensure_worker(self) -> None:
        if not self.available:
            return
        if self._worker_task and not self._worker_task.done():
            return
        self._worker_task = asyncio.get_running_loop().create_task(
            self._worker_loop(), name="speech-output-worker"
        )
        self._logger.info("narration_queue_started")

    def _interrupt_all(self) -> None:
        if self._current is not None:
            current, self._current = self._current, None
            self._stop_engine()
            self._finish(current, interrupted=True)
        while self._pending:
            self._finish(self._pending.popleft(), interrupted=True)

    def _stop_engine(self) -> None:
        if self._engine is None:
            return
        try:
            self._engine.stop()
        except Exception:  # noqa: BLE001 - narration failures degrade to silence.
            self._logger.exception("narration_stop_failed")

    def _finish(self, entry: _QueuedUtterance, *, interrupted: bool) -> None:
        if interrupted:
            entry.cancelled.set()
        if entry.done.done():
            return
        outcome = UtteranceOutcome(utterance=entry.utterance, interrupted=interrupted)
        entry.done.set_result(outcome)
        self._logger.debug("utterance_completed", extra={"text": entry.utterance.text, "interrupted": interrupted})
        self.completions.publish(outcome)

    async def _worker_loop(self) -> None:
        while True:
            while not self._pending:
                self._wakeup.clear()
                await self._wakeup.wait()

            entry = self._pending.popleft()
            if entry.done.done():
                continue
            self._current = entry
            interrupted = False
            try:
                await asyncio.to_thread(self._play, entry)
            except Exception:  # noqa: BLE001 - narration failures degrade to silence.
                interrupted = True
                self._logger.exception("narration_failed", extra={"text": entry.utterance.text})
            finally:
                if self._current is entry:
                    self._current = None
            self._finish(entry, interrupted=interrupted)

    def _play(self, entry: _QueuedUtterance) -> None:
        # A flush can land after the worker hands the entry to the executor but
        # before this thread runs; that utterance must stay silent.
        if entry.cancelled.is_set():
            self._logger.debug("utterance_dropped", extra={"text": entry.utterance.text})
            return
        self._engine.speak(entry.utterance.text)
