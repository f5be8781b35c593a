"""Text-to-speech backend powered by ``pyttsx3``."""

from __future__ import annotations

import threading

from nlinterface.errors import NarrationUnavailable

from .interfaces import NarrationEngine


class Pyttsx3NarrationEngine(NarrationEngine):
    """Speaker playback using a local pyttsx3 engine instance.

    pyttsx3 engines are not thread-safe, so playback drives the engine's external
    loop on the speaking thread. ``stop`` only raises a flag; the speaking thread
    halts the engine between iterations. Stopping is best-effort: a driver may
    finish the word it is rendering before it goes quiet.
    """

    poll_interval = 0.05

    def __init__(self, *, voice_id: str | None = None, rate: int | None = None, volume: float | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice TTS backend unavailable. Install extras with: pip install 'nlinterface-voice[voice]'"
            ) from exc

        try:
            self._engine = pyttsx3.init()
        except Exception as exc:  # noqa: BLE001 - driver loading fails with platform-specific errors.
            raise NarrationUnavailable(f"Couldn't initialize TTS engine: {exc}") from exc
        self._stop_requested = threading.Event()

        if voice_id:
            self._engine.setProperty("voice", voice_id)
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            clamped = max(0.0, min(1.0, volume))
            self._engine.setProperty("volume", clamped)

    def speak(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        self._stop_requested.clear()
        self._engine.startLoop(False)
        try:
            self._engine.say(text)
            self._engine.iterate()
            while self._engine.isBusy():
                if self._stop_requested.wait(self.poll_interval):
                    self._engine.stop()
                    break
                self._engine.iterate()
        finally:
            self._engine.endLoop()

    def stop(self) -> None:
        self._stop_requested.set()
