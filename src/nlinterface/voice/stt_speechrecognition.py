"""Speech-to-text backend powered by ``speech_recognition``."""

from __future__ import annotations

import threading

from nlinterface.errors import RecognitionUnavailable

from .interfaces import RecognitionEngine


class SpeechRecognitionEngine(RecognitionEngine):
    """Capture one microphone phrase and return Google Web Speech alternatives."""

    def __init__(
        self,
        *,
        language: str = "en-US",
        phrase_time_limit: float | None = 5.0,
        timeout: float | None = 10.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
    ) -> None:
        try:
            import speech_recognition as sr
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice STT backend unavailable. Install extras with: pip install 'nlinterface-voice[voice]'"
            ) from exc
        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._language = language
        self._phrase_time_limit = phrase_time_limit
        self._timeout = timeout
        self._sample_rate = sample_rate
        self._chunk_size = chunk_size
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)
        self._stopped = threading.Event()

    def listen(self) -> list[str]:
        self._stopped.clear()
        try:
            microphone = self._sr.Microphone(sample_rate=self._sample_rate, chunk_size=self._chunk_size)
            with microphone as source:
                if self._adjust_noise_seconds > 0:
                    self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
                audio = self._recognizer.listen(
                    source,
                    timeout=self._timeout,
                    phrase_time_limit=self._phrase_time_limit,
                )
        except self._sr.WaitTimeoutError:
            return []
        except (AttributeError, OSError) as exc:
            raise RecognitionUnavailable(f"Microphone could not be opened: {exc}") from exc

        if self._stopped.is_set():
            return []

        try:
            response = self._recognizer.recognize_google(audio, language=self._language, show_all=True)
        except self._sr.UnknownValueError:
            return []
        except self._sr.RequestError as exc:
            raise RecognitionUnavailable(
                "Speech recognition service request failed. Check internet access or switch STT backend."
            ) from exc

        if not isinstance(response, dict):
            return []
        return [alt["transcript"] for alt in response.get("alternative", []) if alt.get("transcript")]

    def stop(self) -> None:
        # speech_recognition cannot abort a blocking listen; the phrase is dropped when it ends.
        self._stopped.set()
