"""Contracts for the speech engines the dialog core drives."""

from typing import Protocol


class RecognitionEngine(Protocol):
    """Captures one spoken phrase and converts it into text candidates."""

    def listen(self) -> list[str]:
        """Block until a phrase ends; return candidates in decreasing confidence.

        An empty list means nothing usable was recognized. Raise
        ``RecognitionUnavailable`` when the recognizer cannot run.
        """

    def stop(self) -> None:
        """Abort an in-flight ``listen`` call if the backend supports it."""


class NarrationEngine(Protocol):
    """Speaks text aloud."""

    def speak(self, text: str) -> None:
        """Block until the utterance has played or ``stop`` was called."""

    def stop(self) -> None:
        """Interrupt the utterance currently playing."""
