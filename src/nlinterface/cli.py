"""Console-backed speech engines for keyboard-driven sessions."""

from __future__ import annotations

from rich.console import Console

from nlinterface.voice.interfaces import NarrationEngine, RecognitionEngine


class ConsoleRecognitionEngine(RecognitionEngine):
    """Reads one typed line per capture session."""

    def __init__(self, *, prompt: str = "You: ", console: Console | None = None) -> None:
        self._prompt = prompt
        self._console = console or Console()

    def listen(self) -> list[str]:
        try:
            line = self._console.input(self._prompt)
        except EOFError:
            return []
        return [line] if line.strip() else []

    def stop(self) -> None:
        # A pending console read cannot be interrupted; its line is discarded by the controller.
        return None


class ConsoleNarrationEngine(NarrationEngine):
    """Prints narration instead of speaking it."""

    def __init__(self, *, console: Console | None = None) -> None:
        self._console = console or Console()

    def speak(self, text: str) -> None:
        self._console.print(f"[bold cyan]Assistant:[/bold cyan] {text}")

    def stop(self) -> None:
        return None
