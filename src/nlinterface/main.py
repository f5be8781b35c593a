"""CLI entrypoint for the NLInterface voice dialog engine."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich import print
from rich.console import Console

from nlinterface.config import settings
from nlinterface.errors import NarrationUnavailable
from nlinterface.navigation import ScreenNavigator
from nlinterface.preferences import AppPreferences, InMemoryPreferenceStore, JsonPreferenceStore
from nlinterface.telemetry import configure_logging
from nlinterface.voice import (
    CaptureConfig,
    CommandDecoder,
    DialogEngine,
    NarrationConfig,
    NarrationEngine,
    PhraseBook,
    RecognitionEngine,
    ResolvedCommand,
    SpeechCaptureController,
    SpeechOutputQueue,
)

app = typer.Typer(help="NLInterface voice dialog engine")
logger = logging.getLogger("nlinterface.main")

_QUIT_KEYS = {"q", "quit", "exit"}


def _load_phrases() -> PhraseBook:
    if settings.phrase_book_path:
        return PhraseBook.from_file(settings.phrase_book_path)
    return PhraseBook(locale=settings.locale)


def _build_preferences() -> AppPreferences:
    if settings.preferences_path:
        return AppPreferences(JsonPreferenceStore(settings.preferences_path))
    return AppPreferences(InMemoryPreferenceStore())


def _build_engine(
    recognition: RecognitionEngine | None,
    narration: NarrationEngine | None,
    *,
    capture_timeout: float | None = None,
) -> tuple[DialogEngine, ScreenNavigator]:
    phrases = _load_phrases()
    output = SpeechOutputQueue(
        narration,
        config=NarrationConfig(enabled=settings.narration_enabled, max_chars=settings.narration_max_chars),
    )
    capture = SpeechCaptureController(
        recognition,
        config=CaptureConfig(timeout_seconds=capture_timeout),
    )
    engine = DialogEngine(
        capture=capture,
        output=output,
        decoder=CommandDecoder(phrases),
        preferences=_build_preferences(),
    )
    navigator = ScreenNavigator(output, phrases=phrases)
    engine.commands.subscribe(navigator.handle)
    return engine, navigator


async def _run_chat(engine: DialogEngine, navigator: ScreenNavigator, console: Console) -> None:
    def _report(command: ResolvedCommand) -> None:
        console.print({"resolved": command.action.value, "argument": command.argument, "screen": navigator.state.current.value})

    engine.commands.subscribe(_report)
    await engine.start()
    try:
        while True:
            key = await asyncio.to_thread(console.input, "[dim]Press Enter to talk, q to quit[/dim] ")
            if key.strip().lower() in _QUIT_KEYS:
                break
            engine.activate()
            await engine.join()
    finally:
        await engine.stop()


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(settings.model_dump())


@app.command()
def decode(text: str) -> None:
    """Decode a transcript into a command without running a dialog."""
    command = CommandDecoder(_load_phrases()).decode(text)
    print({"intent": command.intent.value, "argument": command.argument})


@app.command("text-chat")
def text_chat() -> None:
    """Run the dialog engine with typed transcripts and printed narration."""
    from nlinterface.cli import ConsoleNarrationEngine, ConsoleRecognitionEngine

    configure_logging(settings.log_level)
    console = Console()
    engine, navigator = _build_engine(
        ConsoleRecognitionEngine(console=console),
        ConsoleNarrationEngine(console=console),
        capture_timeout=None,
    )
    print({"text_chat": "started", "hint": "Press Enter, then type what you would say."})
    asyncio.run(_run_chat(engine, navigator, console))
    print({"text_chat": "stopped"})


@app.command("voice-chat")
def voice_chat(
    phrase_time_limit: float = typer.Option(None, help="Per-utterance capture limit in seconds"),
) -> None:
    """Run the dialog engine with local STT/TTS backends."""
    try:
        from nlinterface.voice.stt_speechrecognition import SpeechRecognitionEngine
        from nlinterface.voice.tts_pyttsx3 import Pyttsx3NarrationEngine
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)
    except ImportError:
        print({"error": "Voice extras are missing. Install with: pip install 'nlinterface-voice[voice]'"})
        raise typer.Exit(code=1)

    phrase_limit = phrase_time_limit or settings.phrase_time_limit
    try:
        recognition = SpeechRecognitionEngine(
            language=settings.locale,
            phrase_time_limit=phrase_limit,
            timeout=settings.capture_timeout_seconds,
        )
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    configure_logging(settings.log_level)
    try:
        narration = Pyttsx3NarrationEngine()
    except NarrationUnavailable as exc:
        logger.warning("narration_unavailable", extra={"error": str(exc)})
        print({"warning": "Narration is unavailable; continuing without speech output."})
        narration = None
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    # A session may wait the full silence timeout and then record a whole phrase.
    capture_timeout = settings.capture_timeout_seconds
    if capture_timeout is not None:
        capture_timeout += phrase_limit
    engine, navigator = _build_engine(recognition, narration, capture_timeout=capture_timeout)
    print({"voice_chat": "started", "hint": "Press Enter to capture each command."})
    asyncio.run(_run_chat(engine, navigator, Console()))
    print({"voice_chat": "stopped"})


if __name__ == "__main__":
    app()
