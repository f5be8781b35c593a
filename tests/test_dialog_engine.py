from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field

from nlinterface.errors import RecognitionUnavailable
from nlinterface.models import KeepScreenOn, ThemeChoice
from nlinterface.preferences import AppPreferences, InMemoryPreferenceStore
from nlinterface.voice import (
    CommandDecoder,
    DialogEngine,
    DialogState,
    ResolvedAction,
    ResolvedCommand,
    SpeechCaptureController,
    SpeechOutputQueue,
)

BLOCK = object()


class ScriptedRecognizer:
    """Returns one scripted result per capture; ``BLOCK`` waits until stopped."""

    def __init__(self, *turns) -> None:
        self._turns = list(turns)
        self.calls = 0
        self._released = threading.Event()

    def listen(self) -> list[str]:
        self.calls += 1
        item = self._turns.pop(0) if self._turns else []
        if item is BLOCK:
            self._released.wait(timeout=2)
            return ["go to settings"]
        if isinstance(item, Exception):
            raise item
        return item

    def stop(self) -> None:
        self._released.set()


class RecordingNarrator:
    def __init__(self) -> None:
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)

    def stop(self) -> None:
        pass


class GatedNarrator(RecordingNarrator):
    def __init__(self) -> None:
        super().__init__()
        self._permits = threading.Semaphore(0)

    def speak(self, text: str) -> None:
        super().speak(text)
        self._permits.acquire(timeout=2)

    def stop(self) -> None:
        self._permits.release()

    def release(self) -> None:
        self._permits.release()


@dataclass
class Harness:
    engine: DialogEngine
    preferences: AppPreferences
    narrated: list[str] = field(default_factory=list)
    resolved: list[ResolvedCommand] = field(default_factory=list)
    states: list[tuple[DialogState, bool | None]] = field(default_factory=list)


def _harness(recognizer, narrator=None, preferences: AppPreferences | None = None) -> Harness:
    preferences = preferences or AppPreferences()
    output = SpeechOutputQueue(narrator or RecordingNarrator())
    engine = DialogEngine(
        capture=SpeechCaptureController(recognizer),
        output=output,
        decoder=CommandDecoder(),
        preferences=preferences,
    )
    harness = Harness(engine=engine, preferences=preferences)
    output.narrations.subscribe(lambda utterance: harness.narrated.append(utterance.text))
    engine.commands.subscribe(harness.resolved.append)
    engine.state_changed.subscribe(
        lambda state: harness.states.append(
            (state, engine.context.awaiting_response if engine.context else None)
        )
    )
    return harness


def _run_exchange(recognizer, *, exchanges: int = 1, narrator=None, preferences=None) -> Harness:
    async def _run() -> Harness:
        harness = _harness(recognizer, narrator, preferences)
        await harness.engine.start()
        for _ in range(exchanges):
            harness.engine.activate()
            await asyncio.wait_for(harness.engine.join(), timeout=3)
        await harness.engine.stop()
        return harness

    return asyncio.run(_run())


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


def test_change_theme_asks_question_and_applies_answer() -> None:
    harness = _run_exchange(ScriptedRecognizer(["change theme"], ["dark theme"]))

    assert harness.resolved == [ResolvedCommand(action=ResolvedAction.SET_THEME, argument=ThemeChoice.DARK.value)]
    assert harness.preferences.theme == ThemeChoice.DARK
    assert harness.narrated == ["light theme, dark theme or default theme?", "New theme setting: dark theme"]
    assert harness.engine.state == DialogState.IDLE
    assert harness.engine.context is None
    assert harness.states == [
        (DialogState.LISTENING_COMMAND, None),
        (DialogState.SPEAKING_QUESTION, False),
        (DialogState.LISTENING_ANSWER, True),
        (DialogState.IDLE, None),
    ]


def test_change_screen_setting_round_trip() -> None:
    harness = _run_exchange(ScriptedRecognizer(["change screen settings"], ["Keep screen always on"]))

    assert harness.resolved == [ResolvedCommand(action=ResolvedAction.SET_SCREEN_SETTING, argument="yes")]
    assert harness.preferences.keep_screen_on == KeepScreenOn.YES
    assert harness.narrated[-1] == "New screen setting: keep screen always on"


def test_navigation_is_dispatched_without_follow_up() -> None:
    recognizer = ScriptedRecognizer(["go to settings"])
    harness = _run_exchange(recognizer)

    assert harness.resolved == [ResolvedCommand(action=ResolvedAction.NAVIGATE, argument="settings")]
    assert harness.narrated == []
    assert recognizer.calls == 1
    assert [state for state, _ in harness.states] == [DialogState.LISTENING_COMMAND, DialogState.IDLE]


def test_unknown_transcript_narrates_invalid_command() -> None:
    harness = _run_exchange(ScriptedRecognizer(["asdf"]))

    assert harness.narrated == ["Invalid command"]
    assert harness.resolved == []
    assert harness.engine.state == DialogState.IDLE


def test_navigation_phrase_as_answer_is_invalid() -> None:
    harness = _run_exchange(ScriptedRecognizer(["change theme"], ["go to settings"]))

    assert harness.resolved == []
    assert harness.narrated[-1] == "Invalid command"
    assert harness.preferences.theme == ThemeChoice.SYSTEM_DEFAULT
    assert harness.engine.context is None


def test_list_options_and_read_settings_narrate() -> None:
    preferences = AppPreferences(InMemoryPreferenceStore({"theme": "dark"}))
    harness = _run_exchange(
        ScriptedRecognizer(["tell me my options"], ["list current settings"]),
        exchanges=2,
        preferences=preferences,
    )

    assert harness.narrated[0].startswith("Your options are")
    assert harness.narrated[1] == "Current settings: dark theme, dim screen after a while"
    assert harness.resolved == []


def test_theme_and_screen_settings_are_read_individually() -> None:
    preferences = AppPreferences(InMemoryPreferenceStore({"theme": "dark", "keep_screen_on": "yes"}))
    harness = _run_exchange(
        ScriptedRecognizer(["read theme settings"], ["read screen settings"]),
        exchanges=2,
        preferences=preferences,
    )

    assert harness.narrated == [
        "Current theme setting: dark theme",
        "Current screen setting: keep screen always on",
    ]
    assert harness.resolved == []
    assert harness.engine.state == DialogState.IDLE


def test_no_match_returns_to_idle_silently() -> None:
    harness = _run_exchange(ScriptedRecognizer([]))

    assert harness.narrated == []
    assert harness.engine.state == DialogState.IDLE


def test_no_match_on_answer_clears_context_silently() -> None:
    harness = _run_exchange(ScriptedRecognizer(["change theme"], []))

    assert harness.narrated == ["light theme, dark theme or default theme?"]
    assert harness.engine.context is None
    assert harness.engine.state == DialogState.IDLE


def test_recognition_error_is_narrated_and_engine_stays_usable() -> None:
    harness = _run_exchange(
        ScriptedRecognizer(RecognitionUnavailable("no microphone"), ["go to main menu"]),
        exchanges=2,
    )

    assert harness.narrated == ["Sorry, speech recognition is unavailable."]
    assert harness.resolved == [ResolvedCommand(action=ResolvedAction.NAVIGATE, argument="main")]
    assert harness.engine.state == DialogState.IDLE


def test_retrigger_while_listening_cancels_without_decoding() -> None:
    async def _run() -> Harness:
        harness = _harness(ScriptedRecognizer(BLOCK))
        await harness.engine.start()
        harness.engine.activate()
        assert harness.engine.state == DialogState.LISTENING_COMMAND
        assert harness.engine.is_listening is True

        harness.engine.activate()
        assert harness.engine.state == DialogState.IDLE
        assert harness.engine.is_listening is False

        await asyncio.wait_for(harness.engine.join(), timeout=3)
        await asyncio.sleep(0.05)
        await harness.engine.stop()
        return harness

    harness = asyncio.run(_run())
    assert harness.resolved == []
    assert harness.narrated == []


def test_retrigger_while_listening_for_answer_discards_context() -> None:
    async def _run() -> Harness:
        harness = _harness(ScriptedRecognizer(["change theme"], BLOCK))
        await harness.engine.start()
        harness.engine.activate()
        await _wait_for(lambda: harness.engine.state == DialogState.LISTENING_ANSWER)

        harness.engine.activate()
        assert harness.engine.state == DialogState.IDLE
        assert harness.engine.context is None

        await asyncio.wait_for(harness.engine.join(), timeout=3)
        await asyncio.sleep(0.05)
        await harness.engine.stop()
        return harness

    harness = asyncio.run(_run())
    assert harness.resolved == []
    assert harness.preferences.theme == ThemeChoice.SYSTEM_DEFAULT


def test_retrigger_while_speaking_question_starts_new_command() -> None:
    async def _run() -> tuple[Harness, GatedNarrator]:
        narrator = GatedNarrator()
        harness = _harness(ScriptedRecognizer(["change theme"], ["go to grocery list"]), narrator=narrator)
        await harness.engine.start()
        harness.engine.activate()
        await _wait_for(lambda: narrator.spoken)
        assert harness.engine.state == DialogState.SPEAKING_QUESTION

        harness.engine.activate()
        assert harness.engine.state == DialogState.LISTENING_COMMAND
        assert harness.engine.context is None

        await asyncio.wait_for(harness.engine.join(), timeout=3)
        narrator.release()
        await harness.engine.stop()
        return harness, narrator

    harness, narrator = asyncio.run(_run())
    assert harness.resolved == [ResolvedCommand(action=ResolvedAction.NAVIGATE, argument="grocery_list")]
    assert harness.engine.state == DialogState.IDLE
    assert narrator.spoken == ["light theme, dark theme or default theme?"]
