"""Dialog state machine for single- and two-turn voice exchanges."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from nlinterface.errors import CaptureInProgressError
from nlinterface.events import EventChannel
from nlinterface.models import Intent, KeepScreenOn, ThemeChoice
from nlinterface.preferences import AppPreferences

from .decoder import Command, CommandDecoder
from .input import CaptureOutcome, CaptureResult, SpeechCaptureController
from .output import SpeechOutputQueue


class DialogState(str, Enum):
    IDLE = "idle"
    LISTENING_COMMAND = "listening_command"
    SPEAKING_QUESTION = "speaking_question"
    LISTENING_ANSWER = "listening_answer"


@dataclass(slots=True)
class DialogContext:
    """Working memory of the one pending follow-up exchange."""

    pending_intent: Intent
    awaiting_response: bool = False


class ResolvedAction(str, Enum):
    NAVIGATE = "navigate"
    SET_THEME = "set_theme"
    SET_SCREEN_SETTING = "set_screen_setting"


@dataclass(frozen=True, slots=True)
class ResolvedCommand:
    """Executable command delivered to application collaborators."""

    action: ResolvedAction
    argument: str


class DialogEngine:
    """Runs voice exchanges on one event loop.

    ``activate`` is the only inbound trigger. Transcripts are decoded against
    the table of the state that is listening: a follow-up answer is matched
    only against the pending intent's choices, so a top-level phrase spoken as
    an answer is an invalid command.
    """

    def __init__(
        self,
        *,
        capture: SpeechCaptureController,
        output: SpeechOutputQueue,
        decoder: CommandDecoder,
        preferences: AppPreferences,
        logger: logging.Logger | None = None,
    ) -> None:
        self._capture = capture
        self._output = output
        self._decoder = decoder
        self._phrases = decoder.phrases
        self._preferences = preferences
        self._logger = logger or logging.getLogger("nlinterface.voice.dialogue")

        self._state = DialogState.IDLE
        self._context: DialogContext | None = None
        self._turn = 0
        self._turn_task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self.commands: EventChannel[ResolvedCommand] = EventChannel("resolved_commands")
        self.state_changed: EventChannel[DialogState] = EventChannel("dialog_state_changed")

    @property
    def state(self) -> DialogState:
        return self._state

    @property
    def context(self) -> DialogContext | None:
        return self._context

    @property
    def is_listening(self) -> bool:
        return self._capture.is_listening

    async def start(self) -> None:
        """Bind the engine to the running loop and start narration."""
        self._loop = asyncio.get_running_loop()
        await self._output.start()
        self._logger.info("dialog_engine_started")

    async def stop(self) -> None:
        self._turn += 1
        self._capture.cancel_listening()
        await self._cancel_turn_task()
        self._reset()
        await self._output.stop()
        self._logger.info("dialog_engine_stopped")

    def activate(self) -> None:
        """Handle a press of the activation control. Must run on the engine loop."""
        if self._state in (DialogState.LISTENING_COMMAND, DialogState.LISTENING_ANSWER):
            self._logger.info("dialog_listening_cancelled", extra={"state": self._state.value})
            self._turn += 1
            self._capture.cancel_listening()
            self._reset()
            return

        if self._turn_task and not self._turn_task.done():
            self._turn_task.cancel()
        self._reset()
        self._begin_command_turn()

    def activate_threadsafe(self) -> None:
        """Schedule ``activate`` on the engine loop from another thread."""
        if self._loop is None:
            raise RuntimeError("DialogEngine.start() must run before activate_threadsafe()")
        self._loop.call_soon_threadsafe(self.activate)

    async def join(self) -> None:
        """Wait until the current exchange has finished."""
        while self._turn_task and not self._turn_task.done():
            task = self._turn_task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    def _begin_command_turn(self) -> None:
        if self._capture.is_listening:
            self._capture.cancel_listening()

        self._turn += 1
        turn = self._turn
        result = self._capture.begin_listening()
        self._set_state(DialogState.LISTENING_COMMAND)
        self._turn_task = asyncio.get_running_loop().create_task(
            self._run_turn(turn, result), name=f"dialog-turn-{turn}"
        )

    async def _run_turn(self, turn: int, pending: asyncio.Future[CaptureResult]) -> None:
        try:
            result = await pending
            if turn != self._turn:
                return
            if result.outcome == CaptureOutcome.TRANSCRIPT:
                await self._handle_command(turn, result.transcript or "")
            else:
                self._handle_capture_failure(result)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - every turn must end back in IDLE.
            self._logger.exception("dialog_turn_failed", extra={"turn": turn})
            if turn == self._turn:
                self._output.say(self._phrases.recognition_failed)
        if turn == self._turn:
            self._reset()

    async def _handle_command(self, turn: int, transcript: str) -> None:
        command = self._decoder.decode(transcript)
        self._logger.info(
            "command_decoded",
            extra={"transcript": transcript, "intent": command.intent.value, "argument": command.argument},
        )

        if command.requires_follow_up:
            await self._ask_follow_up(turn, command)
            return

        if command.intent == Intent.NAVIGATE:
            self._publish(ResolvedCommand(action=ResolvedAction.NAVIGATE, argument=command.argument or ""))
        elif command.intent == Intent.LIST_OPTIONS:
            self._output.say(self._phrases.options_message())
        elif command.intent == Intent.READ_SETTINGS:
            self._output.say(
                self._phrases.current_settings.format(
                    theme=self._phrases.phrase_for_choice(self._preferences.theme),
                    screen=self._phrases.phrase_for_choice(self._preferences.keep_screen_on),
                )
            )
        elif command.intent == Intent.READ_THEME_SETTING:
            theme = self._phrases.phrase_for_choice(self._preferences.theme)
            self._output.say(self._phrases.current_theme_setting.format(choice=theme))
        elif command.intent == Intent.READ_SCREEN_SETTING:
            screen = self._phrases.phrase_for_choice(self._preferences.keep_screen_on)
            self._output.say(self._phrases.current_screen_setting.format(choice=screen))
        else:
            self._output.say(self._phrases.invalid_command)

    async def _ask_follow_up(self, turn: int, command: Command) -> None:
        self._context = DialogContext(pending_intent=command.intent)
        self._set_state(DialogState.SPEAKING_QUESTION)
        await self._output.say_and_await(self._phrases.question_for(command.intent))
        if turn != self._turn:
            return

        try:
            pending = self._capture.begin_listening()
        except CaptureInProgressError:
            self._logger.warning("dialog_answer_capture_busy", extra={"turn": turn})
            return
        self._context.awaiting_response = True
        self._set_state(DialogState.LISTENING_ANSWER)

        result = await pending
        if turn != self._turn:
            return
        if result.outcome == CaptureOutcome.TRANSCRIPT:
            self._resolve_answer(command.intent, result.transcript or "")
        else:
            self._handle_capture_failure(result)

    def _resolve_answer(self, pending_intent: Intent, transcript: str) -> None:
        answer = self._decoder.decode_response(transcript, pending_intent)
        self._logger.info(
            "answer_decoded",
            extra={"transcript": transcript, "intent": pending_intent.value, "argument": answer.argument},
        )
        if answer.intent == Intent.UNKNOWN:
            self._output.say(self._phrases.invalid_command)
            return

        if pending_intent == Intent.CHANGE_THEME:
            choice = ThemeChoice(answer.argument)
            self._preferences.theme = choice
            self._output.say(self._phrases.new_theme_setting.format(choice=self._phrases.phrase_for_choice(choice)))
            self._publish(ResolvedCommand(action=ResolvedAction.SET_THEME, argument=choice.value))
        else:
            screen = KeepScreenOn(answer.argument)
            self._preferences.keep_screen_on = screen
            self._output.say(self._phrases.new_screen_setting.format(choice=self._phrases.phrase_for_choice(screen)))
            self._publish(ResolvedCommand(action=ResolvedAction.SET_SCREEN_SETTING, argument=screen.value))

    def _handle_capture_failure(self, result: CaptureResult) -> None:
        self._logger.info("capture_without_transcript", extra={"outcome": result.outcome.value, "error": result.error})
        if result.outcome == CaptureOutcome.ERROR:
            self._output.say(self._phrases.recognition_failed)

    def _publish(self, command: ResolvedCommand) -> None:
        self._logger.info("command_resolved", extra={"action": command.action.value, "argument": command.argument})
        self.commands.publish(command)

    def _reset(self) -> None:
        self._context = None
        self._set_state(DialogState.IDLE)

    def _set_state(self, state: DialogState) -> None:
        if state == self._state:
            return
        self._logger.debug("dialog_state_changed", extra={"from": self._state.value, "to": state.value})
        self._state = state
        self.state_changed.publish(state)

    async def _cancel_turn_task(self) -> None:
        if not self._turn_task:
            return
        self._turn_task.cancel()
        try:
            await self._turn_task
        except asyncio.CancelledError:
            pass
        finally:
            self._turn_task = None
