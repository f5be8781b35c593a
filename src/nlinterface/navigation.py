"""Application-side collaborator executing resolved voice commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from nlinterface.models import KeepScreenOn, ScreenTarget, ThemeChoice
from nlinterface.voice.dialogue import ResolvedAction, ResolvedCommand
from nlinterface.voice.output import SpeechOutputQueue
from nlinterface.voice.phrases import PhraseBook


@dataclass(slots=True)
class ScreenState:
    current: ScreenTarget = ScreenTarget.MAIN
    history: list[ScreenTarget] = field(default_factory=list)
    theme: ThemeChoice | None = None
    keep_screen_on: KeepScreenOn | None = None


class ScreenNavigator:
    """Tracks the visible screen and announces it on arrival."""

    def __init__(
        self,
        output: SpeechOutputQueue,
        *,
        phrases: PhraseBook | None = None,
        start: ScreenTarget = ScreenTarget.MAIN,
        logger: logging.Logger | None = None,
    ) -> None:
        self._output = output
        self._phrases = phrases or PhraseBook()
        self._state = ScreenState(current=start)
        self._logger = logger or logging.getLogger("nlinterface.navigation")

    @property
    def state(self) -> ScreenState:
        return self._state

    def handle(self, command: ResolvedCommand) -> None:
        """Execute one resolved command; subscribe this to ``DialogEngine.commands``."""
        if command.action == ResolvedAction.NAVIGATE:
            self.navigate(ScreenTarget(command.argument))
        elif command.action == ResolvedAction.SET_THEME:
            self._state.theme = ThemeChoice(command.argument)
            self._logger.info("theme_applied", extra={"theme": command.argument})
        elif command.action == ResolvedAction.SET_SCREEN_SETTING:
            self._state.keep_screen_on = KeepScreenOn(command.argument)
            self._logger.info("screen_setting_applied", extra={"keep_screen_on": command.argument})

    def navigate(self, target: ScreenTarget) -> None:
        self._state.history.append(self._state.current)
        self._state.current = target
        self._logger.info("screen_changed", extra={"screen": target.value})
        self._output.say(self._phrases.title_for(target))
