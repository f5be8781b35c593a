"""Localized phrase tables consumed by the decoder and the dialog engine.

The tables are plain data: switching locale means loading another
:class:`PhraseBook`, never changing engine logic.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from nlinterface.models import Intent, KeepScreenOn, ScreenTarget, ThemeChoice

_COMMAND_INTENTS = frozenset(
    {
        Intent.CHANGE_THEME,
        Intent.CHANGE_SCREEN_SETTING,
        Intent.LIST_OPTIONS,
        Intent.READ_SETTINGS,
        Intent.READ_THEME_SETTING,
        Intent.READ_SCREEN_SETTING,
    }
)


def normalize_phrase(text: str) -> str:
    """Trim, collapse inner whitespace, drop trailing punctuation and case-fold."""
    collapsed = " ".join(text.split())
    return collapsed.rstrip(".!?").strip().casefold()


def _join_choices(phrases: list[str], conjunction: str) -> str:
    if len(phrases) <= 1:
        return "".join(phrases)
    return f"{', '.join(phrases[:-1])} {conjunction} {phrases[-1]}"


class PhraseBook(BaseModel):
    """Fixed phrase tables and narration templates for one locale."""

    locale: str = "en-US"
    navigation_prefix: str = "go to"
    navigation_targets: dict[str, ScreenTarget] = Field(
        default_factory=lambda: {
            "main menu": ScreenTarget.MAIN,
            "grocery list": ScreenTarget.GROCERY_LIST,
            "place details": ScreenTarget.PLACE_DETAILS,
            "settings": ScreenTarget.SETTINGS,
        }
    )
    commands: dict[str, Intent] = Field(
        default_factory=lambda: {
            "change theme": Intent.CHANGE_THEME,
            "change screen settings": Intent.CHANGE_SCREEN_SETTING,
            "tell me my options": Intent.LIST_OPTIONS,
            "list current settings": Intent.READ_SETTINGS,
            "read theme settings": Intent.READ_THEME_SETTING,
            "read screen settings": Intent.READ_SCREEN_SETTING,
        }
    )
    theme_choices: dict[str, ThemeChoice] = Field(
        default_factory=lambda: {
            "light theme": ThemeChoice.LIGHT,
            "dark theme": ThemeChoice.DARK,
            "default theme": ThemeChoice.SYSTEM_DEFAULT,
        }
    )
    screen_choices: dict[str, KeepScreenOn] = Field(
        default_factory=lambda: {
            "keep screen always on": KeepScreenOn.YES,
            "dim screen after a while": KeepScreenOn.NO,
        }
    )
    screen_titles: dict[ScreenTarget, str] = Field(
        default_factory=lambda: {
            ScreenTarget.MAIN: "Main menu",
            ScreenTarget.GROCERY_LIST: "Grocery list",
            ScreenTarget.PLACE_DETAILS: "Place details",
            ScreenTarget.SETTINGS: "Settings",
        }
    )
    conjunction: str = "or"
    invalid_command: str = "Invalid command"
    recognition_failed: str = "Sorry, speech recognition is unavailable."
    options_intro: str = "Your options are"
    new_theme_setting: str = "New theme setting: {choice}"
    new_screen_setting: str = "New screen setting: {choice}"
    current_settings: str = "Current settings: {theme}, {screen}"
    current_theme_setting: str = "Current theme setting: {choice}"
    current_screen_setting: str = "Current screen setting: {choice}"

    @field_validator("navigation_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        normalized = normalize_phrase(value)
        if not normalized:
            raise ValueError("navigation_prefix must not be empty")
        return normalized

    @field_validator("navigation_targets", "commands", "theme_choices", "screen_choices")
    @classmethod
    def _normalize_keys(cls, value: dict) -> dict:
        normalized = {normalize_phrase(phrase): target for phrase, target in value.items()}
        if "" in normalized:
            raise ValueError("phrase tables must not contain empty phrases")
        return normalized

    @field_validator("commands")
    @classmethod
    def _only_command_intents(cls, value: dict[str, Intent]) -> dict[str, Intent]:
        invalid = sorted(phrase for phrase, intent in value.items() if intent not in _COMMAND_INTENTS)
        if invalid:
            raise ValueError(f"command phrases must map to exact-match intents: {invalid}")
        return value

    @classmethod
    def from_file(cls, path: str | Path) -> "PhraseBook":
        """Load a phrase book from a JSON file; omitted fields keep their English defaults."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def question_for(self, intent: Intent) -> str:
        """Clarifying question listing every accepted answer for ``intent``."""
        return f"{_join_choices(list(self.answer_table(intent)), self.conjunction)}?"

    def answer_table(self, intent: Intent) -> dict[str, ThemeChoice] | dict[str, KeepScreenOn]:
        if intent == Intent.CHANGE_THEME:
            return self.theme_choices
        if intent == Intent.CHANGE_SCREEN_SETTING:
            return self.screen_choices
        raise KeyError(f"No answer table for intent: {intent.value}")

    def options_message(self) -> str:
        phrases = [*self.commands, *(f"{self.navigation_prefix} {target}" for target in self.navigation_targets)]
        return f"{self.options_intro} {_join_choices(phrases, 'and')}."

    def phrase_for_choice(self, choice: ThemeChoice | KeepScreenOn) -> str:
        table = self.theme_choices if isinstance(choice, ThemeChoice) else self.screen_choices
        for phrase, value in table.items():
            if value == choice:
                return phrase
        return choice.value.replace("_", " ")

    def title_for(self, target: ScreenTarget) -> str:
        return self.screen_titles.get(target, target.value.replace("_", " "))
