"""Fixed-phrase decoding of recognized speech into structured commands."""

from __future__ import annotations

import re
from dataclasses import dataclass

from nlinterface.models import Intent
from nlinterface.voice.phrases import PhraseBook, normalize_phrase

FOLLOW_UP_INTENTS = frozenset({Intent.CHANGE_THEME, Intent.CHANGE_SCREEN_SETTING})


@dataclass(frozen=True, slots=True)
class Command:
    intent: Intent
    argument: str | None = None

    @property
    def requires_follow_up(self) -> bool:
        return self.intent in FOLLOW_UP_INTENTS


UNKNOWN_COMMAND = Command(intent=Intent.UNKNOWN)


class CommandDecoder:
    """Maps transcripts to commands with deterministic phrase matching.

    Top-level decoding checks, in order: the navigation pattern anywhere in the
    text, then the exact command phrase table, then falls back to ``UNKNOWN``.
    Answers to a follow-up question are matched only against the answer table
    of the pending intent.
    """

    def __init__(self, phrases: PhraseBook | None = None) -> None:
        self._phrases = phrases or PhraseBook()
        self._navigation = re.compile(rf"(?:^|\s){re.escape(self._phrases.navigation_prefix)}(?:\s+(.+))?$")

    @property
    def phrases(self) -> PhraseBook:
        return self._phrases

    def decode(self, raw_text: str) -> Command:
        text = normalize_phrase(raw_text)
        if not text:
            return UNKNOWN_COMMAND

        match = self._navigation.search(text)
        if match:
            target = self._phrases.navigation_targets.get((match.group(1) or "").strip())
            if target is None:
                return UNKNOWN_COMMAND
            return Command(intent=Intent.NAVIGATE, argument=target.value)

        intent = self._phrases.commands.get(text)
        if intent is None:
            return UNKNOWN_COMMAND
        return Command(intent=intent)

    def decode_response(self, raw_text: str, pending_intent: Intent) -> Command:
        """Resolve an answer turn; the argument is the chosen option's value."""
        table = self._phrases.answer_table(pending_intent)
        choice = table.get(normalize_phrase(raw_text))
        if choice is None:
            return UNKNOWN_COMMAND
        return Command(intent=pending_intent, argument=choice.value)
