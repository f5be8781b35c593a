"""Injected settings service read and written by the dialog engine."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Protocol, TypeVar

from nlinterface.models import KeepScreenOn, ThemeChoice

E = TypeVar("E", bound=Enum)

THEME_KEY = "theme"
KEEP_SCREEN_ON_KEY = "keep_screen_on"


class PreferenceStore(Protocol):
    """Key-value persistence contract for user preferences."""

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key`` or ``None``."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""


class InMemoryPreferenceStore:
    """Process-local preference store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonPreferenceStore:
    """Flat JSON object persisted on every write."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        payload = self._load()
        payload[key] = value
        with self._path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            return json.load(handle)


class AppPreferences:
    """Typed accessors over a :class:`PreferenceStore`."""

    def __init__(self, store: PreferenceStore | None = None, *, logger: logging.Logger | None = None) -> None:
        self._store = store or InMemoryPreferenceStore()
        self._logger = logger or logging.getLogger("nlinterface.preferences")

    @property
    def theme(self) -> ThemeChoice:
        return self._read(THEME_KEY, ThemeChoice, ThemeChoice.SYSTEM_DEFAULT)

    @theme.setter
    def theme(self, choice: ThemeChoice) -> None:
        self._store.set(THEME_KEY, choice.value)
        self._logger.info("preference_updated", extra={"key": THEME_KEY, "value": choice.value})

    @property
    def keep_screen_on(self) -> KeepScreenOn:
        return self._read(KEEP_SCREEN_ON_KEY, KeepScreenOn, KeepScreenOn.NO)

    @keep_screen_on.setter
    def keep_screen_on(self, choice: KeepScreenOn) -> None:
        self._store.set(KEEP_SCREEN_ON_KEY, choice.value)
        self._logger.info("preference_updated", extra={"key": KEEP_SCREEN_ON_KEY, "value": choice.value})

    def _read(self, key: str, enum_type: type[E], default: E) -> E:
        raw = self._store.get(key)
        if raw is None:
            return default
        try:
            return enum_type(raw)
        except ValueError:
            self._logger.warning("preference_invalid", extra={"key": key, "value": raw})
            return default
