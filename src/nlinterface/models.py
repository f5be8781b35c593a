from __future__ import annotations

from enum import Enum


class ScreenTarget(str, Enum):
    MAIN = "main"
    GROCERY_LIST = "grocery_list"
    PLACE_DETAILS = "place_details"
    SETTINGS = "settings"


class ThemeChoice(str, Enum):
    SYSTEM_DEFAULT = "system_default"
    LIGHT = "light"
    DARK = "dark"


class KeepScreenOn(str, Enum):
    NO = "no"
    YES = "yes"


class Intent(str, Enum):
    NAVIGATE = "navigate"
    CHANGE_THEME = "change_theme"
    CHANGE_SCREEN_SETTING = "change_screen_setting"
    LIST_OPTIONS = "list_options"
    READ_SETTINGS = "read_settings"
    READ_THEME_SETTING = "read_theme_setting"
    READ_SCREEN_SETTING = "read_screen_setting"
    UNKNOWN = "unknown"
