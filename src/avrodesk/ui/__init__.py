"""Terminal front end: key input, rendering and the full-screen app."""

from avrodesk.ui.app import AvrodeskApp
from avrodesk.ui.config_selector import select_profile
from avrodesk.ui.keys import KeyReader, decode_keys
from avrodesk.ui.render import render_screen
from avrodesk.ui.styles import DEFAULT_THEME, Theme

__all__ = [
    "AvrodeskApp",
    "select_profile",
    "KeyReader",
    "decode_keys",
    "render_screen",
    "Theme",
    "DEFAULT_THEME",
]
