"""Colours and styles for the terminal screen."""

from dataclasses import dataclass

from avrodesk.workflow.state import StatusLevel


@dataclass(frozen=True)
class Theme:
    accent: str = "bold cyan"
    border: str = "blue"
    border_active: str = "bold bright_cyan"
    selected: str = "black on cyan"
    muted: str = "dim"
    cursor: str = "reverse"
    header: str = "bold white on dark_blue"
    key_hint: str = "bold yellow"
    info: str = "white"
    success: str = "bold green"
    error: str = "bold red"
    decode_error: str = "yellow"

    def status(self, level: StatusLevel) -> str:
        return {
            StatusLevel.INFO: self.info,
            StatusLevel.SUCCESS: self.success,
            StatusLevel.ERROR: self.error,
        }[level]


DEFAULT_THEME = Theme()
