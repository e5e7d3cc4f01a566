"""Clipboard access through the platform's copy command."""

import shutil
import subprocess
import sys

from core.errors.exceptions import ClipboardError

# (command, args) candidates in preference order per platform
_LINUX_COMMANDS = [
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]


def find_copy_command() -> list[str] | None:
    if sys.platform == "darwin":
        candidates = [["pbcopy"]]
    elif sys.platform == "win32":
        candidates = [["clip"]]
    else:
        candidates = _LINUX_COMMANDS
    for command in candidates:
        if shutil.which(command[0]):
            return command
    return None


def copy_to_clipboard(text: str) -> None:
    """Place text on the system clipboard.

    Raises:
        ClipboardError: if no copy command is available or it fails
    """
    command = find_copy_command()
    if command is None:
        raise ClipboardError("no clipboard command found (install wl-copy, xclip or xsel)")
    try:
        subprocess.run(command, input=text.encode("utf-8"), check=True, timeout=5)
    except (OSError, subprocess.SubprocessError) as e:
        raise ClipboardError(f"copy failed: {e}", cause=e) from e
