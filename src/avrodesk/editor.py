"""External editor launcher."""

import logging
import os
import shlex
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

from core.errors.exceptions import EditorError

logger = logging.getLogger(__name__)

FALLBACK_EDITORS = ["vim", "vi", "nano"]


def find_editor() -> list[str] | None:
    """Editor command: $EDITOR, $VISUAL, then platform fallbacks."""
    for var in ("EDITOR", "VISUAL"):
        value = os.environ.get(var, "").strip()
        if value:
            return shlex.split(value)
    if sys.platform == "win32":
        return ["notepad"]
    for candidate in FALLBACK_EDITORS:
        path = shutil.which(candidate)
        if path:
            return [path]
    return None


def open_in_editor(text: str) -> str:
    """Edit text in an external editor and return the saved result.

    Blocks until the editor exits; the caller must release the terminal
    first.

    Raises:
        EditorError: if no editor is found, it fails to start or exits non-zero
    """
    command = find_editor()
    if command is None:
        raise EditorError("no editor found: set $EDITOR environment variable")

    fd, name = tempfile.mkstemp(prefix="avrodesk-", suffix=".json")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)

        logger.info("Launching editor", extra={"editor": command[0]})
        try:
            completed = subprocess.run([*command, str(path)], check=False)
        except OSError as e:
            raise EditorError(f"cannot run editor {command[0]!r}: {e}", cause=e) from e
        if completed.returncode != 0:
            raise EditorError(f"editor exited with status {completed.returncode}")

        return path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)
