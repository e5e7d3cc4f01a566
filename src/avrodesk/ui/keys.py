"""Raw terminal input decoded into key names.

Key names are the strings the workflow engine matches on: printable
characters stand for themselves, everything else is a lowercase name such
as "enter", "esc", "pgdown", "shift+tab" or "ctrl+s".
"""

import asyncio
import codecs
import logging
import os
import sys
import termios
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    " ": "space",
}

# CSI / SS3 sequences after the ESC byte
_ESCAPE_SEQUENCES = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "[H": "home",
    "[F": "end",
    "[Z": "shift+tab",
    "[1~": "home",
    "[7~": "home",
    "[4~": "end",
    "[8~": "end",
    "[2~": "insert",
    "[3~": "delete",
    "[5~": "pgup",
    "[6~": "pgdown",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
    "OH": "home",
    "OF": "end",
}


def _read_escape(text: str, start: int) -> tuple[Optional[str], int]:
    """Decode the sequence following an ESC at text[start - 1].

    Returns the key name (None for unrecognized sequences) and the index
    just past the sequence.
    """
    if start >= len(text):
        return "esc", start

    lead = text[start]
    if lead == "O" and start + 1 < len(text):
        sequence = text[start : start + 2]
        return _ESCAPE_SEQUENCES.get(sequence), start + 2

    if lead == "[":
        end = start + 1
        # Parameter and intermediate bytes, then one final byte in @..~
        while end < len(text) and not ("@" <= text[end] <= "~"):
            end += 1
        if end >= len(text):
            return None, len(text)
        sequence = text[start : end + 1]
        return _ESCAPE_SEQUENCES.get(sequence), end + 1

    if lead == "\x1b":
        return "esc", start

    return f"alt+{lead}", start + 1


def decode_keys(text: str) -> list[str]:
    """Split decoded terminal input into key names."""
    keys: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\x1b":
            key, i = _read_escape(text, i + 1)
            if key is not None:
                keys.append(key)
            continue
        i += 1
        if char in _CONTROL_KEYS:
            keys.append(_CONTROL_KEYS[char])
        elif "\x01" <= char <= "\x1a":
            keys.append(f"ctrl+{chr(ord(char) + 96)}")
        elif char.isprintable():
            keys.append(char)
    return keys


class KeyReader:
    """Reads stdin in non-canonical mode and reports key names.

    The terminal is switched out of line mode with echo, signal keys and
    flow control disabled, so ctrl+c and ctrl+s arrive as keys. Output
    processing is left on. stop() restores the original settings, for
    example while an external editor owns the terminal.
    """

    def __init__(self, on_key: Callable[[str], None], fd: Optional[int] = None):
        self.on_key = on_key
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._saved: Optional[list] = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def start(self) -> None:
        if self._saved is not None:
            return
        self._saved = termios.tcgetattr(self.fd)
        attrs = termios.tcgetattr(self.fd)
        attrs[0] &= ~(termios.ICRNL | termios.IXON)
        attrs[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(self.fd, termios.TCSADRAIN, attrs)

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.fd, self._on_readable)
        logger.debug("Key reader started")

    def stop(self) -> None:
        if self._saved is None:
            return
        if self._loop is not None:
            self._loop.remove_reader(self.fd)
        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
        self._saved = None
        self._decoder.reset()
        logger.debug("Key reader stopped")

    def _on_readable(self) -> None:
        data = os.read(self.fd, 1024)
        if not data:
            return
        for key in decode_keys(self._decoder.decode(data)):
            self.on_key(key)
