"""Immutable cursor-aware text buffer used for drafts and input fields."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class TextBuffer:
    """Lines of text plus a cursor position.

    Every edit returns a new buffer. Single-line buffers ignore newlines.
    """

    lines: tuple[str, ...] = ("",)
    row: int = 0
    col: int = 0
    multiline: bool = True

    @classmethod
    def from_text(cls, text: str, multiline: bool = True) -> "TextBuffer":
        if not multiline:
            text = text.replace("\r", "").replace("\n", " ")
        lines = tuple(text.replace("\r\n", "\n").split("\n"))
        return cls(lines=lines, multiline=multiline)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def current_line(self) -> str:
        return self.lines[self.row]

    def _with_line(self, row: int, line: str, col: int) -> "TextBuffer":
        lines = self.lines[:row] + (line,) + self.lines[row + 1:]
        return replace(self, lines=lines, row=row, col=col)

    def insert(self, chars: str) -> "TextBuffer":
        buffer = self
        for i, chunk in enumerate(chars.replace("\r\n", "\n").split("\n")):
            if i:
                buffer = buffer.newline()
            if chunk:
                line = buffer.current_line
                buffer = buffer._with_line(
                    buffer.row, line[: buffer.col] + chunk + line[buffer.col:], buffer.col + len(chunk)
                )
        return buffer

    def newline(self) -> "TextBuffer":
        if not self.multiline:
            return self
        line = self.current_line
        lines = (
            self.lines[: self.row]
            + (line[: self.col], line[self.col:])
            + self.lines[self.row + 1:]
        )
        return replace(self, lines=lines, row=self.row + 1, col=0)

    def backspace(self) -> "TextBuffer":
        if self.col > 0:
            line = self.current_line
            return self._with_line(self.row, line[: self.col - 1] + line[self.col:], self.col - 1)
        if self.row == 0:
            return self
        previous = self.lines[self.row - 1]
        lines = (
            self.lines[: self.row - 1]
            + (previous + self.current_line,)
            + self.lines[self.row + 1:]
        )
        return replace(self, lines=lines, row=self.row - 1, col=len(previous))

    def delete(self) -> "TextBuffer":
        line = self.current_line
        if self.col < len(line):
            return self._with_line(self.row, line[: self.col] + line[self.col + 1:], self.col)
        if self.row + 1 >= len(self.lines):
            return self
        lines = (
            self.lines[: self.row]
            + (line + self.lines[self.row + 1],)
            + self.lines[self.row + 2:]
        )
        return replace(self, lines=lines)

    def left(self) -> "TextBuffer":
        if self.col > 0:
            return replace(self, col=self.col - 1)
        if self.row > 0:
            return replace(self, row=self.row - 1, col=len(self.lines[self.row - 1]))
        return self

    def right(self) -> "TextBuffer":
        if self.col < len(self.current_line):
            return replace(self, col=self.col + 1)
        if self.row + 1 < len(self.lines):
            return replace(self, row=self.row + 1, col=0)
        return self

    def up(self, count: int = 1) -> "TextBuffer":
        row = max(0, self.row - count)
        return replace(self, row=row, col=min(self.col, len(self.lines[row])))

    def down(self, count: int = 1) -> "TextBuffer":
        row = min(len(self.lines) - 1, self.row + count)
        return replace(self, row=row, col=min(self.col, len(self.lines[row])))

    def home(self) -> "TextBuffer":
        return replace(self, col=0)

    def end(self) -> "TextBuffer":
        return replace(self, col=len(self.current_line))


_MOVES = {
    "left": TextBuffer.left,
    "right": TextBuffer.right,
    "up": TextBuffer.up,
    "down": TextBuffer.down,
    "home": TextBuffer.home,
    "end": TextBuffer.end,
    "backspace": TextBuffer.backspace,
    "delete": TextBuffer.delete,
    "enter": TextBuffer.newline,
}


def edit(buffer: TextBuffer, key: str) -> TextBuffer:
    """Apply an editing key; printable single characters are inserted."""
    action = _MOVES.get(key)
    if action is not None:
        return action(buffer)
    if key == "pgup":
        return buffer.up(10)
    if key == "pgdown":
        return buffer.down(10)
    if key == "space":
        return buffer.insert(" ")
    if len(key) == 1 and key.isprintable():
        return buffer.insert(key)
    return buffer
