"""Source positions and the position-tracking cursor used by the grammar."""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Position:
    """Source position: origin label, 1-based line and column, 0-based offset."""

    origin: str
    line: int
    column: int
    offset: int


class Cursor:
    """A view over the text of one logical unit with a movable read offset.

    The cursor starts at ``line``/``column`` so that child cursors created for
    template arguments report positions in the caller's source.
    """

    def __init__(self, text: str, origin: str, line: int = 1, column: int = 1) -> None:
        self.text = text
        self.origin = origin
        self.offset = 0
        self._line = line
        self._column = column
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]
        self.furthest = 0
        self.expected = ""

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def position(self, offset: int | None = None) -> Position:
        if offset is None:
            offset = self.offset
        idx = bisect.bisect_right(self._line_starts, offset) - 1
        column = offset - self._line_starts[idx] + 1
        if idx == 0:
            column += self._column - 1
        return Position(self.origin, self._line + idx, column, offset)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self, n: int) -> str:
        start = self.offset
        self.offset = min(len(self.text), self.offset + n)
        return self.text[start : self.offset]

    def remaining(self) -> str:
        return self.text[self.offset :]

    def at_end(self) -> bool:
        return self.offset >= len(self.text)

    def peek(self, n: int = 1) -> str:
        return self.text[self.offset : self.offset + n]

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.offset)

    def match(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        """Match ``pattern`` at the current offset (lookbehind sees earlier text)."""
        return pattern.match(self.text, self.offset)

    # ------------------------------------------------------------------
    # Failure tracking
    # ------------------------------------------------------------------

    def note_failure(self, offset: int, expected: str) -> None:
        if offset > self.furthest or (offset == self.furthest and not self.expected):
            self.furthest = offset
            self.expected = expected

    def furthest_position(self) -> Position:
        return self.position(self.furthest)
