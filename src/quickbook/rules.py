"""Parser combinators over a position-tracking :class:`~quickbook.cursor.Cursor`.

A rule never raises to signal a mismatch. ``Rule.parse`` returns either a
:class:`Success` carrying the semantic value, with the cursor advanced past
the match, or a :class:`Failure`, with the cursor rewound to where the rule
started and the failure recorded on the cursor so the furthest point reached
is available for diagnostics.

Rules compose with ``+`` (sequence) and ``|`` (ordered choice)::

    bold = (Skip(Literal("[*")) + phrase + Skip(Literal("]"))).action(on_bold)
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from quickbook.cursor import Cursor, Position


@dataclass(frozen=True, slots=True)
class Success:
    """A successful match and its semantic value."""

    value: Any


@dataclass(frozen=True, slots=True)
class Failure:
    """A failed match: the offset where it failed and what was expected."""

    offset: int
    expected: str


Result = Success | Failure


class _Skipped:
    def __repr__(self) -> str:
        return "SKIPPED"


SKIPPED = _Skipped()


class Rule:
    """Base class for all grammar rules."""

    name: str = ""

    def parse(self, cursor: Cursor) -> Result:
        start = cursor.offset
        result = self._match(cursor)
        if isinstance(result, Failure):
            cursor.offset = start
            cursor.note_failure(result.offset, result.expected)
        return result

    def _match(self, cursor: Cursor) -> Result:
        raise NotImplementedError

    def _fail(self, cursor: Cursor, offset: int | None = None) -> Failure:
        return Failure(cursor.offset if offset is None else offset, self.describe())

    def describe(self) -> str:
        return self.name or type(self).__name__

    def named(self, name: str) -> Rule:
        self.name = name
        return self

    # ------------------------------------------------------------------
    # Composition sugar
    # ------------------------------------------------------------------

    def __add__(self, other: Rule) -> Seq:
        if isinstance(self, Seq) and not self.name:
            return Seq(*self.rules, other)
        return Seq(self, other)

    def __or__(self, other: Rule) -> Alt:
        if isinstance(self, Alt) and not self.name:
            return Alt(*self.alternatives, other)
        return Alt(self, other)

    def map(self, fn: Callable[[Any], Any]) -> Map:
        return Map(self, fn)

    def action(self, fn: Callable[[Any, Position], Any]) -> Action:
        return Action(self, fn)

    def pick(self, index: int) -> Map:
        return Map(self, lambda values: values[index])


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


class Literal(Rule):
    def __init__(self, text: str) -> None:
        self.text = text
        self.name = repr(text)

    def _match(self, cursor: Cursor) -> Result:
        if cursor.startswith(self.text):
            cursor.advance(len(self.text))
            return Success(self.text)
        return self._fail(cursor)


class Regex(Rule):
    """Match a regular expression at the cursor.

    The value is the text of ``group`` or, when ``group`` is None, the match
    object itself.
    """

    def __init__(self, pattern: str | re.Pattern[str], group: int | str | None = 0, flags: int = 0) -> None:
        self.pattern = re.compile(pattern, flags) if isinstance(pattern, str) else pattern
        self.group = group
        self.name = f"/{self.pattern.pattern}/"

    def _match(self, cursor: Cursor) -> Result:
        m = cursor.match(self.pattern)
        if m is None:
            return self._fail(cursor)
        cursor.offset = m.end()
        if self.group is None:
            return Success(m)
        return Success(m.group(self.group))


class End(Rule):
    name = "end of input"

    def _match(self, cursor: Cursor) -> Result:
        if cursor.at_end():
            return Success(None)
        return self._fail(cursor)


class Fn(Rule):
    """A rule backed by a function ``fn(cursor) -> Result``.

    Used where matching depends on runtime state, such as symbol lookups.
    """

    def __init__(self, fn: Callable[[Cursor], Result], name: str = "") -> None:
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "")

    def _match(self, cursor: Cursor) -> Result:
        return self.fn(cursor)


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------


class Seq(Rule):
    """Match every rule in order. The value is a tuple of the non-skipped values."""

    def __init__(self, *rules: Rule) -> None:
        self.rules = rules

    def _match(self, cursor: Cursor) -> Result:
        values: list[Any] = []
        for rule in self.rules:
            result = rule.parse(cursor)
            if isinstance(result, Failure):
                return result
            if result.value is not SKIPPED:
                values.append(result.value)
        return Success(tuple(values))


class Alt(Rule):
    """Ordered choice: the first alternative that matches wins."""

    def __init__(self, *alternatives: Rule) -> None:
        self.alternatives = alternatives

    def _match(self, cursor: Cursor) -> Result:
        best: Failure | None = None
        for rule in self.alternatives:
            result = rule.parse(cursor)
            if isinstance(result, Success):
                return result
            if best is None or result.offset > best.offset:
                best = result
        return best if best is not None else self._fail(cursor)


class Many(Rule):
    """Match ``rule`` repeatedly; the value is the list of values.

    Stops at the first failure or at a match that consumed nothing.
    """

    def __init__(self, rule: Rule, min: int = 0) -> None:
        self.rule = rule
        self.min = min

    def _match(self, cursor: Cursor) -> Result:
        values: list[Any] = []
        while True:
            before = cursor.offset
            result = self.rule.parse(cursor)
            if isinstance(result, Failure):
                if len(values) < self.min:
                    return result
                break
            if cursor.offset == before:
                break
            if result.value is not SKIPPED:
                values.append(result.value)
        return Success(values)


class Opt(Rule):
    def __init__(self, rule: Rule, default: Any = None) -> None:
        self.rule = rule
        self.default = default

    def _match(self, cursor: Cursor) -> Result:
        result = self.rule.parse(cursor)
        if isinstance(result, Failure):
            return Success(self.default)
        return result


class _Lookahead(Rule):
    def __init__(self, rule: Rule) -> None:
        self.rule = rule

    def _probe(self, cursor: Cursor) -> Result:
        start = cursor.offset
        furthest, expected = cursor.furthest, cursor.expected
        result = self.rule.parse(cursor)
        cursor.offset = start
        cursor.furthest, cursor.expected = furthest, expected
        return result


class Not(_Lookahead):
    """Negative lookahead; never consumes input."""

    def _match(self, cursor: Cursor) -> Result:
        if isinstance(self._probe(cursor), Success):
            return Failure(cursor.offset, f"not {self.rule.describe()}")
        return Success(SKIPPED)


class Ahead(_Lookahead):
    """Positive lookahead; never consumes input."""

    def _match(self, cursor: Cursor) -> Result:
        result = self._probe(cursor)
        if isinstance(result, Failure):
            return Failure(cursor.offset, result.expected)
        return Success(SKIPPED)


class Skip(Rule):
    """Match ``rule`` but drop its value from an enclosing sequence."""

    def __init__(self, rule: Rule) -> None:
        self.rule = rule

    def _match(self, cursor: Cursor) -> Result:
        result = self.rule.parse(cursor)
        if isinstance(result, Failure):
            return result
        return Success(SKIPPED)


class Map(Rule):
    def __init__(self, rule: Rule, fn: Callable[[Any], Any]) -> None:
        self.rule = rule
        self.fn = fn

    def _match(self, cursor: Cursor) -> Result:
        result = self.rule.parse(cursor)
        if isinstance(result, Failure):
            return result
        return Success(self.fn(result.value))


class Action(Rule):
    """Run a semantic action ``fn(value, start)`` after ``rule`` matches.

    ``start`` is the :class:`Position` where the match began. The action's
    return value becomes the rule's value.
    """

    def __init__(self, rule: Rule, fn: Callable[[Any, Position], Any]) -> None:
        self.rule = rule
        self.fn = fn

    def _match(self, cursor: Cursor) -> Result:
        start = cursor.offset
        result = self.rule.parse(cursor)
        if isinstance(result, Failure):
            return result
        return Success(self.fn(result.value, cursor.position(start)))


class Balanced(Rule):
    """Raw text up to, not including, the first unmatched ``close``.

    Nested ``open``/``close`` pairs are skipped, as is any character after a
    backslash. Fails at end of input if the text is never closed.
    """

    def __init__(self, open: str = "[", close: str = "]") -> None:
        self.open = open
        self.close = close
        self.name = f"text closed by {close!r}"

    def _match(self, cursor: Cursor) -> Result:
        text = cursor.text
        start = i = cursor.offset
        depth = 0
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == self.open:
                depth += 1
            elif ch == self.close:
                if depth == 0:
                    cursor.offset = i
                    return Success(text[start:i])
                depth -= 1
            i += 1
        return self._fail(cursor, len(text))


class Capture(Rule):
    """The value is ``(raw source text, inner value)``."""

    def __init__(self, rule: Rule) -> None:
        self.rule = rule

    def _match(self, cursor: Cursor) -> Result:
        start = cursor.offset
        result = self.rule.parse(cursor)
        if isinstance(result, Failure):
            return result
        return Success((cursor.text[start : cursor.offset], result.value))


class Forward(Rule):
    """A placeholder for a rule defined later, for recursive grammars."""

    def __init__(self, name: str = "") -> None:
        self.rule: Rule | None = None
        self.name = name

    def define(self, rule: Rule) -> None:
        self.rule = rule

    def _match(self, cursor: Cursor) -> Result:
        if self.rule is None:
            raise RuntimeError(f"forward rule {self.name!r} used before definition")
        return self.rule.parse(cursor)


def literals(*words: str) -> Alt:
    """Ordered choice over literal words, longest first."""
    return Alt(*(Literal(w) for w in sorted(words, key=len, reverse=True)))
