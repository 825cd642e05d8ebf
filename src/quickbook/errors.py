"""Error types raised by the loader, semantic actions and encoders."""

from __future__ import annotations

from enum import Enum

from quickbook.cursor import Position


class QuickbookError(Exception):
    """Base class for errors that are reported against a source position."""

    def __init__(self, message: str, position: Position | None = None) -> None:
        self.message = message
        self.position = position
        super().__init__(self.format())

    @property
    def detail(self) -> str:
        """The message as reported, including any extra context."""
        return self.message

    def format(self, ms_errors: bool = False) -> str:
        if self.position is None:
            return self.detail
        origin = self.position.origin
        if ms_errors:
            return f"{origin}({self.position.line}): error: {self.detail}"
        return f"{origin}:{self.position.line}: {self.detail}"


class LoadErrorKind(Enum):
    NOT_FOUND = "not found"
    UNREADABLE = "unreadable"


class LoadError(QuickbookError):
    """Raised when an input or included file cannot be read."""

    def __init__(self, path: str, kind: LoadErrorKind, position: Position | None = None) -> None:
        self.path = path
        self.kind = kind
        if kind is LoadErrorKind.NOT_FOUND:
            message = f"Unable to open file: {path}"
        else:
            message = f"Unable to read file: {path}"
        super().__init__(message, position)


class DocInfoError(QuickbookError):
    """Raised when a required document info header does not parse."""


class ParseError(QuickbookError):
    """Raised when expanded or included text cannot be consumed completely."""


class SectionError(QuickbookError):
    """Raised on an [endsect] with no open section."""


class ExpansionError(QuickbookError):
    """Raised on unresolved references, argument mismatches and expansion cycles."""

    def __init__(
        self,
        message: str,
        position: Position | None = None,
        call_stack: list[str] | None = None,
    ) -> None:
        self.call_stack = call_stack or []
        super().__init__(message, position)

    @property
    def detail(self) -> str:
        if not self.call_stack:
            return self.message
        chain = " -> ".join(self.call_stack)
        return f"{self.message} (in expansion chain: {chain})"


class EncoderError(Exception):
    """Raised when an encoder has no rendering for a construct."""
