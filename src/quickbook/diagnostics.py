"""Diagnostic records and the reporter that prints them to stderr."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from quickbook.cursor import Position


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One error or warning, positioned at ``origin:line`` when known."""

    severity: Severity
    message: str
    origin: str
    line: int | None = None
    column: int | None = None
    end_column: int | None = None

    def format(self, ms_errors: bool = False) -> str:
        if ms_errors:
            where = self.origin if self.line is None else f"{self.origin}({self.line})"
            return f"{where}: {self.severity.value}: {self.message}"
        where = self.origin if self.line is None else f"{self.origin}:{self.line}"
        return f"{where}: {self.message}"


class Reporter:
    """Collects diagnostics and echoes them, formatted, to ``stream``.

    ``stream`` defaults to ``sys.stderr`` looked up at report time. Pass
    ``echo=False`` to record without printing (used by the LSP server).
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        ms_errors: bool = False,
        echo: bool = True,
    ) -> None:
        self.stream = stream
        self.ms_errors = ms_errors
        self.echo = echo
        self.diagnostics: list[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> Diagnostic:
        self.diagnostics.append(diagnostic)
        if self.echo:
            print(diagnostic.format(self.ms_errors), file=self.stream or sys.stderr)
        return diagnostic

    def error(
        self,
        message: str,
        position: Position | None = None,
        *,
        origin: str = "",
        end_column: int | None = None,
    ) -> Diagnostic:
        return self.report(_make(Severity.ERROR, message, position, origin, end_column))

    def warning(self, message: str, position: Position | None = None, *, origin: str = "") -> Diagnostic:
        return self.report(_make(Severity.WARNING, message, position, origin, None))

    def summary(self, message: str, *, origin: str = "") -> None:
        """Print an error-channel line that is not itself a diagnostic."""
        if self.echo:
            line = Diagnostic(Severity.ERROR, message, origin).format(self.ms_errors)
            print(line, file=self.stream or sys.stderr)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]


def _make(
    severity: Severity,
    message: str,
    position: Position | None,
    origin: str,
    end_column: int | None,
) -> Diagnostic:
    if position is None:
        return Diagnostic(severity, message, origin)
    return Diagnostic(
        severity,
        message,
        position.origin,
        position.line,
        position.column,
        end_column,
    )
