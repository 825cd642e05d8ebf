"""Tests for error types and diagnostic reporting."""

from __future__ import annotations

import io

from quickbook.cursor import Position
from quickbook.diagnostics import Diagnostic, Reporter, Severity
from quickbook.errors import (
    DocInfoError,
    EncoderError,
    ExpansionError,
    LoadError,
    LoadErrorKind,
    ParseError,
    QuickbookError,
    SectionError,
)


class TestErrorFormatting:
    def test_positioned(self) -> None:
        err = ParseError("Syntax Error near column 5.", Position("doc.qbk", 3, 5, 20))
        assert str(err) == "doc.qbk:3: Syntax Error near column 5."

    def test_ms_format(self) -> None:
        err = SectionError("Mismatched [endsect] near column 1.", Position("doc.qbk", 7, 1, 0))
        assert err.format(ms_errors=True) == "doc.qbk(7): error: Mismatched [endsect] near column 1."

    def test_without_position(self) -> None:
        assert str(QuickbookError("plain")) == "plain"

    def test_load_error_messages(self) -> None:
        assert LoadError("a.qbk", LoadErrorKind.NOT_FOUND).message == "Unable to open file: a.qbk"
        assert LoadError("a.qbk", LoadErrorKind.UNREADABLE).message == "Unable to read file: a.qbk"

    def test_expansion_chain_in_detail(self) -> None:
        err = ExpansionError("boom", call_stack=["a", "b"])
        assert err.message == "boom"
        assert err.detail == "boom (in expansion chain: a -> b)"

    def test_hierarchy(self) -> None:
        for cls in (LoadError, DocInfoError, ParseError, SectionError, ExpansionError):
            assert issubclass(cls, QuickbookError)
        assert not issubclass(EncoderError, QuickbookError)


class TestDiagnostic:
    def test_format_with_line(self) -> None:
        d = Diagnostic(Severity.WARNING, "careful", "a.qbk", 4, 2)
        assert d.format() == "a.qbk:4: careful"
        assert d.format(ms_errors=True) == "a.qbk(4): warning: careful"

    def test_format_without_line(self) -> None:
        d = Diagnostic(Severity.ERROR, "Error count: 2.", "a.qbk")
        assert d.format() == "a.qbk: Error count: 2."
        assert d.format(ms_errors=True) == "a.qbk: error: Error count: 2."


class TestReporter:
    def test_records_and_echoes(self) -> None:
        stream = io.StringIO()
        reporter = Reporter(stream=stream)
        reporter.error("bad", Position("a.qbk", 2, 3, 9), end_column=6)
        reporter.warning("meh", origin="a.qbk")
        assert stream.getvalue() == "a.qbk:2: bad\na.qbk: meh\n"
        (error,) = reporter.errors
        assert (error.line, error.column, error.end_column) == (2, 3, 6)
        assert len(reporter.warnings) == 1

    def test_position_origin_wins(self) -> None:
        reporter = Reporter(echo=False)
        d = reporter.error("x", Position("expanded", 1, 1, 0), origin="a.qbk")
        assert d.origin == "expanded"

    def test_echo_disabled(self) -> None:
        stream = io.StringIO()
        reporter = Reporter(stream=stream, echo=False)
        reporter.error("quiet")
        reporter.summary("Error count: 1.")
        assert stream.getvalue() == ""
        assert len(reporter.diagnostics) == 1

    def test_summary_not_recorded(self) -> None:
        stream = io.StringIO()
        reporter = Reporter(stream=stream, ms_errors=True)
        reporter.summary("Error count: 3.", origin="a.qbk")
        assert stream.getvalue() == "a.qbk: error: Error count: 3.\n"
        assert reporter.diagnostics == []

    def test_defaults_to_stderr(self, capsys) -> None:
        Reporter().error("to stderr", origin="a.qbk")
        assert capsys.readouterr().err == "a.qbk: to stderr\n"
