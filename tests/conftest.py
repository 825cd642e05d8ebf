"""Shared test fixtures and helpers."""

from __future__ import annotations

import io

import pytest

from quickbook.config import Config
from quickbook.diagnostics import Reporter
from quickbook.driver import ParseOutcome, parse_source


@pytest.fixture
def config() -> Config:
    """A reproducible configuration (fixed timestamp)."""
    return Config(debug=True)


@pytest.fixture
def reporter() -> Reporter:
    """A reporter that writes into a string buffer instead of stderr."""
    return Reporter(stream=io.StringIO())


@pytest.fixture
def parse(config: Config, reporter: Reporter):
    """Return a helper that parses a document body and returns the ParseOutcome.

    The document info header is ignored, so bodies can be written without one.
    """

    def _parse(
        source: str,
        origin: str = "test.qbk",
        ignore_docinfo: bool = True,
        **overrides,
    ) -> ParseOutcome:
        cfg = Config(debug=True, **overrides) if overrides else config
        return parse_source(source, origin, cfg, reporter, ignore_docinfo=ignore_docinfo)

    return _parse


@pytest.fixture
def render(parse):
    """Return a helper that parses a clean body and returns its raw output."""

    def _render(source: str, **overrides) -> str:
        outcome = parse(source, **overrides)
        assert outcome.status == 0, f"unexpected errors: {outcome.error_count}"
        return outcome.output

    return _render


def messages(reporter: Reporter) -> list[str]:
    """The formatted diagnostics recorded by ``reporter``."""
    return [d.format(reporter.ms_errors) for d in reporter.diagnostics]


def echoed(reporter: Reporter) -> str:
    """Everything ``reporter`` printed to its stream."""
    assert isinstance(reporter.stream, io.StringIO)
    return reporter.stream.getvalue()
