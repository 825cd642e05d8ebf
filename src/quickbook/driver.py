"""Parsing a unit, a source string or a file, and compiling files to output."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path

from quickbook.actions import Actions
from quickbook.config import Config
from quickbook.cursor import Cursor
from quickbook.diagnostics import Reporter
from quickbook.docinfo import DocumentInfo
from quickbook.errors import DocInfoError, LoadError, QuickbookError
from quickbook.loader import load
from quickbook.post_process import format as pretty_print
from quickbook.rules import Success
from quickbook.state import DocumentState


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Result of parsing one top-level source."""

    status: int
    error_count: int
    output: str
    state: DocumentState | None = None


def parse_unit(cursor: Cursor, state: DocumentState, actions: Actions, ignore_docinfo: bool = False) -> int:
    """Parse one unit (a top-level file or an included one) in two phases.

    The header is optional when ``ignore_docinfo`` is set; otherwise a
    missing or malformed header is an error and the body is skipped. The
    body must consume all remaining input. Hard errors raised by actions
    stop the unit and are reported here. Returns the number of errors the
    unit added.
    """
    errors_before = state.error_count
    grammar = actions.grammar
    try:
        info: DocumentInfo | None = None
        header = grammar.doc_info.parse(cursor)
        if isinstance(header, Success):
            info = actions.process_docinfo(dataclasses.replace(header.value, ignore=ignore_docinfo))
        elif not ignore_docinfo:
            where = cursor.furthest_position()
            raise DocInfoError(f"Doc Info error near column {where.column}.", where)

        grammar.blocks.parse(cursor)
        if not cursor.at_end():
            stop = cursor.position()
            furthest = cursor.furthest_position()
            end_column = furthest.column if furthest.line == stop.line else None
            state.error(f"Syntax Error near column {stop.column}.", stop, end_column=end_column)
            return state.error_count - errors_before

        actions.process_post(info)
    except QuickbookError as exc:
        state.error(exc.detail, exc.position)
    except RecursionError:
        # Deeply nested markup can exhaust the stack before the expansion cap.
        where = cursor.position()
        state.error(f"Expansion nested too deeply near column {where.column}.", where)
    return state.error_count - errors_before


def parse_source(
    text: str,
    origin: str,
    config: Config,
    reporter: Reporter,
    ignore_docinfo: bool = False,
    outdir: Path | None = None,
) -> ParseOutcome:
    """Parse a complete top-level source and return its rendered output."""
    state = DocumentState(origin, config, reporter, outdir)
    actions = Actions(state)
    actions.install_presets()

    key = str(Path(origin).resolve()) if origin else origin
    state.active.enter(key, label=origin)
    try:
        parse_unit(Cursor(text, origin), state, actions, ignore_docinfo)
    finally:
        state.active.leave(key)

    if state.error_count:
        reporter.summary(f"Error count: {state.error_count}.", origin=origin)
    return ParseOutcome(state.status, state.error_count, state.out.text(), state)


def parse_file(
    path: Path,
    config: Config,
    reporter: Reporter,
    outdir: Path | None = None,
    ignore_docinfo: bool = False,
) -> ParseOutcome:
    """Load ``path`` and parse it. A load failure counts as one error."""
    try:
        text = load(path)
    except LoadError as exc:
        reporter.error(exc.detail, origin=str(path))
        reporter.summary("Error count: 1.", origin=str(path))
        return ParseOutcome(1, 1, "")
    return parse_source(text, str(path), config, reporter, ignore_docinfo, outdir)


def default_output_path(input_path: Path, config: Config) -> Path:
    """The input path with its extension replaced by ``.xml`` or ``.html``."""
    return input_path.with_suffix(config.output_extension)


def compile_file(
    input_path: Path,
    output_path: Path | None,
    config: Config,
    reporter: Reporter,
    ignore_docinfo: bool = False,
) -> int:
    """Parse ``input_path`` and write the output. Returns the status (0 or 1).

    Pretty-printing is applied only to a clean result. When the input had
    errors nothing is written, except that the partial markup is still
    written when pretty-printing is off and the input could be read.
    """
    output_path = output_path if output_path is not None else default_output_path(input_path, config)
    outcome = parse_file(input_path, config, reporter, output_path.parent, ignore_docinfo)
    if outcome.status:
        if not config.pretty_print and outcome.state is not None:
            output_path.write_text(outcome.output, encoding="utf-8")
        return outcome.status

    output = outcome.output
    if config.pretty_print:
        output = pretty_print(output, config.indent, config.linewidth)
    output_path.write_text(output, encoding="utf-8")
    return 0
