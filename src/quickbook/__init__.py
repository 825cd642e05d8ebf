"""QuickBook documentation compiler: QuickBook markup to BoostBook XML or HTML."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quickbook.config import Config
    from quickbook.diagnostics import Reporter

__version__ = "0.1.0"


def compile(
    source: str,
    origin: str = "input.qbk",
    config: Config | None = None,
    reporter: Reporter | None = None,
    ignore_docinfo: bool = False,
) -> str:
    """Parse QuickBook source and return the rendered (pretty-printed) output.

    Diagnostics go to ``reporter`` (stderr by default). Raises ValueError
    when the source has errors.
    """
    from quickbook.config import Config
    from quickbook.diagnostics import Reporter
    from quickbook.driver import parse_source
    from quickbook.post_process import format as pretty_print

    config = config if config is not None else Config()
    reporter = reporter if reporter is not None else Reporter(ms_errors=config.ms_errors)
    outcome = parse_source(source, origin, config, reporter, ignore_docinfo)
    if outcome.status:
        raise ValueError(f"{origin}: {outcome.error_count} error(s)")
    if config.pretty_print:
        return pretty_print(outcome.output, config.indent, config.linewidth)
    return outcome.output
