"""Command-line interface for QuickBook."""

from __future__ import annotations

import argparse
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from quickbook import __version__
from quickbook.config import DEFAULT_INDENT, DEFAULT_LINEWIDTH, Config
from quickbook.diagnostics import Reporter


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    config: Config


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="quickbook",
        description="QuickBook documentation compiler (BoostBook XML or HTML output)",
    )
    p.add_argument("input", help="Input .qbk file")
    p.add_argument("-o", "--output", help="Output file (default: input name with .xml or .html)")
    p.add_argument(
        "--no-pretty-print",
        action="store_true",
        default=None,
        help="Write the generated markup without re-indenting it",
    )
    p.add_argument("--indent", type=int, default=None, metavar="N", help="Indent width (default: 2)")
    p.add_argument("--linewidth", type=int, default=None, metavar="N", help="Line width (default: 80)")
    p.add_argument(
        "-I",
        "--include-path",
        action="append",
        default=[],
        metavar="DIR",
        help="Extra include search directory (repeatable)",
    )
    p.add_argument(
        "-D",
        "--define",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Define a macro before parsing (repeatable)",
    )
    p.add_argument(
        "--ms-errors",
        action="store_true",
        default=None,
        help="Report errors as file(line): error: message",
    )
    p.add_argument("--debug", action="store_true", help="Use a fixed timestamp for reproducible output")
    fmt = p.add_mutually_exclusive_group()
    fmt.add_argument(
        "--boostbook",
        dest="format",
        action="store_const",
        const="boostbook",
        help="BoostBook output (default)",
    )
    fmt.add_argument("--html", dest="format", action="store_const", const="html", help="HTML output")
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover quickbook.toml)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_define_arg(s: str) -> tuple[str, str]:
    """Parse a NAME=VALUE string into (name, value); a bare NAME defines an empty macro."""
    name, _, value = s.partition("=")
    name = name.strip()
    if not name or any(ch.isspace() or ch in "[]" for ch in name):
        raise argparse.ArgumentTypeError(f"invalid define (expected NAME=VALUE): {s}")
    return name, value


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "quickbook.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def _table(config: dict[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    try:
        config = load_config(config_path, input_dir)
    except tomllib.TOMLDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid config file: {exc}") from None

    # Output format and layout: config < CLI
    output = _table(config, "output")
    encoder = str(output.get("format", "boostbook"))
    if args.format is not None:
        encoder = args.format
    pretty_print = bool(output.get("pretty-print", True))
    if args.no_pretty_print:
        pretty_print = False
    indent = output.get("indent", DEFAULT_INDENT)
    if args.indent is not None:
        indent = args.indent
    linewidth = output.get("linewidth", DEFAULT_LINEWIDTH)
    if args.linewidth is not None:
        linewidth = args.linewidth

    # Macro definitions: config < CLI
    defines: dict[str, str] = {}
    for k, v in _table(config, "defines").items():
        defines[str(k)] = str(v)
    for raw in args.define:
        name, value = parse_define_arg(raw)
        defines[name] = value

    # Include paths: config < CLI
    include_path: list[Path] = []
    cfg_paths = _table(config, "include").get("paths")
    if isinstance(cfg_paths, list):
        include_path.extend(input_dir / str(p) for p in cfg_paths)
    include_path.extend(Path(p) for p in args.include_path)

    ms_errors = bool(_table(config, "diagnostics").get("ms-errors", False))
    if args.ms_errors:
        ms_errors = True

    output_file = Path(args.output) if args.output else None

    try:
        run_config = Config(
            encoder=encoder,
            pretty_print=pretty_print,
            indent=int(indent),
            linewidth=int(linewidth),
            defines=tuple(f"{name}={value}" for name, value in defines.items()),
            include_path=tuple(include_path),
            ms_errors=ms_errors,
            debug=args.debug,
        )
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None

    return CliOptions(input_file=input_file, output_file=output_file, config=run_config)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    from quickbook.driver import compile_file, default_output_path

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code == 0 else 2

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    config = options.config
    output_file = options.output_file or default_output_path(options.input_file, config)
    print(f"Generating Output File: {output_file}")

    reporter = Reporter(ms_errors=config.ms_errors)
    try:
        return compile_file(options.input_file, output_file, config, reporter)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
