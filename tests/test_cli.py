"""Tests for the CLI module: arg parsing, exit codes, end-to-end."""

from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from quickbook.cli import build_parser, main, parse_define_arg, resolve_options

HEADER = "[article Test]\n\n"

# ---------------------------------------------------------------------------
# Argument parsing helpers
# ---------------------------------------------------------------------------


class TestParseDefineArg:
    def test_simple(self) -> None:
        assert parse_define_arg("version=1.2") == ("version", "1.2")

    def test_equals_in_value(self) -> None:
        assert parse_define_arg("x=a=b") == ("x", "a=b")

    def test_bare_name(self) -> None:
        assert parse_define_arg("flag") == ("flag", "")

    def test_empty_name_raises(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_define_arg("=value")

    def test_bracket_in_name_raises(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_define_arg("[x]=y")


# ---------------------------------------------------------------------------
# Arg parsing via build_parser
# ---------------------------------------------------------------------------


class TestArgParsing:
    def test_input_only(self) -> None:
        ns = build_parser().parse_args(["doc.qbk"])
        assert ns.input == "doc.qbk"
        assert ns.output is None
        assert ns.format is None
        assert ns.define == []

    def test_output_flag(self) -> None:
        ns = build_parser().parse_args(["doc.qbk", "-o", "out.xml"])
        assert ns.output == "out.xml"

    def test_define_and_include_flags(self) -> None:
        ns = build_parser().parse_args(["doc.qbk", "-D", "a=1", "--define", "b=2", "-I", "inc"])
        assert ns.define == ["a=1", "b=2"]
        assert ns.include_path == ["inc"]

    def test_layout_flags(self) -> None:
        ns = build_parser().parse_args(["doc.qbk", "--no-pretty-print", "--indent", "4", "--linewidth", "100"])
        assert ns.no_pretty_print is True
        assert ns.indent == 4
        assert ns.linewidth == 100

    def test_format_flags_exclusive(self) -> None:
        assert build_parser().parse_args(["doc.qbk", "--html"]).format == "html"
        with pytest.raises(SystemExit):
            build_parser().parse_args(["doc.qbk", "--html", "--boostbook"])

    def test_resolve_defaults(self) -> None:
        opts = resolve_options(build_parser().parse_args(["missing_dir/doc.qbk"]))
        assert opts.input_file == Path("missing_dir/doc.qbk")
        assert opts.output_file is None
        assert opts.config.encoder == "boostbook"
        assert opts.config.pretty_print is True
        assert opts.config.defines == ()

    def test_resolve_cli_values(self) -> None:
        ns = build_parser().parse_args(["doc.qbk", "-D", "x=1", "-I", "inc", "--ms-errors", "--debug", "--html"])
        config = resolve_options(ns).config
        assert config.defines == ("x=1",)
        assert config.include_path == (Path("inc"),)
        assert config.ms_errors is True
        assert config.debug is True
        assert config.encoder == "html"


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class TestExitCodes:
    def test_success_writes_default_output(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "ok.qbk"
        doc.write_text(HEADER + "Hello\n")
        assert main([str(doc)]) == 0
        out = tmp_path / "ok.xml"
        assert out.exists()
        assert f"Generating Output File: {out}" in capsys.readouterr().out

    def test_syntax_error_returns_1(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "bad.qbk"
        doc.write_text(HEADER + "text [*unclosed\n")
        assert main([str(doc)]) == 1
        err = capsys.readouterr().err
        assert f"{doc}:3: Syntax Error near column 6." in err
        assert f"{doc}: Error count: 1." in err
        assert not (tmp_path / "bad.xml").exists()

    def test_missing_input_returns_1(self, tmp_path: Path, capsys) -> None:
        assert main([str(tmp_path / "nope.qbk")]) == 1
        assert "Unable to open file" in capsys.readouterr().err

    def test_missing_header_returns_1(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "noheader.qbk"
        doc.write_text("Just text\n")
        assert main([str(doc)]) == 1
        assert "Doc Info error near column 1." in capsys.readouterr().err

    def test_bad_define_returns_2(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER)
        assert main([str(doc), "-D", "=oops"]) == 2
        assert "invalid define" in capsys.readouterr().err

    def test_unknown_option_returns_2(self) -> None:
        assert main(["doc.qbk", "--no-such-flag"]) == 2

    def test_version_returns_0(self, capsys) -> None:
        assert main(["--version"]) == 0
        assert "quickbook" in capsys.readouterr().out

    def test_deep_expansion_returns_1(self, tmp_path: Path, capsys) -> None:
        chain = "".join(f"[def m{i} [m{i + 1}]]\n" for i in range(80))
        doc = tmp_path / "deep.qbk"
        doc.write_text(HEADER + chain + "[def m80 end]\n\n[m0]\n")
        assert main([str(doc), "--debug"]) == 1
        err = capsys.readouterr().err
        assert "Expansion depth limit (32) exceeded" in err
        assert f"{doc}: Error count: 1." in err
        assert not (tmp_path / "deep.xml").exists()

    def test_unexpected_failure_returns_1(self, tmp_path: Path, capsys, monkeypatch) -> None:
        def fail(*args: object) -> int:
            raise OSError("disk full")

        monkeypatch.setattr("quickbook.driver.compile_file", fail)
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER)
        assert main([str(doc)]) == 1
        assert "Error: disk full" in capsys.readouterr().err

    def test_ms_errors(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "bad.qbk"
        doc.write_text(HEADER + "[endsect]\n")
        assert main([str(doc), "--ms-errors"]) == 1
        assert f"{doc}(3): error: Mismatched [endsect] near column 1." in capsys.readouterr().err


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestEndToEnd:
    def test_define_visible_in_output(self, tmp_path: Path) -> None:
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER + "Version [ver].\n")
        out = tmp_path / "out.xml"
        assert main([str(doc), "-D", "ver=1.2", "-o", str(out)]) == 0
        assert "Version 1.2." in out.read_text()

    def test_html_output(self, tmp_path: Path) -> None:
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER + "[section Intro]\nHi\n[endsect]\n")
        assert main([str(doc), "--html", "--debug"]) == 0
        html = (tmp_path / "doc.html").read_text()
        assert html.startswith("<!DOCTYPE html>\n")
        assert '<div class="section" id="test.intro">' in html

    def test_no_pretty_print(self, tmp_path: Path) -> None:
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER + "Hello\n")
        out = tmp_path / "out.xml"
        assert main([str(doc), "--no-pretty-print", "-o", str(out)]) == 0
        assert "<para>\nHello\n</para>\n" in out.read_text()

    def test_indent_and_linewidth(self, tmp_path: Path) -> None:
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER + " ".join(["word"] * 30) + "\n")
        out = tmp_path / "out.xml"
        assert main([str(doc), "--indent", "4", "--linewidth", "40", "-o", str(out)]) == 0
        lines = out.read_text().splitlines()
        assert "    <para>" in lines
        assert all(len(line) <= 40 for line in lines if "word" in line)

    def test_include_path_flag(self, tmp_path: Path) -> None:
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "common.qbk").write_text("Shared text\n")
        doc = tmp_path / "doc.qbk"
        doc.write_text(HEADER + "[include common.qbk]\n")
        out = tmp_path / "out.xml"
        assert main([str(doc), "-I", str(inc), "-o", str(out)]) == 0
        assert "Shared text" in out.read_text()
