"""Tests for symbol tables, the expansion guard and document state helpers."""

from __future__ import annotations

import pytest

from quickbook.config import Config
from quickbook.diagnostics import Reporter
from quickbook.errors import ExpansionError
from quickbook.keywords import BLOCK_KEYWORDS, KEYWORDS, is_block_keyword, is_keyword
from quickbook.state import Collector, DocumentState, make_identifier
from quickbook.symbols import ActiveOrigins, Argument, Macro, Scope, Template


class TestScope:
    def test_lookup_walks_parents(self) -> None:
        root = Scope()
        root.define_macro(Macro("x", "1"))
        child = root.child()
        assert child.lookup("x") == Macro("x", "1")
        assert child.lookup("y") is None

    def test_child_shadows_parent(self) -> None:
        root = Scope()
        root.define_macro(Macro("x", "outer"))
        child = root.child()
        child.define_macro(Macro("x", "inner"))
        assert child.lookup("x") == Macro("x", "inner")
        assert root.lookup("x") == Macro("x", "outer")

    def test_template_replaces_macro_of_same_name(self) -> None:
        scope = Scope()
        scope.define_macro(Macro("x", "m"))
        template = Template("x", ("a",), "[a]", scope)
        scope.define_template(template)
        assert scope.lookup("x") is template
        assert "x" not in scope.macros

    def test_macro_replaces_template_of_same_name(self) -> None:
        scope = Scope()
        scope.define_template(Argument("x", "rendered"))
        scope.define_macro(Macro("x", "m"))
        assert scope.lookup("x") == Macro("x", "m")


class TestActiveOrigins:
    def test_enter_and_leave(self) -> None:
        active = ActiveOrigins()
        active.enter("a")
        assert active.stack == ["a"]
        active.leave("a")
        assert active.stack == []
        active.enter("a")

    def test_reentry_is_cycle(self) -> None:
        active = ActiveOrigins()
        active.enter("main.qbk")
        active.enter("t")
        with pytest.raises(ExpansionError) as exc_info:
            active.enter("t")
        assert exc_info.value.message == "Infinite recursion detected while expanding: t"
        assert exc_info.value.call_stack == ["main.qbk", "t", "t"]
        assert exc_info.value.detail.endswith("(in expansion chain: main.qbk -> t -> t)")

    def test_label_used_in_stack(self) -> None:
        active = ActiveOrigins()
        active.enter("/abs/path/a.qbk", label="a.qbk")
        assert active.stack == ["a.qbk"]

    def test_depth_limit(self) -> None:
        active = ActiveOrigins(max_depth=2)
        active.enter("a")
        active.enter("b")
        with pytest.raises(ExpansionError, match="depth limit"):
            active.enter("c")


class TestKeywords:
    def test_block_keywords(self) -> None:
        assert is_block_keyword("section")
        assert is_block_keyword("h6")
        assert not is_block_keyword("link")

    def test_phrase_keywords(self) -> None:
        assert is_keyword("footnote")
        assert "footnote" not in BLOCK_KEYWORDS

    def test_registry_entries(self) -> None:
        assert KEYWORDS["section"].block
        assert not KEYWORDS["link"].block

    def test_not_a_keyword(self) -> None:
        assert not is_keyword("greeting")


class TestStateHelpers:
    def test_make_identifier(self) -> None:
        assert make_identifier("Hello, World!") == "hello_world"
        assert make_identifier("  A--B  ") == "a_b"
        assert make_identifier("***") == ""

    def test_collector(self) -> None:
        out = Collector()
        out.append("a")
        out.push()
        out.append("b")
        assert out.depth == 2
        assert out.pop() == "b"
        assert out.text() == "a"

    def test_collector_root_cannot_be_popped(self) -> None:
        with pytest.raises(RuntimeError):
            Collector().pop()

    def test_qualified_and_unique_ids(self) -> None:
        state = DocumentState("doc.qbk", Config(debug=True), Reporter(echo=False))
        assert state.qualified_id("intro") == "intro"
        state.doc_id = "doc"
        assert state.qualified_id("intro") == "doc.intro"
        state.section_ids.append("doc.intro")
        assert state.qualified_id("sub") == "doc.intro.sub"
        assert state.unique_id("x") == "x"
        assert state.unique_id("x") == "x_1"
        assert state.unique_id("x") == "x_2"

    def test_status_follows_error_count(self) -> None:
        reporter = Reporter(echo=False)
        state = DocumentState("doc.qbk", Config(debug=True), reporter)
        assert state.status == 0
        state.warning("careful")
        assert state.status == 0
        state.error("broken")
        assert state.status == 1
        assert (state.error_count, state.warning_count) == (1, 1)
        assert [d.origin for d in reporter.diagnostics] == ["doc.qbk", "doc.qbk"]

    def test_encoder_from_config(self) -> None:
        state = DocumentState("doc.qbk", Config(encoder="html"), Reporter(echo=False))
        assert state.encoder.name == "html"
