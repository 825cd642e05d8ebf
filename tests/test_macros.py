"""Tests for macros, templates, presets and expansion errors."""

from __future__ import annotations

from quickbook.actions import advance_position, split_arguments
from quickbook.cursor import Position
from tests.conftest import messages


def para(content: str) -> str:
    return f"<para>\n{content}\n</para>\n"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSplitArguments:
    def test_empty(self) -> None:
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_single(self) -> None:
        assert split_arguments(" one ") == [("one", 1)]

    def test_dotted_separator(self) -> None:
        assert split_arguments("a..b c..d") == [("a", 0), ("b c", 3), ("d", 8)]

    def test_separator_inside_brackets_ignored(self) -> None:
        assert split_arguments("[x..y]..z") == [("[x..y]", 0), ("z", 8)]

    def test_escaped_bracket(self) -> None:
        assert split_arguments(r"\[..b") == [(r"\[", 0), ("b", 4)]


class TestAdvancePosition:
    def test_same_line(self) -> None:
        start = Position("f", 2, 5, 10)
        assert advance_position(start, "abc", 2) == Position("f", 2, 7, 12)

    def test_next_line(self) -> None:
        start = Position("f", 2, 5, 10)
        assert advance_position(start, "ab\ncd", 4) == Position("f", 3, 2, 14)


# ---------------------------------------------------------------------------
# Macros
# ---------------------------------------------------------------------------


class TestMacros:
    def test_define_and_use(self, render) -> None:
        assert render("[def greeting Hello]\n[greeting] world") == para("Hello world")

    def test_body_is_markup(self, render) -> None:
        assert render("[def strong [*strong]]\n[strong]") == para('<emphasis role="bold">strong</emphasis>')

    def test_later_definition_shadows(self, render) -> None:
        assert render("[def x one]\n[def x two]\n[x]") == para("two")

    def test_macro_sees_definitions_at_use_site(self, render) -> None:
        source = "[def outer [inner]]\n[def inner first]\n[outer]"
        assert render(source) == para("first")

    def test_macro_with_arguments_is_error(self, parse, reporter) -> None:
        outcome = parse("[def x y]\n[x extra]")
        assert outcome.status == 1
        assert messages(reporter) == [
            "test.qbk:2: Invalid number of arguments passed. Expecting: 0 argument(s), got: 1 argument(s) instead."
        ]


class TestPresets:
    def test_command_line_macro(self, render) -> None:
        assert "Hello" in render("[title]", defines=("title=Hello",))

    def test_command_line_macro_without_value(self, render) -> None:
        assert render("a[empty]b", defines=("empty",)) == para("ab")

    def test_body_definition_shadows_preset(self, render) -> None:
        assert render("[def title Body]\n[title]", defines=("title=Preset",)) == para("Body")

    def test_bad_definition_reported(self, parse, reporter) -> None:
        outcome = parse("text", defines=("[bad",))
        assert outcome.status == 1
        assert "Error parsing command line definition: '[bad'" in messages(reporter)[0]

    def test_filename_builtin(self, render) -> None:
        assert render("[__FILENAME__]") == para("test.qbk")

    def test_date_and_time_builtins_use_debug_clock(self, render) -> None:
        assert render("[__DATE__] [__TIME__]") == para("2000-Dec-20 12:00:00 PM")

    def test_preset_shadows_builtin(self, render) -> None:
        assert render("[__DATE__]", defines=("__DATE__=today",)) == para("today")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    def test_single_parameter(self, render) -> None:
        assert render("[template greet[who] Hello, [who]!]\n[greet World]") == para("Hello, World!")

    def test_dotted_arguments(self, render) -> None:
        assert render("[template pair[a b] ([a]; [b])]\n[pair one two..three]") == para("(one two; three)")

    def test_whitespace_split_arguments(self, render) -> None:
        assert render("[template pair[a b] [b]-[a]]\n[pair x y]") == para("y-x")

    def test_last_parameter_takes_rest(self, render) -> None:
        assert render("[template pair[a b] [b]]\n[pair x y z]") == para("y z")

    def test_arguments_rendered_in_caller_scope(self, render) -> None:
        source = "[def who caller]\n[template show[x] [x]]\n[show [who]]"
        assert render(source) == para("caller")

    def test_argument_markup(self, render) -> None:
        out = render("[template em[x] [*[x]]]\n[em hi]")
        assert out == para('<emphasis role="bold">hi</emphasis>')

    def test_parameter_does_not_leak(self, parse, reporter) -> None:
        outcome = parse("[template t[x] [x]]\n[t a]\n[x]")
        assert outcome.status == 1
        assert messages(reporter) == ["test.qbk:3: Unknown macro or template: x"]

    def test_template_body_closes_over_definition_scope(self, render) -> None:
        source = "[template show[x] [x]]\n[template wrap[x] <[show [x]]>]\n[wrap inner]"
        assert render(source) == para("&lt;inner&gt;")

    def test_wrong_argument_count(self, parse, reporter) -> None:
        outcome = parse("[template one[a] [a]]\n[one x..y]")
        assert outcome.status == 1
        assert messages(reporter) == [
            "test.qbk:2: Invalid number of arguments passed. Expecting: 1 argument(s), got: 2 argument(s) instead."
        ]

    def test_block_template(self, render) -> None:
        source = "[template box[body]\n[note [body]]\n]\n\n[box inside]\n"
        assert render(source) == "<note>\n<para>\ninside\n</para>\n</note>\n"

    def test_block_template_ends_paragraph(self, render) -> None:
        source = "[template rule\n----\n]\ntext\n[rule]\n"
        assert render(source) == para("text") + "<para/>\n"


class TestRecursion:
    def test_self_recursive_template(self, parse, reporter) -> None:
        outcome = parse("[template loop [loop]]\n[loop]")
        assert outcome.status == 1
        (message,) = messages(reporter)
        assert "Infinite recursion detected while expanding: loop" in message
        assert "loop -> loop" in message

    def test_mutual_recursion(self, parse, reporter) -> None:
        outcome = parse("[def a [b]]\n[def b [a]]\n[a]")
        assert outcome.status == 1
        assert "Infinite recursion detected while expanding: a" in messages(reporter)[0]

    def test_same_template_twice_is_not_recursion(self, render) -> None:
        assert render("[template t[x] [x]]\n[t [t a]]") == para("a")

    def test_error_position_inside_expansion(self, parse, reporter) -> None:
        parse("[def bad [nosuch]]\n\n[bad]")
        (diagnostic,) = reporter.errors
        assert diagnostic.origin == "bad (expanded at test.qbk:3)"
        assert diagnostic.line == 1


def macro_chain(length: int) -> str:
    """``[m0]`` expands through ``length`` macros before reaching ``end``."""
    defs = "".join(f"[def m{i} [m{i + 1}]]\n" for i in range(length))
    return f"{defs}[def m{length} end]\n\n[m0]\n"


class TestExpansionDepth:
    def test_chain_within_limit(self, render) -> None:
        assert render(macro_chain(20)) == para("end")

    def test_chain_past_limit_is_one_error(self, parse, reporter) -> None:
        outcome = parse(macro_chain(60))
        assert outcome.status == 1
        assert outcome.error_count == 1
        (error,) = reporter.errors
        assert error.message.startswith("Expansion depth limit (32) exceeded")

    def test_deeply_nested_spans_are_one_error(self, parse, reporter) -> None:
        outcome = parse("[*" * 400 + "x" + "]" * 400 + "\n")
        assert outcome.status == 1
        (error,) = reporter.errors
        assert error.message.startswith("Expansion nested too deeply")
        assert (error.origin, error.line) == ("test.qbk", 1)
