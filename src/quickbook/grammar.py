"""The QuickBook grammar: document header, block content and phrase content.

Phrase rules are pure apart from macro and template expansion: their values
are already-encoded output fragments, joined by the enclosing rule. Block
rules run their action only once the whole block has matched; the action
appends to the document's output buffer.

Nested content (admonitions, table cells, template arguments) is captured
as raw text first and rendered afterwards with a child cursor, so a block
that fails halfway never leaves partial output behind.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from quickbook.cursor import Cursor, Position
from quickbook.docinfo import doc_info_rule
from quickbook.errors import ExpansionError
from quickbook.keywords import BLOCK_KEYWORDS, is_keyword
from quickbook.rules import (
    Alt,
    Balanced,
    Capture,
    Failure,
    Fn,
    Forward,
    Literal,
    Many,
    Not,
    Opt,
    Regex,
    Result,
    Rule,
    Skip,
    Success,
)
from quickbook.symbols import Template

if TYPE_CHECKING:
    from quickbook.actions import Actions

NAME = r"[A-Za-z_][\w.]*"

_CALL_START = re.compile(rf"\[({NAME})(?=[\s\]])")
_LINE_END = re.compile(r"[ \t]*(?:\n|\Z)")
_INDENT = re.compile(r"[ \t]*")
_ARGS = Balanced()

SPAN_MARKERS: dict[str, str] = {
    "*": "bold",
    "'": "italic",
    "_": "underline",
    "^": "teletype",
    "-": "strikethrough",
    "~": "replaceable",
    '"': "quote",
}

SIMPLE_MARKERS: dict[str, str] = {
    "*": "bold",
    "/": "italic",
    "_": "underline",
    "=": "teletype",
}

REF_KEYWORDS: tuple[str, ...] = (
    "funcref",
    "classref",
    "memberref",
    "enumref",
    "macroref",
    "headerref",
    "conceptref",
    "globalref",
)


def _simple_pattern(marker: str) -> str:
    m = re.escape(marker)
    return rf"(?<![\w{m}]){m}([^\s{m}\[\]](?:[^{m}\n\[\]]*?[^\s{m}\[\]])?){m}(?![\w{m}])"


def _with_position(raw: str, position: Position) -> tuple[str, Position]:
    return raw, position


def _ws_then(rule: Rule) -> Rule:
    return (Skip(Regex(r"\s*")) + rule).pick(0)


class QuickbookGrammar:
    """Rules bound to one :class:`~quickbook.actions.Actions` instance.

    Public rules: ``doc_info``, ``blocks`` (top level), ``nested_blocks``,
    ``phrase`` (single line), ``inline`` (may span lines) and
    ``command_line_macro``.
    """

    def __init__(self, actions: Actions) -> None:
        self.actions = actions
        a = actions

        self.doc_info = doc_info_rule()

        # ------------------------------------------------------------------
        # Phrase
        # ------------------------------------------------------------------

        self.phrase_item = Forward("phrase item")
        self.phrase = Many(self.phrase_item).map("".join)
        self.inline = Many(self.phrase_item | Regex(r"\n")).map("".join)

        close = Skip(Literal("]"))
        gap = Skip(Regex(r"[ \t\n]*"))

        comment = (Literal("[/") + Balanced() + Literal("]")).map(lambda _: "")
        raw = Regex(r"'''(.*?)'''", group=1, flags=re.DOTALL).action(a.raw_phrase)
        escapes = Alt(
            Regex(r"\\n").action(a.line_break),
            Regex(r"\\u([0-9A-Fa-f]{4})", group=1).action(a.unicode_escape),
            Regex(r"\\U([0-9A-Fa-f]{8})", group=1).action(a.unicode_escape),
            Regex(r"\\(.)", group=1, flags=re.DOTALL).action(a.escape_char),
        )
        entity = Regex(r"&(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);").action(a.entity)
        code = (
            Regex(r"``(.+?)``", group=1, flags=re.DOTALL) | Regex(r"`([^`\n]+)`", group=1)
        ).action(a.inline_code)
        simple = Alt(
            *(
                Regex(_simple_pattern(marker), group=1).map(lambda text, s=style: (s, text)).action(a.simple_format)
                for marker, style in SIMPLE_MARKERS.items()
            )
        )
        invocation = Fn(self._invocation, "macro or template")
        spans = Alt(
            *(
                (Skip(Literal("[" + marker)) + self.inline + close)
                .map(lambda values, s=style: (s, values[0]))
                .action(a.span)
                for marker, style in SPAN_MARKERS.items()
            )
        )
        ulink = (Regex(r"\[@([^\s\]]*)", group=1) + gap + self.inline + close).action(a.ulink)
        link = (Regex(r"\[link[ \t\n]+([^\s\]]+)", group=1) + gap + self.inline + close).action(a.link)
        anchor = Regex(r"\[anchor[ \t\n]+([^\s\]]+)[ \t\n]*\]", group=1).action(a.anchor)
        ref = (
            Regex(rf"\[({'|'.join(REF_KEYWORDS)})[ \t\n]+([^\s\]]+)", group=None)
            + gap
            + self.inline
            + close
        ).action(a.ref)
        image = Regex(r"\[\$[ \t]*([^\]]*?)[ \t]*\]", group=1).action(a.image)
        footnote = (Skip(Regex(r"\[footnote(?=[\s\]])[ \t\n]*")) + self.inline + close).action(a.footnote)
        br = Regex(r"\[br[ \t]*\]").action(lambda _, pos: a.line_break("", pos))
        unresolved = Fn(self._unresolved, "macro or template")
        text = (Regex(r"[^\[\]\\`'*/_=&\n]+") | Regex(r"[\\`'*/_=&]")).action(a.text)

        self.phrase_item.define(
            Alt(
                comment,
                raw,
                escapes,
                entity,
                code,
                simple,
                invocation,
                spans,
                ulink,
                link,
                anchor,
                ref,
                image,
                footnote,
                br,
                unresolved,
                text,
            ).named("phrase")
        )

        # ------------------------------------------------------------------
        # Blocks
        # ------------------------------------------------------------------

        eol = Skip(Regex(r"[ \t]*\n?"))
        body = Balanced().action(_with_position)

        blank = Skip(Regex(r"(?:[ \t]*\n)+|[ \t]+\Z"))
        comment_block = Skip(Literal("[/") + Balanced() + Literal("]") + eol)

        section = (
            Regex(r"\[section(?::([^\s\]]+))?(?=[\s\]])[ \t]*", group=1) + Capture(self.phrase) + close + eol
        ).action(a.section_open)
        endsect = (Regex(r"\[endsect[ \t]*\]") + eol).action(a.section_close)
        heading = (
            Regex(r"\[(h[1-6]|heading)(?=[\s\]])[ \t]*", group=1) + Capture(self.phrase) + close + eol
        ).action(a.heading)

        define = (Regex(rf"\[def[ \t\n]+({NAME})(?=[\s\]])", group=1) + Balanced() + close + eol).action(
            a.define_macro
        )
        template = (
            Regex(rf"\[template[ \t\n]+({NAME})", group=1)
            + Opt(Regex(rf"\[((?:[ \t]*{NAME})*)[ \t]*\]", group=1), "")
            + body
            + close
            + eol
        ).action(a.define_template)
        include = (
            Regex(r"\[include(?::([^\s\]]+))?[ \t\n]+", group=1) + Balanced() + close + eol
        ).action(a.include)
        xinclude = (Skip(Regex(r"\[xinclude[ \t\n]+")) + Balanced() + close + eol).action(a.xinclude)

        admonition = (
            Regex(r"\[(note|tip|important|caution|warning)(?=[\s\]])[ \t]*", group=1) + body + close + eol
        ).action(a.admonition)
        blurb = (Skip(Regex(r"\[blurb(?=[\s\]])[ \t]*")) + body + close + eol).action(a.blurb)
        blockquote = (Skip(Regex(r"\[:[ \t]*")) + body + close + eol).action(a.blockquote)
        pre = (Skip(Regex(r"\[pre(?=[\s\]])[ \t]*\n?")) + body + close + eol).action(a.preformatted)

        cell = (Skip(Literal("[")) + body + close).pick(0)
        row = (Skip(Literal("[")) + Many(_ws_then(cell), min=1) + Skip(Regex(r"\s*")) + close).pick(0)
        rows = Many(_ws_then(row))
        title = Regex(r"[^\[\]\n]*").action(_with_position)
        table = (
            Regex(r"\[table(?::([^\s\]]+))?(?=[\s\]])[ \t]*", group=1)
            + title
            + rows
            + Skip(Regex(r"\s*"))
            + close
            + eol
        ).action(a.table)
        variablelist = (
            Skip(Regex(r"\[variablelist(?=[\s\]])[ \t]*")) + title + rows + Skip(Regex(r"\s*")) + close + eol
        ).action(a.variablelist)

        hr = Regex(r"-{4,}[ \t]*(?:\n|\Z)").action(a.hr)
        list_line = Regex(r"([ \t]*)([*#])[ \t]+([^\n]*)(?:\n|\Z)", group=None).action(_with_position)
        lists = Many(list_line, min=1).action(a.list_block)
        code_block = Regex(
            r"(?:[ \t]+\S[^\n]*(?:\n|\Z)|[ \t]*\n(?=(?:[ \t]*\n)*[ \t]+\S))+"
        ).action(a.code_block)
        fenced = Regex(
            r"```[ \t]*([\w+#.-]*)[ \t]*\n(.*?)^[ \t]*```[ \t]*$\n?",
            group=None,
            flags=re.DOTALL | re.MULTILINE,
        ).action(a.fenced_code)
        raw_block = Regex(
            r"'''[ \t]*\n(.*?)^[ \t]*'''[ \t]*$\n?",
            group=1,
            flags=re.DOTALL | re.MULTILINE,
        ).action(a.raw_block)
        block_call = Fn(self._block_call, "block template").action(a.invoke_block)

        keywords = "|".join(sorted(BLOCK_KEYWORDS, key=len, reverse=True))
        para_end = Alt(
            Regex(r"[ \t]*(?:\n|\Z)"),
            Regex(rf"[ \t]*\[(?:{keywords})(?=[\s\]:])"),
            Regex(r"[ \t]*\[:"),
            Regex(r"[ \t]*[*#][ \t]"),
            Regex(r"-{4,}"),
            Regex(r"```"),
            Fn(self._block_call_ahead, "block template"),
        )
        continuation = (Literal("\n") + Not(para_end)).pick(0)
        paragraph = (
            self.phrase_item + Many(self.phrase_item | continuation) + Skip(Opt(Literal("\n")))
        ).action(a.paragraph)

        def blocks(top: bool) -> Rule:
            alternatives: list[Rule] = [
                blank,
                comment_block,
                section,
                endsect,
                heading,
                define,
                template,
                include,
                xinclude,
                admonition,
                blurb,
                blockquote,
                pre,
                table,
                variablelist,
                hr,
                lists,
            ]
            if top:
                alternatives.append(code_block)
            alternatives += [fenced, raw_block, block_call, paragraph]
            return Many(Alt(*alternatives).named("block"))

        self.blocks = blocks(top=True)
        self.nested_blocks = blocks(top=False)

        # ------------------------------------------------------------------
        # Command line definitions
        # ------------------------------------------------------------------

        self.command_line_macro = Regex(
            r"[ \t]*([^\s=\[\]]+)[ \t]*(?:=(.*))?\Z", group=None, flags=re.DOTALL
        ).action(a.command_line_macro)

    # ----------------------------------------------------------------------
    # Symbol-table driven rules
    # ----------------------------------------------------------------------

    def _call(self, cursor: Cursor, block: bool) -> Result:
        """Match ``[name args]`` for a defined ``name``; the value is the call's parts."""
        start = cursor.offset
        m = cursor.match(_CALL_START)
        if m is None:
            return Failure(start, "macro or template")
        name = m.group(1)
        definition = self.actions.state.scope.lookup(name)
        if definition is None:
            return Failure(start, "macro or template")
        if block and not (isinstance(definition, Template) and definition.block):
            return Failure(start, "block template")
        cursor.offset = m.end()
        args_start = cursor.offset
        args = _ARGS.parse(cursor)
        if isinstance(args, Failure):
            return args
        if not cursor.startswith("]"):
            return Failure(cursor.offset, "']'")
        cursor.advance(1)
        if block:
            end = cursor.match(_LINE_END)
            if end is None:
                return Failure(cursor.offset, "end of line")
            cursor.offset = end.end()
        return Success((name, args.value, cursor.position(args_start), cursor.position(start)))

    def _invocation(self, cursor: Cursor) -> Result:
        result = self._call(cursor, block=False)
        if isinstance(result, Failure):
            return result
        name, args, args_position, position = result.value
        return Success(self.actions.invoke(name, args, args_position, position))

    def _block_call(self, cursor: Cursor) -> Result:
        return self._call(cursor, block=True)

    def _block_call_ahead(self, cursor: Cursor) -> Result:
        # Only used under Not(), which restores the cursor.
        cursor.offset = _INDENT.match(cursor.text, cursor.offset).end()
        return self._call(cursor, block=True)

    def _unresolved(self, cursor: Cursor) -> Result:
        m = cursor.match(_CALL_START)
        if m is None or is_keyword(m.group(1)):
            return Failure(cursor.offset, "macro or template")
        raise ExpansionError(f"Unknown macro or template: {m.group(1)}", cursor.position())

