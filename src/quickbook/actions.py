"""Semantic actions: what happens when a grammar rule matches.

Phrase actions return encoded fragments. Block actions append to the
document's output buffer and update the section counter and symbol tables.
Macro and template invocation re-enters the grammar on the expansion text
with a child cursor, guarded by the document's :class:`ActiveOrigins`.
"""

from __future__ import annotations

import os
import re
import textwrap
from pathlib import Path
from typing import Any

from quickbook.cursor import Cursor, Position
from quickbook.docinfo import DocumentInfo
from quickbook.encoders import Construct
from quickbook.errors import ExpansionError, LoadError, LoadErrorKind, ParseError, SectionError
from quickbook.grammar import QuickbookGrammar
from quickbook.loader import find_include, load
from quickbook.rules import Failure
from quickbook.state import DocumentState, make_identifier
from quickbook.symbols import Argument, Macro, Scope, Template

COMMAND_LINE_ORIGIN = "command line parameter"

_WORD = re.compile(r"\s*(\S+)")


def advance_position(start: Position, text: str, offset: int) -> Position:
    """The position of ``text[offset]`` when ``text`` begins at ``start``."""
    newlines = text.count("\n", 0, offset)
    if newlines == 0:
        return Position(start.origin, start.line, start.column + offset, start.offset + offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(start.origin, start.line + newlines, offset - line_start + 1, start.offset + offset)


def split_arguments(text: str) -> list[tuple[str, int]]:
    """Split template arguments on top-level ``..``.

    Returns ``(argument, offset)`` pairs with surrounding whitespace removed;
    an empty or blank argument list gives no arguments.
    """
    if not text.strip():
        return []
    pieces: list[tuple[str, int]] = []
    depth = 0
    start = i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif depth == 0 and text.startswith("..", i):
            pieces.append(_trimmed(text, start, i))
            i += 2
            start = i
            continue
        i += 1
    pieces.append(_trimmed(text, start, len(text)))
    return pieces


def _trimmed(text: str, start: int, end: int) -> tuple[str, int]:
    piece = text[start:end]
    lead = len(piece) - len(piece.lstrip())
    return piece.strip(), start + lead


def _split_words(text: str, offset: int, count: int) -> list[tuple[str, int]]:
    # The last piece takes whatever is left.
    words: list[tuple[str, int]] = []
    pos = 0
    for _ in range(count - 1):
        m = _WORD.match(text, pos)
        if m is None:
            break
        words.append((m.group(1), offset + m.start(1)))
        pos = m.end()
    rest = text[pos:]
    if rest.strip():
        lead = len(rest) - len(rest.lstrip())
        words.append((rest.strip(), offset + pos + lead))
    return words


class Actions:
    """The callbacks bound into a :class:`QuickbookGrammar`.

    All callbacks take ``(value, position)`` where ``position`` is where the
    match began.
    """

    def __init__(self, state: DocumentState) -> None:
        self.state = state
        self.encoder = state.encoder
        self.include_depth = 0
        self.grammar = QuickbookGrammar(self)

    def _render(self, construct: Construct, **attrs: Any) -> str:
        return self.encoder.render(construct, **attrs)

    def _append(self, construct: Construct, **attrs: Any) -> None:
        self.state.out.append(self._render(construct, **attrs))

    # ------------------------------------------------------------------
    # Re-entering the grammar
    # ------------------------------------------------------------------

    def render_phrase(self, text: str, position: Position) -> str:
        """Render phrase content that must consume all of ``text``."""
        cursor = Cursor(text, position.origin, position.line, position.column)
        result = self.grammar.inline.parse(cursor)
        if isinstance(result, Failure) or not cursor.at_end():
            stop = cursor.position()
            raise ParseError(f"Syntax Error near column {stop.column}.", stop)
        return result.value

    def render_blocks(self, text: str, position: Position, top: bool = False) -> str:
        """Render block content into a fresh buffer and return it."""
        cursor = Cursor(text, position.origin, position.line, position.column)
        rule = self.grammar.blocks if top else self.grammar.nested_blocks
        self.state.out.push()
        try:
            rule.parse(cursor)
            if not cursor.at_end():
                stop = cursor.position()
                raise ParseError(f"Syntax Error near column {stop.column}.", stop)
        finally:
            content = self.state.out.pop()
        return content

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    def process_docinfo(self, info: DocumentInfo) -> DocumentInfo:
        """Record the header and, unless it is ignored, emit the document preamble."""
        info = info.with_defaults(self.state.config.gm_timestamp)
        if info.ignore:
            return info
        state = self.state
        state.doc_id = info.id
        if info.source_mode:
            state.source_mode = info.source_mode
        state.used_ids.add(info.id)

        origin = Position(state.origin, 1, 1, 0)
        self._append(
            Construct.DOC_PRE,
            doc_type=info.doc_type,
            id=info.id,
            title=info.title,
            dirname=info.dirname,
            last_revision=info.last_revision,
            authors=list(info.authors),
            copyrights=[(list(years), holder) for years, holder in info.copyrights],
            purpose=self.render_phrase(info.purpose, origin).strip(),
            category=info.category,
            license=self.render_phrase(info.license, origin).strip(),
            version=info.version,
        )
        return info

    def process_post(self, info: DocumentInfo | None) -> None:
        """Finish a unit: close sections left open and emit the closing markup.

        Only the top-level unit does this; ``section_level`` is left as is so
        the imbalance stays visible to the caller.
        """
        if self.include_depth:
            return
        state = self.state
        if state.section_level > 0:
            state.warning("Warning missing [endsect] detected at end of file.")
            for level in range(state.section_level, 0, -1):
                self._append(Construct.SECTION_CLOSE, level=level)
        if info is not None and not info.ignore:
            self._append(Construct.DOC_POST, doc_type=info.doc_type)
        else:
            self._append(Construct.FOOTNOTES)

    def install_presets(self) -> None:
        """Define the built-in macros and the ``-D`` definitions."""
        state = self.state
        timestamp = state.config.timestamp
        builtins = {
            "__DATE__": timestamp.strftime("%Y-%b-%d"),
            "__TIME__": timestamp.strftime("%I:%M:%S %p"),
            "__FILENAME__": state.origin,
        }
        for name, value in builtins.items():
            state.presets.define_template(Argument(name, self.encoder.text(value)))

        for definition in state.config.defines:
            cursor = Cursor(definition, COMMAND_LINE_ORIGIN)
            if isinstance(self.grammar.command_line_macro.parse(cursor), Failure):
                state.error(f"Error parsing command line definition: '{definition}'")

    def command_line_macro(self, m: re.Match[str], position: Position) -> None:
        name, value = m.group(1), m.group(2) or ""
        self.state.presets.define_macro(Macro(name, value.strip(), position))

    # ------------------------------------------------------------------
    # Phrases
    # ------------------------------------------------------------------

    def text(self, text: str, position: Position) -> str:
        return self.encoder.text(text)

    def raw_phrase(self, text: str, position: Position) -> str:
        return text

    def escape_char(self, char: str, position: Position) -> str:
        return self.encoder.text(char)

    def unicode_escape(self, digits: str, position: Position) -> str:
        code = int(digits, 16)
        # Surrogates and values past the Unicode range are kept as written.
        if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            marker = "\\u" if len(digits) == 4 else "\\U"
            return self.encoder.text(f"{marker}{digits}")
        return self.encoder.text(chr(code))

    def entity(self, text: str, position: Position) -> str:
        return text

    def line_break(self, _: object, position: Position) -> str:
        return self._render(Construct.LINE_BREAK)

    def inline_code(self, code: str, position: Position) -> str:
        return self._render(Construct.INLINE_CODE, code=code)

    def simple_format(self, value: tuple[str, str], position: Position) -> str:
        style, text = value
        return self._render(Construct.SPAN, style=style, content=self.encoder.text(text))

    def span(self, value: tuple[str, str], position: Position) -> str:
        style, content = value
        return self._render(Construct.SPAN, style=style, content=content)

    def ulink(self, value: tuple[str, str], position: Position) -> str:
        url, content = value
        return self._render(Construct.ULINK, url=url, content=content.strip() or self.encoder.text(url))

    def link(self, value: tuple[str, str], position: Position) -> str:
        target, content = value
        return self._render(Construct.LINK, target=target, content=content.strip() or self.encoder.text(target))

    def anchor(self, id: str, position: Position) -> str:
        return self._render(Construct.ANCHOR, id=id)

    def ref(self, value: tuple[re.Match[str], str], position: Position) -> str:
        m, content = value
        kind, name = m.group(1), m.group(2)
        return self._render(Construct.REF, kind=kind, name=name, content=content.strip() or self.encoder.text(name))

    def image(self, src: str, position: Position) -> str:
        return self._render(Construct.IMAGE, src=src, alt=Path(src).stem)

    def footnote(self, value: tuple[str], position: Position) -> str:
        return self._render(Construct.FOOTNOTE, content=value[0].strip())

    # ------------------------------------------------------------------
    # Macros and templates
    # ------------------------------------------------------------------

    def define_macro(self, value: tuple[str, str], position: Position) -> None:
        name, body = value
        self.state.scope.define_macro(Macro(name, body.strip(), position))

    def define_template(self, value: tuple[str, str, tuple[str, Position]], position: Position) -> None:
        name, params, (body, _) = value
        block = body.lstrip(" \t").startswith("\n")
        template = Template(
            name,
            tuple(params.split()),
            body if block else body.strip(),
            self.state.scope,
            block=block,
            position=position,
        )
        self.state.scope.define_template(template)

    def invoke(self, name: str, args: str, args_position: Position, position: Position) -> str:
        """Expand ``[name args]`` in phrase context and return the rendered text."""
        definition = self.state.scope.lookup(name)
        if definition is None:
            raise ExpansionError(f"Unknown macro or template: {name}", position)
        if isinstance(definition, Template):
            scope = self._bind_arguments(definition, args, args_position, position)
            return self._expand(name, definition.body, position, scope, block=False)
        _check_count(0, len(split_arguments(args)), position)
        if isinstance(definition, Argument):
            return definition.rendered
        return self._expand(name, definition.body, position, None, block=False)

    def invoke_block(self, value: tuple[str, str, Position, Position], position: Position) -> None:
        name, args, args_position, call_position = value
        definition = self.state.scope.lookup(name)
        assert isinstance(definition, Template)
        scope = self._bind_arguments(definition, args, args_position, call_position)
        self.state.out.append(self._expand(name, definition.body, call_position, scope, block=True))

    def _bind_arguments(self, template: Template, args: str, args_position: Position, position: Position) -> Scope:
        pieces = split_arguments(args)
        expected = len(template.params)
        if len(pieces) == 1 and expected > 1:
            text, offset = pieces[0]
            pieces = _split_words(text, offset, expected)
        _check_count(expected, len(pieces), position)

        # Arguments are rendered in the caller's scope, then bound in a scope
        # chained to the one the template was defined in.
        scope = template.scope.child()
        for param, (text, offset) in zip(template.params, pieces):
            rendered = self.render_phrase(text, advance_position(args_position, args, offset))
            scope.define_template(Argument(param, rendered))
        return scope

    def _expand(self, name: str, body: str, position: Position, scope: Scope | None, block: bool) -> str:
        state = self.state
        state.active.enter(name, position)
        label = f"{name} (expanded at {position.origin}:{position.line})"
        saved = state.scope
        if scope is not None:
            state.scope = scope
        try:
            start = Position(label, 1, 1, 0)
            if block:
                return self.render_blocks(body, start, top=True)
            return self.render_phrase(body, start)
        finally:
            state.scope = saved
            state.active.leave(name)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def section_open(self, value: tuple[str | None, tuple[str, str]], position: Position) -> None:
        explicit_id, (raw_title, title) = value
        state = self.state
        local = explicit_id or make_identifier(raw_title) or "section"
        section_id = state.unique_id(state.qualified_id(local))
        state.section_level += 1
        state.section_ids.append(section_id)
        self._append(Construct.SECTION_OPEN, id=section_id, title=title.strip(), level=state.section_level)

    def section_close(self, _: object, position: Position) -> None:
        state = self.state
        if state.section_level == 0:
            raise SectionError(f"Mismatched [endsect] near column {position.column}.", position)
        self._append(Construct.SECTION_CLOSE, level=state.section_level)
        state.section_level -= 1
        state.section_ids.pop()

    def heading(self, value: tuple[str, tuple[str, str]], position: Position) -> None:
        keyword, (raw_title, title) = value
        state = self.state
        level = int(keyword[1]) if keyword != "heading" else min(state.section_level + 1, 6)
        local = make_identifier(raw_title) or "heading"
        heading_id = state.unique_id(state.qualified_id(local))
        self._append(Construct.HEADING, level=level, id=heading_id, title=title.strip())

    def include(self, value: tuple[str | None, str], position: Position) -> None:
        from quickbook.driver import parse_unit

        include_id, name = value
        name = name.strip()
        state = self.state
        try:
            path = find_include(name, state.current_dir, state.config.include_path)
            if path is None:
                raise LoadError(name, LoadErrorKind.NOT_FOUND, position)
            text = load(path, position)
        except LoadError as exc:
            state.error(exc.detail, exc.position)
            return

        key = str(path.resolve())
        state.active.enter(key, position, label=str(path))
        saved = (state.current_dir, state.doc_id, state.scope)
        state.current_dir = path.parent
        if include_id:
            state.doc_id = include_id
        state.scope = state.scope.child()
        self.include_depth += 1
        try:
            parse_unit(Cursor(text, str(path)), state, self, ignore_docinfo=True)
        finally:
            self.include_depth -= 1
            state.current_dir, state.doc_id, state.scope = saved
            state.active.leave(key)

    def xinclude(self, value: tuple[str], position: Position) -> None:
        name = value[0].strip()
        outdir = self.state.outdir
        if outdir is not None:
            target = os.path.relpath(self.state.current_dir / name, outdir)
            href = Path(target).as_posix()
        else:
            href = name
        self._append(Construct.XINCLUDE, href=href)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def paragraph(self, value: tuple[str, list[str]], position: Position) -> None:
        first, rest = value
        content = (first + "".join(rest)).strip()
        if content:
            self._append(Construct.PARAGRAPH, content=content)

    def admonition(self, value: tuple[str, tuple[str, Position]], position: Position) -> None:
        kind, (raw, start) = value
        self._append(Construct.ADMONITION, kind=kind, content=self.render_blocks(raw, start))

    def blurb(self, value: tuple[tuple[str, Position]], position: Position) -> None:
        raw, start = value[0]
        self._append(Construct.BLURB, content=self.render_blocks(raw, start))

    def blockquote(self, value: tuple[tuple[str, Position]], position: Position) -> None:
        raw, start = value[0]
        self._append(Construct.BLOCKQUOTE, content=self.render_phrase(raw, start).strip())

    def preformatted(self, value: tuple[tuple[str, Position]], position: Position) -> None:
        raw, start = value[0]
        self._append(Construct.PREFORMATTED, content=self.render_phrase(raw.rstrip(), start))

    def hr(self, _: object, position: Position) -> None:
        self._append(Construct.HR)

    def code_block(self, text: str, position: Position) -> None:
        code = textwrap.dedent(text).rstrip()
        self._append(Construct.CODE_BLOCK, code=code, language=self.state.source_mode)

    def fenced_code(self, m: re.Match[str], position: Position) -> None:
        language = m.group(1) or self.state.source_mode
        self._append(Construct.CODE_BLOCK, code=m.group(2).removesuffix("\n"), language=language)

    def raw_block(self, text: str, position: Position) -> None:
        self.state.out.append(text if text.endswith("\n") else text + "\n")

    def list_block(self, lines: list[tuple[re.Match[str], Position]], position: Position) -> None:
        items: list[tuple[int, str, str, Position]] = []
        for m, start in lines:
            indent = len(m.group(1).expandtabs(4))
            text_start = advance_position(start, m.group(0), m.start(3) - m.start())
            items.append((indent, m.group(2), m.group(3), text_start))
        i = 0
        while i < len(items):
            rendered, i = self._build_list(items, i)
            self.state.out.append(rendered)

    def _build_list(self, items: list[tuple[int, str, str, Position]], start: int) -> tuple[str, int]:
        base, marker = items[start][0], items[start][1]
        rendered: list[str] = []
        i = start
        while i < len(items) and items[i][0] == base:
            _, _, text, text_start = items[i]
            content = self.render_phrase(text.rstrip(), text_start).strip()
            i += 1
            nested = ""
            while i < len(items) and items[i][0] > base:
                sub, i = self._build_list(items, i)
                nested += sub
            rendered.append(self._render(Construct.LIST_ITEM, content=content, nested=nested))
        return self._render(Construct.LIST, ordered=marker == "#", items=rendered), i

    def table(
        self,
        value: tuple[str | None, tuple[str, Position], list[list[tuple[str, Position]]]],
        position: Position,
    ) -> None:
        explicit_id, (raw_title, title_start), rows = value
        state = self.state
        title = self.render_phrase(raw_title, title_start).strip()
        table_id = ""
        if explicit_id or raw_title.strip():
            local = explicit_id or make_identifier(raw_title) or "table"
            table_id = state.unique_id(state.qualified_id(local))
        cells = [[self.render_phrase(raw, start).strip() for raw, start in row] for row in rows]
        header = cells[0] if len(cells) > 1 else None
        body = cells[1:] if len(cells) > 1 else cells
        columns = max((len(row) for row in cells), default=1)
        self._append(Construct.TABLE, id=table_id, title=title, header=header, rows=body, columns=columns)

    def variablelist(
        self,
        value: tuple[tuple[str, Position], list[list[tuple[str, Position]]]],
        position: Position,
    ) -> None:
        (raw_title, title_start), rows = value
        title = self.render_phrase(raw_title, title_start).strip()
        entries: list[tuple[str, list[str]]] = []
        for row in rows:
            rendered = [self.render_phrase(raw, start).strip() for raw, start in row]
            entries.append((rendered[0], rendered[1:]))
        self._append(Construct.VARIABLELIST, title=title, entries=entries)


def _check_count(expected: int, got: int, position: Position) -> None:
    if expected != got:
        raise ExpansionError(
            f"Invalid number of arguments passed. Expecting: {expected} argument(s), "
            f"got: {got} argument(s) instead.",
            position,
        )
