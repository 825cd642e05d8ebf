"""Structural pretty-printer for the generated XML/HTML.

The rendered output is re-tokenized into a stream of :class:`Element`
tokens, rebuilt into a tree and re-emitted: block-level elements on their
own lines indented by depth, inline content flowed and wrapped at
whitespace, preformatted elements copied verbatim. Tags not in the block
table are treated as inline so unknown markup is never split apart.

``format(format(x, w, n), w, n) == format(x, w, n)`` holds for any input.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_INDENT = 2
DEFAULT_LINEWIDTH = 80

BLOCK_TAGS: frozenset[str] = frozenset(
    {
        # BoostBook / DocBook
        "library",
        "article",
        "book",
        "chapter",
        "part",
        "appendix",
        "preface",
        "qandadiv",
        "qandaset",
        "reference",
        "set",
        "libraryinfo",
        "articleinfo",
        "bookinfo",
        "chapterinfo",
        "partinfo",
        "appendixinfo",
        "prefaceinfo",
        "qandadivinfo",
        "qandasetinfo",
        "referenceinfo",
        "setinfo",
        "section",
        "title",
        "para",
        "simpara",
        "bridgehead",
        "itemizedlist",
        "orderedlist",
        "listitem",
        "variablelist",
        "varlistentry",
        "term",
        "table",
        "informaltable",
        "tgroup",
        "thead",
        "tbody",
        "row",
        "entry",
        "note",
        "tip",
        "important",
        "caution",
        "warning",
        "sidebar",
        "blockquote",
        "author",
        "firstname",
        "surname",
        "copyright",
        "year",
        "holder",
        "legalnotice",
        "librarypurpose",
        "librarycategory",
        "xi:include",
        # HTML
        "html",
        "head",
        "body",
        "meta",
        "div",
        "p",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "ul",
        "ol",
        "li",
        "dl",
        "dt",
        "dd",
        "caption",
        "tr",
        "th",
        "td",
        "hr",
    }
)

PRE_TAGS: frozenset[str] = frozenset({"programlisting", "literallayout", "screen", "synopsis", "pre"})

# HTML elements that never have content, with or without a trailing slash.
VOID_TAGS: frozenset[str] = frozenset({"br", "hr", "img", "meta", "link", "input"})


class ElementKind(Enum):
    START = "start"
    END = "end"
    EMPTY = "empty"
    TEXT = "text"
    DECLARATION = "declaration"
    COMMENT = "comment"


@dataclass(frozen=True, slots=True)
class Element:
    """One token of the output stream: its raw text, tag name and nesting depth."""

    kind: ElementKind
    text: str
    name: str = ""
    depth: int = 0


_TOKEN = re.compile(
    r"""
      (?P<comment><!--.*?-->|<!\[CDATA\[.*?\]\]>)
    | (?P<decl><\?.*?\?>|<![A-Za-z][^>]*>)
    | (?P<end></(?P<end_name>[\w:.-]+)\s*>)
    | (?P<tag><(?P<name>[\w:.-]+)(?:\s[^<>]*?)?(?P<slash>/)?>)
    | (?P<text>[^<]+|<)
    """,
    re.DOTALL | re.VERBOSE,
)

_WHITESPACE = re.compile(r"(\s+)")


def iter_elements(text: str) -> Iterator[Element]:
    """Lazily tokenize ``text``.

    Depth is the number of enclosing open elements. An end tag closes any
    elements still open inside it; an end tag with no open element of that
    name is passed through as text.
    """
    stack: list[str] = []
    for m in _TOKEN.finditer(text):
        raw = m.group(0)
        if m.group("comment") is not None:
            yield Element(ElementKind.COMMENT, raw, depth=len(stack))
        elif m.group("decl") is not None:
            yield Element(ElementKind.DECLARATION, raw, depth=len(stack))
        elif m.group("end") is not None:
            name = m.group("end_name")
            if name not in stack:
                yield Element(ElementKind.TEXT, raw, depth=len(stack))
                continue
            while stack[-1] != name:
                stack.pop()
            stack.pop()
            yield Element(ElementKind.END, raw, name, len(stack))
        elif m.group("tag") is not None:
            name = m.group("name")
            if m.group("slash") or name.lower() in VOID_TAGS:
                yield Element(ElementKind.EMPTY, raw, name, len(stack))
            else:
                yield Element(ElementKind.START, raw, name, len(stack))
                stack.append(name)
        else:
            yield Element(ElementKind.TEXT, raw, depth=len(stack))


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Node:
    opening: str
    name: str
    children: list[_Node | _Verbatim | Element] = field(default_factory=list)
    closing: str = ""


@dataclass(frozen=True, slots=True)
class _Verbatim:
    """A preformatted element, kept exactly as written."""

    text: str


def _build_tree(elements: Iterator[Element]) -> _Node:
    root = _Node("", "")
    stack = [root]
    pending: Element | None = None
    while True:
        if pending is not None:
            element, pending = pending, None
        else:
            element = next(elements, None)
            if element is None:
                break
        if element.kind is ElementKind.START and element.name in PRE_TAGS:
            verbatim, pending = _collect_verbatim(element, elements)
            stack[-1].children.append(verbatim)
        elif element.kind is ElementKind.START:
            node = _Node(element.text, element.name)
            stack[-1].children.append(node)
            stack.append(node)
        elif element.kind is ElementKind.END:
            # Elements closed implicitly keep an empty closing tag.
            del stack[element.depth + 2 :]
            stack.pop().closing = element.text
        else:
            stack[-1].children.append(element)
    return root


def _collect_verbatim(start: Element, elements: Iterator[Element]) -> tuple[_Verbatim, Element | None]:
    """Gather a preformatted element's raw text up to its end tag.

    An end tag for an enclosing element also ends it; that tag is handed
    back to be processed by the caller.
    """
    parts = [start.text]
    for element in elements:
        if element.kind is ElementKind.END and element.depth < start.depth:
            return _Verbatim("".join(parts).rstrip()), element
        parts.append(element.text)
        if element.kind is ElementKind.END and element.depth == start.depth:
            return _Verbatim("".join(parts)), None
    return _Verbatim("".join(parts).rstrip()), None


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def _is_block(item: _Node | _Verbatim | Element) -> bool:
    if isinstance(item, _Verbatim):
        return True
    if isinstance(item, _Node):
        return item.name in BLOCK_TAGS
    if item.kind is ElementKind.DECLARATION:
        return True
    return item.kind is ElementKind.EMPTY and item.name in BLOCK_TAGS


def _pieces(item: _Node | _Verbatim | Element) -> list[str | None]:
    """Flatten inline content; ``None`` marks whitespace (a break opportunity)."""
    if isinstance(item, _Verbatim):
        return [item.text]
    if isinstance(item, _Node):
        pieces: list[str | None] = [item.opening]
        for child in item.children:
            pieces.extend(_pieces(child))
        pieces.append(item.closing)
        return pieces
    if item.kind is ElementKind.TEXT:
        return [None if part.isspace() else part for part in _WHITESPACE.split(item.text) if part]
    return [item.text]


def _atoms(items: list[_Node | _Verbatim | Element]) -> list[str]:
    atoms: list[str] = []
    current = ""
    for item in items:
        for piece in _pieces(item):
            if piece is None:
                if current:
                    atoms.append(current)
                current = ""
            else:
                current += piece
    if current:
        atoms.append(current)
    return atoms


class _Printer:
    def __init__(self, indent_width: int, line_width: int) -> None:
        self.indent_width = indent_width
        self.line_width = line_width
        self.lines: list[str] = []

    def pad(self, depth: int) -> str:
        return " " * (depth * self.indent_width)

    def wrap(self, atoms: list[str], depth: int) -> None:
        pad = self.pad(depth)
        line = ""
        for atom in atoms:
            if not line:
                line = pad + atom
            elif len(line) + 1 + len(atom) > self.line_width:
                self.lines.append(line)
                line = pad + atom
            else:
                line += " " + atom
        if line:
            self.lines.append(line)

    def children(self, items: list[_Node | _Verbatim | Element], depth: int) -> None:
        run: list[_Node | _Verbatim | Element] = []
        for item in items:
            if not _is_block(item):
                run.append(item)
                continue
            self.wrap(_atoms(run), depth)
            run = []
            if isinstance(item, _Node):
                self.block(item, depth)
            elif isinstance(item, _Verbatim):
                self.lines.append(self.pad(depth) + item.text)
            else:
                self.lines.append(self.pad(depth) + item.text)
        self.wrap(_atoms(run), depth)

    def block(self, node: _Node, depth: int) -> None:
        pad = self.pad(depth)
        if not any(_is_block(child) for child in node.children):
            atoms = _atoms(node.children)
            single = pad + node.opening + " ".join(atoms) + node.closing
            if not atoms or len(single) <= self.line_width:
                self.lines.append(single)
                return
            self.lines.append(pad + node.opening)
            self.wrap(atoms, depth + 1)
        else:
            self.lines.append(pad + node.opening)
            self.children(node.children, depth + 1)
        if node.closing:
            self.lines.append(pad + node.closing)


def format(text: str, indent_width: int = DEFAULT_INDENT, line_width: int = DEFAULT_LINEWIDTH) -> str:
    """Re-indent and re-wrap rendered markup. Idempotent."""
    printer = _Printer(indent_width, line_width)
    printer.children(_build_tree(iter_elements(text)).children, 0)
    if not printer.lines:
        return ""
    return "\n".join(printer.lines) + "\n"


post_process = format
