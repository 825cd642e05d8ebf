"""Output encoders: render recognized constructs into BoostBook XML or HTML."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from quickbook.errors import EncoderError


class Construct(Enum):
    """Every construct the grammar can hand to an encoder."""

    TEXT = "text"
    DOC_PRE = "doc_pre"
    DOC_POST = "doc_post"
    FOOTNOTES = "footnotes"
    PARAGRAPH = "paragraph"
    SECTION_OPEN = "section_open"
    SECTION_CLOSE = "section_close"
    HEADING = "heading"
    SPAN = "span"
    INLINE_CODE = "inline_code"
    LINE_BREAK = "line_break"
    ULINK = "ulink"
    LINK = "link"
    ANCHOR = "anchor"
    REF = "ref"
    IMAGE = "image"
    FOOTNOTE = "footnote"
    CODE_BLOCK = "code_block"
    PREFORMATTED = "preformatted"
    BLOCKQUOTE = "blockquote"
    ADMONITION = "admonition"
    BLURB = "blurb"
    HR = "hr"
    LIST = "list"
    LIST_ITEM = "list_item"
    TABLE = "table"
    VARIABLELIST = "variablelist"
    XINCLUDE = "xinclude"


SPAN_STYLES: tuple[str, ...] = (
    "bold",
    "italic",
    "underline",
    "teletype",
    "strikethrough",
    "replaceable",
    "quote",
)

REF_KINDS: tuple[str, ...] = (
    "funcref",
    "classref",
    "memberref",
    "enumref",
    "macroref",
    "headerref",
    "conceptref",
    "globalref",
)

ADMONITIONS: tuple[str, ...] = ("note", "tip", "important", "caution", "warning")


class Encoder(ABC):
    """Renders constructs for one output schema.

    ``render`` dispatches on :class:`Construct`; every construct has an
    abstract method, so an incomplete encoder cannot be instantiated.
    """

    name: str = ""

    def render(self, construct: Construct, **attrs: Any) -> str:
        method = getattr(self, construct.value, None)
        if method is None:
            raise EncoderError(f"{type(self).__name__} cannot render {construct.name}")
        return method(**attrs)

    # Text ------------------------------------------------------------

    @abstractmethod
    def text(self, text: str) -> str: ...

    @abstractmethod
    def attr(self, value: str) -> str: ...

    # Document --------------------------------------------------------

    @abstractmethod
    def doc_pre(
        self,
        doc_type: str,
        id: str,
        title: str,
        dirname: str,
        last_revision: str,
        authors: list[tuple[str, str]],
        copyrights: list[tuple[list[str], str]],
        purpose: str,
        category: str,
        license: str,
        version: str = "",
    ) -> str: ...

    @abstractmethod
    def doc_post(self, doc_type: str) -> str: ...

    @abstractmethod
    def footnotes(self) -> str: ...

    # Blocks ----------------------------------------------------------

    @abstractmethod
    def paragraph(self, content: str) -> str: ...

    @abstractmethod
    def section_open(self, id: str, title: str, level: int) -> str: ...

    @abstractmethod
    def section_close(self, level: int) -> str: ...

    @abstractmethod
    def heading(self, level: int, id: str, title: str) -> str: ...

    @abstractmethod
    def code_block(self, code: str, language: str) -> str: ...

    @abstractmethod
    def preformatted(self, content: str) -> str: ...

    @abstractmethod
    def blockquote(self, content: str) -> str: ...

    @abstractmethod
    def admonition(self, kind: str, content: str) -> str: ...

    @abstractmethod
    def blurb(self, content: str) -> str: ...

    @abstractmethod
    def hr(self) -> str: ...

    @abstractmethod
    def list(self, ordered: bool, items: list[str]) -> str: ...

    @abstractmethod
    def list_item(self, content: str, nested: str) -> str: ...

    @abstractmethod
    def table(
        self,
        id: str,
        title: str,
        header: list[str] | None,
        rows: list[list[str]],
        columns: int,
    ) -> str: ...

    @abstractmethod
    def variablelist(self, title: str, entries: list[tuple[str, list[str]]]) -> str: ...

    @abstractmethod
    def xinclude(self, href: str) -> str: ...

    # Phrases ---------------------------------------------------------

    @abstractmethod
    def span(self, style: str, content: str) -> str: ...

    @abstractmethod
    def inline_code(self, code: str) -> str: ...

    @abstractmethod
    def line_break(self) -> str: ...

    @abstractmethod
    def ulink(self, url: str, content: str) -> str: ...

    @abstractmethod
    def link(self, target: str, content: str) -> str: ...

    @abstractmethod
    def anchor(self, id: str) -> str: ...

    @abstractmethod
    def ref(self, kind: str, name: str, content: str) -> str: ...

    @abstractmethod
    def image(self, src: str, alt: str) -> str: ...

    @abstractmethod
    def footnote(self, content: str) -> str: ...


# ---------------------------------------------------------------------------
# BoostBook
# ---------------------------------------------------------------------------

_BOOSTBOOK_SPANS: dict[str, tuple[str, str]] = {
    "bold": ('<emphasis role="bold">', "</emphasis>"),
    "italic": ("<emphasis>", "</emphasis>"),
    "underline": ('<emphasis role="underline">', "</emphasis>"),
    "teletype": ("<literal>", "</literal>"),
    "strikethrough": ('<emphasis role="strikethrough">', "</emphasis>"),
    "replaceable": ("<replaceable>", "</replaceable>"),
    "quote": ("<quote>", "</quote>"),
}

_BOOSTBOOK_REFS: dict[str, str] = {
    "funcref": "functionname",
    "classref": "classname",
    "memberref": "methodname",
    "enumref": "enumname",
    "macroref": "macroname",
    "headerref": "headername",
    "conceptref": "conceptname",
    "globalref": "globalname",
}


class BoostBookEncoder(Encoder):
    """BoostBook (DocBook dialect) XML."""

    name = "boostbook"

    def text(self, text: str) -> str:
        return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    def attr(self, value: str) -> str:
        return self.text(value).replace('"', "&quot;")

    def doc_pre(
        self,
        doc_type: str,
        id: str,
        title: str,
        dirname: str,
        last_revision: str,
        authors: list[tuple[str, str]],
        copyrights: list[tuple[list[str], str]],
        purpose: str,
        category: str,
        license: str,
        version: str = "",
    ) -> str:
        parts: list[str] = [
            '<?xml version="1.0" encoding="UTF-8"?>\n',
            f'<!DOCTYPE {doc_type} PUBLIC "-//Boost//DTD BoostBook XML V1.0//EN" '
            '"http://www.boost.org/tools/boostbook/dtd/boostbook.dtd">\n',
            f'<{doc_type} id="{self.attr(id)}"',
        ]
        if doc_type == "library":
            parts.append(f' name="{self.attr(title)}" dirname="{self.attr(dirname)}"')
        parts.append(f' last-revision="{self.attr(last_revision)}"')
        parts.append(' xmlns:xi="http://www.w3.org/2001/XInclude">\n')

        info: list[str] = []
        for surname, firstname in authors:
            info.append(
                f"<author>\n<firstname>{self.text(firstname)}</firstname>\n"
                f"<surname>{self.text(surname)}</surname>\n</author>\n"
            )
        for years, holder in copyrights:
            info.append("<copyright>\n")
            info.extend(f"<year>{self.text(year)}</year>\n" for year in years)
            info.append(f"<holder>{self.text(holder)}</holder>\n</copyright>\n")
        if license:
            info.append(f"<legalnotice>\n<para>\n{license}\n</para>\n</legalnotice>\n")
        if doc_type == "library":
            if purpose:
                info.append(f"<librarypurpose>{purpose}</librarypurpose>\n")
            if category:
                info.append(f'<librarycategory name="category:{self.attr(category)}"></librarycategory>\n')
        if info:
            parts.append(f"<{doc_type}info>\n")
            parts.extend(info)
            parts.append(f"</{doc_type}info>\n")

        # The version is shown after the title but not in the library name.
        full_title = f"{title} {version}" if version else title
        parts.append(f"<title>{self.text(full_title)}</title>\n")
        return "".join(parts)

    def doc_post(self, doc_type: str) -> str:
        return f"</{doc_type}>\n"

    def footnotes(self) -> str:
        # Footnotes are rendered inline.
        return ""

    def paragraph(self, content: str) -> str:
        return f"<para>\n{content}\n</para>\n"

    def section_open(self, id: str, title: str, level: int) -> str:
        return f'<section id="{self.attr(id)}">\n<title>{title}</title>\n'

    def section_close(self, level: int) -> str:
        return "</section>\n"

    def heading(self, level: int, id: str, title: str) -> str:
        return f'<bridgehead renderas="sect{level}" id="{self.attr(id)}">{title}</bridgehead>\n'

    def code_block(self, code: str, language: str) -> str:
        lang = f' language="{self.attr(language)}"' if language else ""
        return f"<programlisting{lang}>{self.text(code)}</programlisting>\n"

    def preformatted(self, content: str) -> str:
        return f"<programlisting>{content}</programlisting>\n"

    def blockquote(self, content: str) -> str:
        return f"<blockquote>\n<para>\n{content}\n</para>\n</blockquote>\n"

    def admonition(self, kind: str, content: str) -> str:
        if kind not in ADMONITIONS:
            raise EncoderError(f"unknown admonition: {kind}")
        return f"<{kind}>\n{content}</{kind}>\n"

    def blurb(self, content: str) -> str:
        return f'<sidebar role="blurb">\n{content}</sidebar>\n'

    def hr(self) -> str:
        return "<para/>\n"

    def list(self, ordered: bool, items: list[str]) -> str:
        tag = "orderedlist" if ordered else "itemizedlist"
        return f"<{tag}>\n{''.join(items)}</{tag}>\n"

    def list_item(self, content: str, nested: str) -> str:
        return f"<listitem>\n<simpara>\n{content}\n</simpara>\n{nested}</listitem>\n"

    def table(
        self,
        id: str,
        title: str,
        header: list[str] | None,
        rows: list[list[str]],
        columns: int,
    ) -> str:
        parts: list[str] = []
        if title:
            id_attr = f' id="{self.attr(id)}"' if id else ""
            parts.append(f'<table frame="all"{id_attr}>\n<title>{title}</title>\n')
            tag = "table"
        else:
            parts.append('<informaltable frame="all">\n')
            tag = "informaltable"
        parts.append(f'<tgroup cols="{columns}">\n')
        if header is not None:
            parts.append("<thead>\n")
            parts.append(self._row(header))
            parts.append("</thead>\n")
        parts.append("<tbody>\n")
        parts.extend(self._row(row) for row in rows)
        parts.append("</tbody>\n</tgroup>\n")
        parts.append(f"</{tag}>\n")
        return "".join(parts)

    def _row(self, cells: list[str]) -> str:
        entries = "".join(f"<entry>\n{cell}\n</entry>\n" for cell in cells)
        return f"<row>\n{entries}</row>\n"

    def variablelist(self, title: str, entries: list[tuple[str, list[str]]]) -> str:
        parts: list[str] = ["<variablelist>\n"]
        if title:
            parts.append(f"<title>{title}</title>\n")
        for term, definitions in entries:
            parts.append(f"<varlistentry>\n<term>{term}</term>\n<listitem>\n")
            parts.extend(f"<para>\n{d}\n</para>\n" for d in definitions)
            parts.append("</listitem>\n</varlistentry>\n")
        parts.append("</variablelist>\n")
        return "".join(parts)

    def xinclude(self, href: str) -> str:
        return f'<xi:include href="{self.attr(href)}"/>\n'

    def span(self, style: str, content: str) -> str:
        try:
            open_tag, close_tag = _BOOSTBOOK_SPANS[style]
        except KeyError:
            raise EncoderError(f"unknown span style: {style}") from None
        return f"{open_tag}{content}{close_tag}"

    def inline_code(self, code: str) -> str:
        return f"<code>{self.text(code)}</code>"

    def line_break(self) -> str:
        return "<sbr/>"

    def ulink(self, url: str, content: str) -> str:
        return f'<ulink url="{self.attr(url)}">{content}</ulink>'

    def link(self, target: str, content: str) -> str:
        return f'<link linkend="{self.attr(target)}">{content}</link>'

    def anchor(self, id: str) -> str:
        return f'<anchor id="{self.attr(id)}"/>'

    def ref(self, kind: str, name: str, content: str) -> str:
        try:
            tag = _BOOSTBOOK_REFS[kind]
        except KeyError:
            raise EncoderError(f"unknown reference kind: {kind}") from None
        return f'<{tag} alt="{self.attr(name)}">{content}</{tag}>'

    def image(self, src: str, alt: str) -> str:
        return (
            "<inlinemediaobject><imageobject>"
            f'<imagedata fileref="{self.attr(src)}"></imagedata>'
            "</imageobject><textobject>"
            f"<phrase>{self.text(alt)}</phrase>"
            "</textobject></inlinemediaobject>"
        )

    def footnote(self, content: str) -> str:
        return f"<footnote><para>{content}</para></footnote>"


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_HTML_SPANS: dict[str, tuple[str, str]] = {
    "bold": ("<strong>", "</strong>"),
    "italic": ("<em>", "</em>"),
    "underline": ("<u>", "</u>"),
    "teletype": ('<code class="literal">', "</code>"),
    "strikethrough": ("<s>", "</s>"),
    "replaceable": ("<var>", "</var>"),
    "quote": ("<q>", "</q>"),
}


class HtmlEncoder(Encoder):
    """Stand-alone HTML. Footnotes are collected and emitted at the end."""

    name = "html"

    def __init__(self) -> None:
        self._footnotes: list[tuple[int, str]] = []
        self._footnote_count = 0

    def text(self, text: str) -> str:
        result: list[str] = []
        for ch in text:
            if ch == "&":
                result.append("&amp;")
            elif ch == "<":
                result.append("&lt;")
            elif ch == ">":
                result.append("&gt;")
            elif ord(ch) > 0x7F:
                result.append(f"&#x{ord(ch):X};")
            else:
                result.append(ch)
        return "".join(result)

    def attr(self, value: str) -> str:
        return self.text(value).replace('"', "&quot;")

    def doc_pre(
        self,
        doc_type: str,
        id: str,
        title: str,
        dirname: str,
        last_revision: str,
        authors: list[tuple[str, str]],
        copyrights: list[tuple[list[str], str]],
        purpose: str,
        category: str,
        license: str,
        version: str = "",
    ) -> str:
        full_title = f"{title} {version}" if version else title
        parts: list[str] = [
            "<!DOCTYPE html>\n",
            "<html>\n<head>\n",
            '<meta charset="utf-8"/>\n',
            f"<title>{self.text(full_title)}</title>\n",
        ]
        for surname, firstname in authors:
            name = f"{firstname} {surname}".strip()
            parts.append(f'<meta name="author" content="{self.attr(name)}"/>\n')
        parts.append(f'<meta name="last-revision" content="{self.attr(last_revision)}"/>\n')
        parts.append("</head>\n<body>\n")
        parts.append(f'<div class="{self.attr(doc_type)}" id="{self.attr(id)}">\n')
        parts.append(f"<h1>{self.text(full_title)}</h1>\n")

        info: list[str] = []
        for surname, firstname in authors:
            name = f"{firstname} {surname}".strip()
            info.append(f'<p class="author">{self.text(name)}</p>\n')
        for years, holder in copyrights:
            info.append(
                f'<p class="copyright">Copyright {self.text(chr(0xA9))} '
                f"{self.text(', '.join(years))} {self.text(holder)}</p>\n"
            )
        if purpose:
            info.append(f'<p class="purpose">{purpose}</p>\n')
        if category:
            info.append(f'<p class="category">{self.text(category)}</p>\n')
        if license:
            info.append(f'<div class="legalnotice">\n<p>\n{license}\n</p>\n</div>\n')
        if info:
            parts.append('<div class="docinfo">\n')
            parts.extend(info)
            parts.append("</div>\n")
        return "".join(parts)

    def doc_post(self, doc_type: str) -> str:
        return f"{self.footnotes()}</div>\n</body>\n</html>\n"

    def footnotes(self) -> str:
        if not self._footnotes:
            return ""
        parts = ['<div class="footnotes">\n']
        for number, content in self._footnotes:
            parts.append(
                f'<p id="footnote-{number}"><sup><a href="#footnote-ref-{number}">[{number}]</a></sup> '
                f"{content}</p>\n"
            )
        parts.append("</div>\n")
        self._footnotes.clear()
        return "".join(parts)

    def paragraph(self, content: str) -> str:
        return f"<p>\n{content}\n</p>\n"

    def section_open(self, id: str, title: str, level: int) -> str:
        h = min(level + 1, 6)
        return f'<div class="section" id="{self.attr(id)}">\n<h{h}>{title}</h{h}>\n'

    def section_close(self, level: int) -> str:
        return "</div>\n"

    def heading(self, level: int, id: str, title: str) -> str:
        h = min(level + 1, 6)
        return f'<h{h} id="{self.attr(id)}">{title}</h{h}>\n'

    def code_block(self, code: str, language: str) -> str:
        lang = f' data-language="{self.attr(language)}"' if language else ""
        return f'<pre class="programlisting"{lang}>{self.text(code)}</pre>\n'

    def preformatted(self, content: str) -> str:
        return f"<pre>{content}</pre>\n"

    def blockquote(self, content: str) -> str:
        return f"<blockquote>\n<p>\n{content}\n</p>\n</blockquote>\n"

    def admonition(self, kind: str, content: str) -> str:
        if kind not in ADMONITIONS:
            raise EncoderError(f"unknown admonition: {kind}")
        return f'<div class="{kind}">\n{content}</div>\n'

    def blurb(self, content: str) -> str:
        return f'<div class="blurb">\n{content}</div>\n'

    def hr(self) -> str:
        return "<hr/>\n"

    def list(self, ordered: bool, items: list[str]) -> str:
        tag = "ol" if ordered else "ul"
        return f"<{tag}>\n{''.join(items)}</{tag}>\n"

    def list_item(self, content: str, nested: str) -> str:
        return f"<li>\n{content}\n{nested}</li>\n"

    def table(
        self,
        id: str,
        title: str,
        header: list[str] | None,
        rows: list[list[str]],
        columns: int,
    ) -> str:
        id_attr = f' id="{self.attr(id)}"' if id else ""
        parts: list[str] = [f'<table class="table"{id_attr}>\n']
        if title:
            parts.append(f"<caption>{title}</caption>\n")
        if header is not None:
            cells = "".join(f"<th>\n{cell}\n</th>\n" for cell in header)
            parts.append(f"<thead>\n<tr>\n{cells}</tr>\n</thead>\n")
        parts.append("<tbody>\n")
        for row in rows:
            cells = "".join(f"<td>\n{cell}\n</td>\n" for cell in row)
            parts.append(f"<tr>\n{cells}</tr>\n")
        parts.append("</tbody>\n</table>\n")
        return "".join(parts)

    def variablelist(self, title: str, entries: list[tuple[str, list[str]]]) -> str:
        parts: list[str] = []
        if title:
            parts.append(f'<p class="title">{title}</p>\n')
        parts.append('<dl class="variablelist">\n')
        for term, definitions in entries:
            parts.append(f"<dt>{term}</dt>\n<dd>\n")
            parts.extend(f"<p>\n{d}\n</p>\n" for d in definitions)
            parts.append("</dd>\n")
        parts.append("</dl>\n")
        return "".join(parts)

    def xinclude(self, href: str) -> str:
        return f'<p class="xinclude"><a href="{self.attr(href)}">{self.text(href)}</a></p>\n'

    def span(self, style: str, content: str) -> str:
        try:
            open_tag, close_tag = _HTML_SPANS[style]
        except KeyError:
            raise EncoderError(f"unknown span style: {style}") from None
        return f"{open_tag}{content}{close_tag}"

    def inline_code(self, code: str) -> str:
        return f"<code>{self.text(code)}</code>"

    def line_break(self) -> str:
        return "<br/>"

    def ulink(self, url: str, content: str) -> str:
        return f'<a href="{self.attr(url)}">{content}</a>'

    def link(self, target: str, content: str) -> str:
        return f'<a href="#{self.attr(target)}">{content}</a>'

    def anchor(self, id: str) -> str:
        return f'<a id="{self.attr(id)}"></a>'

    def ref(self, kind: str, name: str, content: str) -> str:
        if kind not in REF_KINDS:
            raise EncoderError(f"unknown reference kind: {kind}")
        return f'<code class="{kind}" title="{self.attr(name)}">{content}</code>'

    def image(self, src: str, alt: str) -> str:
        return f'<img src="{self.attr(src)}" alt="{self.attr(alt)}"/>'

    def footnote(self, content: str) -> str:
        self._footnote_count += 1
        number = self._footnote_count
        self._footnotes.append((number, content))
        return (
            f'<sup class="footnote"><a id="footnote-ref-{number}" '
            f'href="#footnote-{number}">[{number}]</a></sup>'
        )


_ENCODERS: dict[str, type[Encoder]] = {
    "boostbook": BoostBookEncoder,
    "html": HtmlEncoder,
}


def create_encoder(name: str) -> Encoder:
    """Instantiate the encoder selected by ``name`` ("boostbook" or "html")."""
    try:
        cls = _ENCODERS[name]
    except KeyError:
        raise ValueError(f"unknown encoder: {name!r}") from None
    return cls()
