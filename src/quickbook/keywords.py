"""Keyword registry: the reserved names that open bracketed constructs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class KeywordDef:
    """A reserved construct name.

    ``block`` keywords end a paragraph when they start a line and are never
    valid inside phrase content.
    """

    name: str
    block: bool


def _make_keywords() -> dict[str, KeywordDef]:
    defs: dict[str, KeywordDef] = {}

    def d(name: str, *, block: bool) -> None:
        defs[name] = KeywordDef(name, block)

    # Structure
    d("section", block=True)
    d("endsect", block=True)
    for level in range(1, 7):
        d(f"h{level}", block=True)
    d("heading", block=True)

    # Definitions and inclusion
    d("def", block=True)
    d("template", block=True)
    d("include", block=True)
    d("xinclude", block=True)

    # Block content
    for kind in ("note", "tip", "important", "caution", "warning"):
        d(kind, block=True)
    d("blurb", block=True)
    d("pre", block=True)
    d("table", block=True)
    d("variablelist", block=True)

    # Phrase content
    d("link", block=False)
    d("anchor", block=False)
    for ref in ("funcref", "classref", "memberref", "enumref", "macroref", "headerref", "conceptref", "globalref"):
        d(ref, block=False)
    d("footnote", block=False)
    d("br", block=False)

    return defs


KEYWORDS: dict[str, KeywordDef] = _make_keywords()

BLOCK_KEYWORDS: frozenset[str] = frozenset(name for name, kw in KEYWORDS.items() if kw.block)


def is_keyword(name: str) -> bool:
    return name in KEYWORDS


def is_block_keyword(name: str) -> bool:
    return name in BLOCK_KEYWORDS
