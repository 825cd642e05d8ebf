"""Document info header: the metadata block at the top of a top-level file.

The header looks like::

    [library Boost.Example
        [quickbook 1.5]
        [id example]
        [copyright 2002 2004 Joel de Guzman]
        [authors [de Guzman, Joel], [Doe, John]]
        [license Distributed under the Boost Software License]
    ]

``purpose`` and ``license`` are captured raw; they are rendered through the
phrase grammar when the header is processed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from quickbook.rules import (
    Alt,
    Balanced,
    Literal,
    Many,
    Opt,
    Regex,
    Rule,
    Skip,
    literals,
)
from quickbook.state import make_identifier

DOC_TYPES: tuple[str, ...] = (
    "book",
    "article",
    "library",
    "chapter",
    "part",
    "appendix",
    "preface",
    "qandadiv",
    "qandaset",
    "reference",
    "set",
)


@dataclass(frozen=True, slots=True)
class DocumentInfo:
    """Header metadata of one document."""

    doc_type: str = ""
    title: str = ""
    qbk_version: str = ""
    version: str = ""
    id: str = ""
    dirname: str = ""
    copyrights: tuple[tuple[tuple[str, ...], str], ...] = ()
    purpose: str = ""
    category: str = ""
    authors: tuple[tuple[str, str], ...] = ()
    license: str = ""
    last_revision: str = ""
    source_mode: str = ""
    ignore: bool = False

    def with_defaults(self, gm_timestamp: datetime) -> DocumentInfo:
        """Fill in ``id``, ``dirname`` and ``last_revision`` where the header left them out."""
        doc_id = self.id or make_identifier(self.title)
        return dataclasses.replace(
            self,
            id=doc_id,
            dirname=self.dirname or doc_id,
            last_revision=self.last_revision or gm_timestamp.strftime("$Date: %Y/%m/%d %H:%M:%S $"),
        )


# ---------------------------------------------------------------------------
# Header grammar
# ---------------------------------------------------------------------------

_FIELDS: tuple[str, ...] = (
    "quickbook",
    "version",
    "id",
    "dirname",
    "copyright",
    "purpose",
    "category",
    "authors",
    "license",
    "last-revision",
    "source-mode",
)


def _comment() -> Rule:
    return Skip(Literal("[/") + Balanced() + Literal("]"))


def _space() -> Rule:
    return Skip(Many(Regex(r"\s+") | _comment()))


def _simple_field(name: str) -> Rule:
    key = name.replace("-", "_")
    return (
        Skip(Literal(f"[{name}")) + Skip(Regex(r"[ \t]+|(?=\])")) + Balanced() + Skip(Literal("]"))
    ).map(lambda values: (key, values[0].strip()))


def _copyright_field() -> Rule:
    year = Regex(r"(\d{4})\s*,?\s*", group=1)
    return (
        Skip(Literal("[copyright")) + Skip(Regex(r"\s+")) + Many(year, min=1) + Balanced() + Skip(Literal("]"))
    ).map(lambda values: ("copyright", (tuple(values[0]), values[1].strip())))


def _authors_field() -> Rule:
    author = (
        Skip(Regex(r"\s*,?\s*\["))
        + Regex(r"\s*([^,\]]*?)\s*,", group=1)
        + Regex(r"\s*([^\]]*?)\s*\]", group=1)
    )
    return (Skip(Literal("[authors")) + Many(author, min=1) + Skip(Regex(r"\s*\]"))).map(
        lambda values: ("authors", tuple((surname, first) for surname, first in values[0]))
    )


def _quickbook_field() -> Rule:
    return (Skip(Literal("[quickbook")) + Regex(r"\s+(\d+\.\d+)\s*\]", group=1)).map(
        lambda values: ("qbk_version", values[0])
    )


def _build_info(values: tuple[Any, ...]) -> DocumentInfo:
    doc_type, title, fields = values
    kwargs: dict[str, Any] = {"doc_type": doc_type, "title": title.strip()}
    copyrights: list[tuple[tuple[str, ...], str]] = []
    authors: list[tuple[str, str]] = []
    for key, value in fields:
        if key == "copyright":
            copyrights.append(value)
        elif key == "authors":
            authors.extend(value)
        else:
            kwargs[key] = value
    return DocumentInfo(copyrights=tuple(copyrights), authors=tuple(authors), **kwargs)


def doc_info_rule() -> Rule:
    """The header rule; its value is a :class:`DocumentInfo`."""
    field = Alt(
        _quickbook_field(),
        _copyright_field(),
        _authors_field(),
        *(_simple_field(name) for name in _FIELDS if name not in ("quickbook", "copyright", "authors")),
    ).named("document info field")
    doc_type = literals(*DOC_TYPES).named("document type")
    title = Regex(r"[^\[\]\n]*")
    fields = Many(_space() + field).map(lambda values: [v[0] for v in values])
    return (
        _space()
        + Skip(Literal("["))
        + doc_type
        + Skip(Regex(r"[ \t]+|(?=\s)"))
        + title
        + fields
        + _space()
        + Skip(Literal("]"))
        + Skip(Opt(Regex(r"[ \t]*\n")))
    ).map(_build_info).named("document info")
