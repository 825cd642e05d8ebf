"""Mutable per-document state threaded through the semantic actions."""

from __future__ import annotations

import re
from pathlib import Path

from quickbook.config import Config
from quickbook.cursor import Position
from quickbook.diagnostics import Reporter
from quickbook.encoders import Encoder, create_encoder
from quickbook.symbols import ActiveOrigins, Scope

_NON_IDENT = re.compile(r"[^a-z0-9]+")


def make_identifier(text: str) -> str:
    """Derive an id from free text: lower case, runs of other characters become ``_``."""
    return _NON_IDENT.sub("_", text.lower()).strip("_")


class Collector:
    """A stack of output buffers.

    Nested content (admonitions, table cells, template bodies) is rendered
    into a pushed buffer and popped back as a string.
    """

    def __init__(self) -> None:
        self._stack: list[list[str]] = [[]]

    def push(self) -> None:
        self._stack.append([])

    def pop(self) -> str:
        if len(self._stack) == 1:
            raise RuntimeError("cannot pop the root output buffer")
        return "".join(self._stack.pop())

    def append(self, fragment: str) -> None:
        self._stack[-1].append(fragment)

    def text(self) -> str:
        """The contents of the current (innermost) buffer."""
        return "".join(self._stack[-1])

    @property
    def depth(self) -> int:
        return len(self._stack)


class DocumentState:
    """Everything one top-level parse mutates.

    ``presets`` holds the command line and built-in macros; the document
    scope is its child, so body definitions shadow presets.
    """

    def __init__(
        self,
        origin: str,
        config: Config,
        reporter: Reporter,
        outdir: Path | None = None,
        encoder: Encoder | None = None,
    ) -> None:
        self.origin = origin
        self.config = config
        self.reporter = reporter
        self.outdir = outdir
        self.encoder = encoder if encoder is not None else create_encoder(config.encoder)

        self.out = Collector()
        self.section_level = 0
        self.section_ids: list[str] = []
        self.error_count = 0
        self.warning_count = 0

        self.presets = Scope()
        self.scope = self.presets.child()
        self.active = ActiveOrigins()

        self.used_ids: set[str] = set()
        self.anchor_counter = 0
        self.doc_id = ""
        self.source_mode = "c++"
        self.current_dir = Path(origin).parent if origin else Path(".")

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def error(self, message: str, position: Position | None = None, *, end_column: int | None = None) -> None:
        self.error_count += 1
        self.reporter.error(message, position, origin=self.origin, end_column=end_column)

    def warning(self, message: str, position: Position | None = None) -> None:
        self.warning_count += 1
        self.reporter.warning(message, position, origin=self.origin)

    # ------------------------------------------------------------------
    # Ids
    # ------------------------------------------------------------------

    def qualified_id(self, local: str) -> str:
        """Prefix ``local`` with the enclosing section's id (or the document id)."""
        parent = self.section_ids[-1] if self.section_ids else self.doc_id
        return f"{parent}.{local}" if parent else local

    def unique_id(self, stem: str) -> str:
        """Return ``stem``, or ``stem_N`` from the document-wide counter if taken."""
        candidate = stem
        while candidate in self.used_ids:
            self.anchor_counter += 1
            candidate = f"{stem}_{self.anchor_counter}"
        self.used_ids.add(candidate)
        return candidate

    @property
    def status(self) -> int:
        return 1 if self.error_count else 0
