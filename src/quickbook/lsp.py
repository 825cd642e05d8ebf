"""Minimal LSP server for QuickBook: diagnostics only."""

from __future__ import annotations

from urllib.parse import unquote, urlparse

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from quickbook import __version__
from quickbook.config import Config
from quickbook.diagnostics import Reporter, Severity
from quickbook.driver import parse_source

server = LanguageServer("quickbook-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)

_SEVERITIES = {
    Severity.ERROR: DiagnosticSeverity.Error,
    Severity.WARNING: DiagnosticSeverity.Warning,
}


def _path_from_uri(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri.rsplit("/", 1)[-1] if "/" in uri else uri


def _validate(ls: LanguageServer, uri: str, config: Config | None = None) -> None:
    """Re-parse the whole document and publish its diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    origin = _path_from_uri(uri)
    reporter = Reporter(echo=False)
    parse_source(doc.source, origin, config or Config(debug=True), reporter, ignore_docinfo=True)

    diagnostics: list[Diagnostic] = []
    for record in reporter.diagnostics:
        # Diagnostics from expansions and included files belong elsewhere.
        if record.origin != origin:
            continue
        line = (record.line or 1) - 1
        col = (record.column or 1) - 1
        end_col = (record.end_column or record.column or 1) - 1
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=Position(line=line, character=col),
                    end=Position(line=line, character=max(end_col, col + 1)),
                ),
                message=record.message,
                severity=_SEVERITIES[record.severity],
                source="quickbook",
            )
        )

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
