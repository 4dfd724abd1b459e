from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

from pygls.lsp.server import LanguageServer
from pydantic import ValidationError
from lsprotocol.types import (
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    Diagnostic,
    DiagnosticSeverity,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
)

from doclinks import __version__
from doclinks.analysis.lint import lint_paths, lint_source
from doclinks.config import ScanConfig, build_scan_config, merge_payload, scan_defaults
from doclinks.ingest.source_map import SourceMap, SourcePosition, strip_bom
from doclinks.invariants import never
from doclinks.schema import LintRequest, LintResponse, lint_response

logger = logging.getLogger(__name__)

server = LanguageServer("doclinks", __version__)
LINT_COMMAND = "doclinks.lintPaths"
DIAGNOSTIC_SOURCE = "doclinks"


def _require_payload(payload: object, *, command: str) -> dict[str, object]:
    if payload is None:
        never("missing command payload", command=command)
    if not isinstance(payload, dict):
        never(
            "invalid command payload type",
            command=command,
            payload_type=type(payload).__name__,
        )
    return payload


def _uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def _scan_config_for(root: Path | None, overrides: dict[str, object] | None = None) -> ScanConfig:
    section = scan_defaults(root=root)
    if overrides:
        section = merge_payload(overrides, section)
    return build_scan_config(section, project_root=root)


def diagnostics_for_source(source: str, path: Path, *, config: ScanConfig) -> list[Diagnostic]:
    source = strip_bom(source)
    result = lint_source(source, path, config=config)
    source_map = SourceMap(source)
    diagnostics: list[Diagnostic] = []
    for violation in result.violations:
        start = SourcePosition(line=violation.line, column=violation.column - 1)
        end = SourcePosition(line=violation.end_line, column=violation.end_column - 1)
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=Position(line=start.line - 1, character=source_map.utf16_column(start)),
                    end=Position(line=end.line - 1, character=source_map.utf16_column(end)),
                ),
                message=violation.message,
                severity=DiagnosticSeverity.Warning,
                code=violation.rule_id,
                source=DIAGNOSTIC_SOURCE,
            )
        )
    return diagnostics


def _publish(ls: LanguageServer, uri: str) -> None:
    doc = ls.workspace.get_text_document(uri)
    root = Path(ls.workspace.root_path) if ls.workspace.root_path else None
    path = Path(doc.path) if doc.path else _uri_to_path(uri)
    config = _scan_config_for(root)
    if config.is_ignored_path(path):
        diagnostics: list[Diagnostic] = []
    else:
        diagnostics = diagnostics_for_source(doc.source, path, config=config)
    logger.debug("publishing %d diagnostic(s) for %s", len(diagnostics), uri)
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.command(LINT_COMMAND)
def execute_lint(ls: LanguageServer, payload: dict | None = None) -> dict:
    payload = _require_payload(payload, command=LINT_COMMAND)
    try:
        request = LintRequest.model_validate(payload)
    except ValidationError as exc:
        return LintResponse(errors=[str(exc)]).model_dump()

    root: Path | None = None
    if request.root:
        root = Path(request.root)
    elif ls.workspace.root_path:
        root = Path(ls.workspace.root_path)
    overrides: dict[str, object] = {
        "docstrings": request.docstrings,
        "comment_markers": request.comment_markers or None,
        "exclude": request.exclude or None,
        "jobs": request.jobs,
    }
    config = _scan_config_for(root, overrides)
    paths = [root / path if root is not None and not Path(path).is_absolute() else Path(path) for path in request.paths]
    report = lint_paths(paths, config=config)
    return lint_response(report).model_dump()


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: LanguageServer, params: DidSaveTextDocumentParams) -> None:
    _publish(ls, params.text_document.uri)


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server on stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
