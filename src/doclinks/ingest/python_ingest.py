from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Iterable, Sequence

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from doclinks.analysis.model import Fragment, Span, utf8_len
from doclinks.config import DEFAULT_COMMENT_MARKERS, ScanConfig
from doclinks.ingest.source_map import SourceMap, strip_bom

logger = logging.getLogger(__name__)

MODULE_QUALNAME = "<module>"
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class BlockKind(StrEnum):
    COMMENT = "comment"
    DOCSTRING = "docstring"


@dataclass(frozen=True)
class DocBlock:
    qualname: str
    kind: BlockKind
    fragments: tuple[Fragment, ...]

    @property
    def span(self) -> Span:
        return Span(self.fragments[0].span.lo, self.fragments[-1].span.hi)


@dataclass(frozen=True)
class ParseFailureWitness:
    path: Path
    stage: str
    error: str


@dataclass(frozen=True)
class PythonDocIngestCarrier:
    path: Path
    source_map: SourceMap | None
    blocks: tuple[DocBlock, ...]
    parse_failure_witnesses: tuple[ParseFailureWitness, ...] = ()


def iter_python_paths(paths: Iterable[Path | str], *, config: ScanConfig) -> list[Path]:
    """Expand input paths to python files, pruning ignored directories early."""
    out: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                dirnames[:] = sorted(
                    d for d in dirnames if not config.is_ignored_path(Path(root) / d)
                )
                for filename in sorted(filenames):
                    if not filename.endswith(".py"):
                        continue
                    candidate = Path(root) / filename
                    if config.is_ignored_path(candidate):
                        continue
                    out.append(candidate)
        else:
            if config.is_ignored_path(path):
                continue
            out.append(path)
    return sorted(set(out))


def _split_lines(text: str) -> list[tuple[str, str]]:
    lines: list[tuple[str, str]] = []
    cursor = 0
    for match in _LINE_BREAK_RE.finditer(text):
        lines.append((text[cursor : match.start()], match.group()))
        cursor = match.end()
    lines.append((text[cursor:], ""))
    return lines


def _indent_width(line: str) -> int:
    return len(line[: len(line) - len(line.lstrip(" \t"))].expandtabs())


def _margin_chars(line: str, margin: int) -> int:
    """Number of leading blank characters that fit inside a tab-expanded ``margin``."""
    column = 0
    for index, char in enumerate(line):
        if char not in " \t":
            return index
        column = (column // 8 + 1) * 8 if char == "\t" else column + 1
        if column > margin:
            return index
    return len(line)


def docstring_fragments(node: cst.SimpleString, lo: int) -> tuple[Fragment, ...]:
    """Split a docstring literal starting at byte ``lo`` into one Fragment per line.

    Continuation lines drop the common indentation margin, so the fragment
    text matches what a reader sees after ``inspect.cleandoc``.
    """
    opening = node.prefix + node.quote
    content = node.value[len(opening) : len(node.value) - len(node.quote)]
    lines = _split_lines(content)
    indents = [_indent_width(line) for line, _sep in lines[1:] if line.strip()]
    margin = min(indents) if indents else 0
    cursor = lo + utf8_len(opening)
    fragments: list[Fragment] = []
    for index, (line, sep) in enumerate(lines):
        strip = 0 if index == 0 else _margin_chars(line, margin)
        fragments.append(Fragment.at(line[strip:], cursor + utf8_len(line[:strip])))
        cursor += utf8_len(line) + len(sep)
    return tuple(fragments)


def _docstring_node(body: cst.BaseSuite | Sequence[cst.BaseStatement]) -> cst.SimpleString | None:
    if isinstance(body, cst.SimpleStatementSuite):
        small = body.body
    else:
        statements = body.body if isinstance(body, cst.IndentedBlock) else body
        if not statements or not isinstance(statements[0], cst.SimpleStatementLine):
            return None
        small = statements[0].body
    if not small or not isinstance(small[0], cst.Expr):
        return None
    value = small[0].value
    if isinstance(value, cst.SimpleString) and "b" not in value.prefix.lower():
        return value
    return None


def _statement_target(node: cst.SimpleStatementLine) -> str | None:
    if not node.body:
        return None
    statement = node.body[0]
    if isinstance(statement, cst.Assign) and len(statement.targets) == 1:
        target = statement.targets[0].target
        if isinstance(target, cst.Name):
            return target.value
    if isinstance(statement, cst.AnnAssign) and isinstance(statement.target, cst.Name):
        return statement.target.value
    return None


def _declaration_name(node: cst.BaseStatement) -> str | None:
    if isinstance(node, (cst.ClassDef, cst.FunctionDef)):
        return node.name.value
    if isinstance(node, cst.SimpleStatementLine):
        return _statement_target(node)
    return None


class _DocBlockCollector(cst.CSTVisitor):
    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, *, source_map: SourceMap, comment_markers: Sequence[str], docstrings: bool) -> None:
        super().__init__()
        self.source_map = source_map
        # Longest first so "#:" wins over "#" when both are configured.
        self.comment_markers = tuple(sorted(comment_markers, key=len, reverse=True))
        self.docstrings = docstrings
        self.scopes: list[str] = []
        self.blocks: list[DocBlock] = []

    def visit_Module(self, node: cst.Module) -> None:
        # libcst moves the first statement's leading lines into the module header.
        if node.body:
            self._add_comment_run(node.header, _declaration_name(node.body[0]) or MODULE_QUALNAME)
        self._add_docstring(node.body, MODULE_QUALNAME)

    def visit_ClassDef(self, node: cst.ClassDef) -> None:
        self._visit_definition(node)

    def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
        self.scopes.pop()

    def visit_FunctionDef(self, node: cst.FunctionDef) -> None:
        self._visit_definition(node)

    def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
        self.scopes.pop()

    def visit_SimpleStatementLine(self, node: cst.SimpleStatementLine) -> None:
        target = _statement_target(node)
        qualname = self._qualname(target) if target is not None else self._scope_qualname()
        self._add_comment_run(node.leading_lines, qualname)

    def _visit_definition(self, node: cst.ClassDef | cst.FunctionDef) -> None:
        qualname = self._qualname(node.name.value)
        self._add_comment_run(node.leading_lines, qualname)
        # Decorators interrupt the run, so comments after them form their own block.
        self._add_comment_run(node.lines_after_decorators, qualname)
        self._add_docstring(node.body, qualname)
        self.scopes.append(node.name.value)

    def _scope_qualname(self) -> str:
        return ".".join(self.scopes) if self.scopes else MODULE_QUALNAME

    def _qualname(self, name: str) -> str:
        return ".".join([*self.scopes, name])

    def _marker_for(self, comment: str) -> str | None:
        for marker in self.comment_markers:
            if comment.startswith(marker):
                return marker
        return None

    def _add_comment_run(self, lines: Sequence[cst.EmptyLine], qualname: str) -> None:
        run: list[Fragment] = []
        for line in reversed(lines):
            comment = line.comment
            if comment is None:
                break
            marker = self._marker_for(comment.value)
            if marker is None:
                break
            start = self.get_metadata(PositionProvider, comment).start
            lo = self.source_map.offset(start.line, start.column) + utf8_len(marker)
            run.append(Fragment.at(comment.value[len(marker) :], lo))
        if run:
            run.reverse()
            self.blocks.append(DocBlock(qualname=qualname, kind=BlockKind.COMMENT, fragments=tuple(run)))

    def _add_docstring(self, body: cst.BaseSuite | Sequence[cst.BaseStatement], qualname: str) -> None:
        if not self.docstrings:
            return
        node = _docstring_node(body)
        if node is None:
            return
        start = self.get_metadata(PositionProvider, node).start
        lo = self.source_map.offset(start.line, start.column)
        self.blocks.append(
            DocBlock(qualname=qualname, kind=BlockKind.DOCSTRING, fragments=docstring_fragments(node, lo))
        )


def extract_doc_blocks(
    source: str,
    *,
    comment_markers: Sequence[str] = DEFAULT_COMMENT_MARKERS,
    docstrings: bool = True,
    source_map: SourceMap | None = None,
) -> tuple[DocBlock, ...]:
    """Collect every documentation Block of a module in source order."""
    module = cst.parse_module(source)
    collector = _DocBlockCollector(
        source_map=source_map if source_map is not None else SourceMap(source),
        comment_markers=comment_markers,
        docstrings=docstrings,
    )
    MetadataWrapper(module).visit(collector)
    return tuple(sorted(collector.blocks, key=lambda block: block.span.lo))


def ingest_python_source(source: str, path: Path, *, config: ScanConfig) -> PythonDocIngestCarrier:
    source = strip_bom(source)
    source_map = SourceMap(source)
    try:
        blocks = extract_doc_blocks(
            source,
            comment_markers=config.comment_markers,
            docstrings=config.docstrings,
            source_map=source_map,
        )
    except (cst.ParserSyntaxError, UnicodeEncodeError) as exc:
        logger.debug("parse failed for %s: %s", path, exc)
        return PythonDocIngestCarrier(
            path=path,
            source_map=None,
            blocks=(),
            parse_failure_witnesses=(ParseFailureWitness(path=path, stage="parse", error=str(exc)),),
        )
    return PythonDocIngestCarrier(path=path, source_map=source_map, blocks=blocks)


def ingest_python_file(path: Path, *, config: ScanConfig) -> PythonDocIngestCarrier:
    try:
        source = path.read_bytes().decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("read failed for %s: %s", path, exc)
        return PythonDocIngestCarrier(
            path=path,
            source_map=None,
            blocks=(),
            parse_failure_witnesses=(ParseFailureWitness(path=path, stage="read", error=str(exc)),),
        )
    return ingest_python_source(source, path, config=config)
