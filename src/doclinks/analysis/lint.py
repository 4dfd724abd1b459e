from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from doclinks.analysis.model import RULE_ID, BrokenLink, BrokenLinkReason, Span
from doclinks.analysis.scanner import scan_block
from doclinks.config import ScanConfig
from doclinks.ingest.python_ingest import (
    ParseFailureWitness,
    PythonDocIngestCarrier,
    ingest_python_file,
    ingest_python_source,
    iter_python_paths,
)
from doclinks.ingest.source_map import SourceMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    rule_id: str
    path: str
    line: int
    column: int
    end_line: int
    end_column: int
    qualname: str
    reason: BrokenLinkReason
    message: str
    span: Span

    @property
    def key(self) -> str:
        return f"{self.rule_id}:{self.path}:{self.qualname}:{self.reason.value}:{self.line}"

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: [{self.rule_id}] [{self.qualname}] {self.message}"

    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.path, self.span.lo, self.span.hi, self.reason.value)


@dataclass(frozen=True)
class LintResult:
    path: Path
    violations: tuple[Violation, ...]
    parse_failure_witnesses: tuple[ParseFailureWitness, ...] = ()


@dataclass(frozen=True)
class LintReport:
    files: int
    violations: tuple[Violation, ...]
    parse_failure_witnesses: tuple[ParseFailureWitness, ...]

    @property
    def ok(self) -> bool:
        return not self.violations and not self.parse_failure_witnesses


def _display_path(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def violation_for(
    broken: BrokenLink,
    *,
    path: str,
    qualname: str,
    source_map: SourceMap,
) -> Violation:
    start = source_map.position(broken.span.lo)
    end = source_map.position(broken.span.hi)
    return Violation(
        rule_id=RULE_ID,
        path=path,
        line=start.line,
        column=start.column + 1,
        end_line=end.line,
        end_column=end.column + 1,
        qualname=qualname,
        reason=broken.reason,
        message=broken.message,
        span=broken.span,
    )


def _violations_for_carrier(carrier: PythonDocIngestCarrier, *, display_path: str) -> tuple[Violation, ...]:
    if carrier.source_map is None:
        return ()
    violations: list[Violation] = []
    for block in carrier.blocks:
        for broken in scan_block(block.fragments):
            violations.append(
                violation_for(
                    broken,
                    path=display_path,
                    qualname=block.qualname,
                    source_map=carrier.source_map,
                )
            )
    return tuple(sorted(violations, key=Violation.sort_key))


def lint_source(source: str, path: Path, *, config: ScanConfig | None = None) -> LintResult:
    config = config or ScanConfig()
    carrier = ingest_python_source(source, path, config=config)
    return LintResult(
        path=path,
        violations=_violations_for_carrier(carrier, display_path=_display_path(path, config.project_root)),
        parse_failure_witnesses=carrier.parse_failure_witnesses,
    )


def lint_file(path: Path, *, config: ScanConfig) -> LintResult:
    carrier = ingest_python_file(path, config=config)
    violations = _violations_for_carrier(carrier, display_path=_display_path(path, config.project_root))
    logger.debug("%s: %d block(s), %d finding(s)", path, len(carrier.blocks), len(violations))
    return LintResult(
        path=path,
        violations=violations,
        parse_failure_witnesses=carrier.parse_failure_witnesses,
    )


def merge_results(results: Iterable[LintResult]) -> LintReport:
    ordered = sorted(results, key=lambda result: result.path.as_posix())
    violations = sorted(
        (violation for result in ordered for violation in result.violations),
        key=Violation.sort_key,
    )
    failures = [witness for result in ordered for witness in result.parse_failure_witnesses]
    return LintReport(
        files=len(ordered),
        violations=tuple(violations),
        parse_failure_witnesses=tuple(failures),
    )


def lint_paths(paths: Sequence[Path], *, config: ScanConfig, jobs: int | None = None) -> LintReport:
    """Lint every python file under ``paths``; output order is independent of ``jobs``."""
    files = iter_python_paths(paths, config=config)
    workers = max(1, jobs if jobs is not None else config.jobs)
    if workers == 1 or len(files) < 2:
        results = [lint_file(path, config=config) for path in files]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda path: lint_file(path, config=config), files))
    report = merge_results(results)
    logger.info(
        "scanned %d file(s): %d finding(s), %d failure(s)",
        report.files,
        len(report.violations),
        len(report.parse_failure_witnesses),
    )
    return report
