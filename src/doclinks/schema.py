from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from doclinks.analysis.lint import LintReport, Violation


class LintRequest(BaseModel):
    paths: List[str]
    root: Optional[str] = None
    docstrings: Optional[bool] = None
    comment_markers: List[str] = []
    exclude: List[str] = []
    jobs: Optional[int] = None


class BrokenLinkDTO(BaseModel):
    rule_id: str
    path: str
    line: int
    column: int
    end_line: int
    end_column: int
    qualname: str
    reason: str
    message: str


class ParseFailureDTO(BaseModel):
    path: str
    stage: str
    error: str


class LintResponse(BaseModel):
    files: int = 0
    violations: List[BrokenLinkDTO] = []
    failures: List[ParseFailureDTO] = []
    errors: List[str] = []


def broken_link_dto(violation: Violation) -> BrokenLinkDTO:
    return BrokenLinkDTO(
        rule_id=violation.rule_id,
        path=violation.path,
        line=violation.line,
        column=violation.column,
        end_line=violation.end_line,
        end_column=violation.end_column,
        qualname=violation.qualname,
        reason=violation.reason.value,
        message=violation.message,
    )


def lint_response(report: LintReport, violations: List[Violation] | None = None) -> LintResponse:
    """Build the response document; ``violations`` overrides the report's (after baselining)."""
    selected = report.violations if violations is None else violations
    return LintResponse(
        files=report.files,
        violations=[broken_link_dto(item) for item in selected],
        failures=[
            ParseFailureDTO(path=witness.path.as_posix(), stage=witness.stage, error=witness.error)
            for witness in report.parse_failure_witnesses
        ],
    )
