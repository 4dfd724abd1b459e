from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional

import typer

from doclinks.analysis.baseline import apply_baseline, load_baseline, write_baseline
from doclinks.analysis.lint import LintReport, Violation, lint_paths
from doclinks.config import build_scan_config, merge_payload, scan_defaults
from doclinks.invariants import never
from doclinks.schema import lint_response

app = typer.Typer(add_completion=False, help="Find doc-comment links a markdown renderer would leave inert.")
logger = logging.getLogger(__name__)

_OUTPUT_FORMATS = ("text", "json")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _render_text(report: LintReport, violations: list[Violation], echo: Callable[[str], None]) -> None:
    for violation in violations:
        echo(violation.render())
    for witness in report.parse_failure_witnesses:
        echo(f"{witness.path.as_posix()}: [{witness.stage}] {witness.error}")
    if violations or report.parse_failure_witnesses:
        echo(
            f"{len(violations)} possible broken doc link(s), "
            f"{len(report.parse_failure_witnesses)} unreadable file(s) in {report.files} file(s)"
        )
    else:
        echo(f"doc link check passed ({report.files} file(s))")


def _render_json(report: LintReport, violations: list[Violation], echo: Callable[[str], None]) -> None:
    payload = lint_response(report, violations).model_dump()
    echo(json.dumps(payload, indent=2, sort_keys=True))


_RENDERERS: dict[str, Callable[[LintReport, list[Violation], Callable[[str], None]], None]] = {
    "text": _render_text,
    "json": _render_json,
}


def render_report(
    report: LintReport,
    violations: list[Violation],
    *,
    output_format: str,
    echo: Callable[[str], None] = typer.echo,
) -> None:
    renderer = _RENDERERS.get(output_format)
    if renderer is None:
        never("unknown output format", output_format=output_format)
    renderer(report, violations, echo)


@app.command()
def check(
    paths: List[Path] = typer.Argument(None, help="Files or directories to scan (default: root)."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config", help="doclinks.toml or pyproject.toml to read."),
    output_format: str = typer.Option("text", "--format", help="Output format: text or json."),
    baseline: Optional[Path] = typer.Option(None, "--baseline", help="Accepted findings to ignore."),
    baseline_write: bool = typer.Option(False, "--baseline-write", help="Write current findings to --baseline."),
    jobs: Optional[int] = typer.Option(None, "--jobs", min=1, help="Files scanned in parallel."),
    docstrings: Optional[bool] = typer.Option(None, "--docstrings/--no-docstrings"),
    marker: Optional[List[str]] = typer.Option(None, "--marker", help="Doc comment marker (repeatable)."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Glob of paths to skip (repeatable)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Scan doc comments and docstrings for broken inline links."""
    _configure_logging(verbose)
    if output_format not in _OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"unsupported format {output_format!r}; expected one of {', '.join(_OUTPUT_FORMATS)}",
            param_hint="--format",
        )
    if baseline_write and baseline is None:
        raise typer.BadParameter("--baseline is required with --baseline-write", param_hint="--baseline")

    section = merge_payload(
        {
            "docstrings": docstrings,
            "comment_markers": list(marker) if marker else None,
            "exclude": list(exclude) if exclude else None,
            "jobs": jobs,
        },
        scan_defaults(root=root, config_path=config),
    )
    scan_config = build_scan_config(section, project_root=root)
    targets = list(paths) if paths else [root]
    logger.debug("scanning %s with %s", [str(target) for target in targets], scan_config)
    report = lint_paths(targets, config=scan_config)

    if baseline_write and baseline is not None:
        write_baseline(baseline, report.violations)
        typer.echo(f"wrote doc link baseline: {baseline}")
        raise typer.Exit(code=0)

    violations = list(report.violations)
    if baseline is not None:
        try:
            violations = apply_baseline(violations, load_baseline(baseline))
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--baseline") from exc
    render_report(report, violations, output_format=output_format)
    if violations or report.parse_failure_witnesses:
        raise typer.Exit(code=1)


@app.command()
def lsp(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """Run the language server on stdio."""
    _configure_logging(verbose)
    from doclinks.server import start

    start()


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
