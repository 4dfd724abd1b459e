from __future__ import annotations

from pathlib import Path

from doclinks.config import (
    DEFAULT_COMMENT_MARKERS,
    ScanConfig,
    build_scan_config,
    load_config,
    merge_payload,
    scan_defaults,
)


def test_dedicated_config_file_wins(tmp_path: Path) -> None:
    (tmp_path / "doclinks.toml").write_text(
        '[scan]\ncomment_markers = ["##", "#:"]\ndocstrings = false\njobs = 3\n',
        encoding="utf-8",
    )
    (tmp_path / "pyproject.toml").write_text(
        "[tool.doclinks.scan]\njobs = 9\n",
        encoding="utf-8",
    )
    config = build_scan_config(scan_defaults(root=tmp_path))
    assert config.comment_markers == ("##", "#:")
    assert config.docstrings is False
    assert config.jobs == 3


def test_pyproject_tool_table_fallback(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "x"\n\n[tool.doclinks.scan]\nexclude = "build/*, docs/*"\n',
        encoding="utf-8",
    )
    assert scan_defaults(root=tmp_path) == {"exclude": "build/*, docs/*"}
    assert build_scan_config(scan_defaults(root=tmp_path)).exclude == ("build/*", "docs/*")
    assert scan_defaults(config_path=tmp_path / "pyproject.toml") == {"exclude": "build/*, docs/*"}


def test_missing_or_malformed_config_is_empty(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    broken = tmp_path / "doclinks.toml"
    broken.write_text("[scan\n", encoding="utf-8")
    assert load_config(root=tmp_path) == {}
    assert build_scan_config(scan_defaults(root=tmp_path)) == ScanConfig()


def test_build_scan_config_normalizes_values() -> None:
    config = build_scan_config(
        {"comment_markers": [], "docstrings": "no", "jobs": "zero", "exclude": ["a/*", 3]}
    )
    assert config.comment_markers == DEFAULT_COMMENT_MARKERS
    assert config.docstrings is False
    assert config.jobs == 1
    assert config.exclude == ("a/*",)
    assert build_scan_config(None) == ScanConfig()
    assert build_scan_config({"jobs": True}).jobs == 1
    assert build_scan_config({"jobs": "4"}).jobs == 4


def test_merge_payload_skips_none() -> None:
    merged = merge_payload({"jobs": None, "docstrings": False}, {"jobs": 2, "docstrings": True})
    assert merged == {"jobs": 2, "docstrings": False}


def test_is_ignored_path(tmp_path: Path) -> None:
    config = ScanConfig(exclude=("gen_*.py", "vendor/*"), project_root=tmp_path)
    assert config.is_ignored_path(tmp_path / "pkg" / "gen_api.py")
    assert config.is_ignored_path(tmp_path / "vendor" / "lib.py")
    assert config.is_ignored_path(tmp_path / "pkg" / "__pycache__" / "x.py")
    assert not config.is_ignored_path(tmp_path / "pkg" / "api.py")
