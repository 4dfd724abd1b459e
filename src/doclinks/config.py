from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from fnmatch import fnmatch
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "doclinks.toml"
PYPROJECT_NAME = "pyproject.toml"
DEFAULT_COMMENT_MARKERS: tuple[str, ...] = ("#:",)

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class ScanConfig:
    comment_markers: tuple[str, ...] = DEFAULT_COMMENT_MARKERS
    docstrings: bool = True
    exclude: tuple[str, ...] = ()
    jobs: int = 1
    project_root: Path | None = field(default=None, compare=False)

    def is_ignored_path(self, path: Path) -> bool:
        if "__pycache__" in path.parts:
            return True
        if not self.exclude:
            return False
        candidates = [path.as_posix(), path.name]
        if self.project_root is not None:
            try:
                candidates.append(path.resolve().relative_to(self.project_root.resolve()).as_posix())
            except ValueError:
                pass
        return any(fnmatch(candidate, pattern) for pattern in self.exclude for candidate in candidates)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    """Load ``doclinks.toml``, falling back to ``[tool.doclinks]`` in pyproject."""
    if config_path is not None:
        data = _load_toml(config_path)
        if config_path.name == PYPROJECT_NAME:
            return _tool_table(data)
        return data
    base = root if root is not None else Path.cwd()
    dedicated = base / DEFAULT_CONFIG_NAME
    if dedicated.exists():
        return _load_toml(dedicated)
    return _tool_table(_load_toml(base / PYPROJECT_NAME))


def _tool_table(data: TomlTable) -> TomlTable:
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        return {}
    section = tool.get("doclinks", {})
    return section if isinstance(section, dict) else {}


def scan_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("scan", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_positive_int(value: TomlValue, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def build_scan_config(section: TomlTable | None, *, project_root: Path | None = None) -> ScanConfig:
    if not isinstance(section, dict):
        section = {}
    markers = _normalize_name_list(section.get("comment_markers"))
    return ScanConfig(
        comment_markers=tuple(markers) if markers else DEFAULT_COMMENT_MARKERS,
        docstrings=_as_bool(section.get("docstrings"), default=True),
        exclude=tuple(_normalize_name_list(section.get("exclude"))),
        jobs=_as_positive_int(section.get("jobs"), 1),
        project_root=project_root,
    )
