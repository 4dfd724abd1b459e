from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Iterable

from doclinks.analysis.lint import Violation
from doclinks.json_types import JSONObject, JSONValue

BASELINE_VERSION = 1
_KEY_FIELDS = ("rule_id", "path", "qualname", "reason", "line")


def load_json(path: Path) -> Mapping[str, JSONValue]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Baseline payload must be a JSON object.")
    return payload


def parse_version(payload: Mapping[str, JSONValue], *, expected: int = BASELINE_VERSION) -> int:
    raw = payload.get("version", expected)
    if type(raw) is not int or raw != expected:
        raise ValueError(f"Unsupported baseline version={raw!r}; expected {expected}")
    return raw


def baseline_entry(violation: Violation) -> JSONObject:
    return {
        "rule_id": violation.rule_id,
        "path": violation.path,
        "qualname": violation.qualname,
        "reason": violation.reason.value,
        "line": violation.line,
        "column": violation.column,
        "message": violation.message,
    }


def load_baseline(path: Path) -> set[str]:
    if not path.exists():
        return set()
    payload = load_json(path)
    parse_version(payload)
    raw = payload.get("violations", [])
    keys: set[str] = set()
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            values = [item.get(field) for field in _KEY_FIELDS]
            if all(isinstance(value, str) for value in values[:4]) and isinstance(values[4], int):
                keys.add(":".join(str(value) for value in values))
    return keys


def write_baseline(path: Path, violations: Iterable[Violation]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload: JSONObject = {
        "version": BASELINE_VERSION,
        "violations": [
            baseline_entry(item)
            for item in sorted(violations, key=lambda v: (v.path, v.line, v.column, v.reason.value))
        ],
    }
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def apply_baseline(violations: Iterable[Violation], baseline_keys: set[str]) -> list[Violation]:
    return [violation for violation in violations if violation.key not in baseline_keys]
