"""Helpers for writing rule-set documents in tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def write_rule_set(directory: Path, file_name: str, rules: list[Any]) -> Path:
    """Write a rule-set document and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / file_name
    path.write_text(json.dumps({"rules": rules}))
    return path


def rule(name: str, *matches: str, **generates: Any) -> dict[str, Any]:
    """Rule entry as it appears in a rule-set document."""
    return {"rule": name, "matches": list(matches), "generates": {"title": name, **generates}}
