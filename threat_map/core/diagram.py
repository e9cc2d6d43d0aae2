"""
Diagram document loading.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from threat_map.core.errors import DiagramFormatError
from threat_map.models.schemas import Diagram


def parse_diagram(payload: Any) -> Diagram:
    """
    Validate a diagram payload.

    Raises:
        DiagramFormatError: The payload is not an object or has no
            ``cells`` (or ``nodes``) array.
    """
    if not isinstance(payload, dict):
        raise DiagramFormatError("No diagram provided")
    if not isinstance(payload.get("cells", payload.get("nodes")), list):
        raise DiagramFormatError("Invalid diagram format: missing cells array")
    try:
        return Diagram.model_validate(payload)
    except ValidationError as e:
        raise DiagramFormatError(f"Invalid diagram format: {e}") from e


def load_diagram(path: Path) -> Diagram:
    """Read a diagram JSON file."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DiagramFormatError(f"Cannot read diagram {path}: {e}") from e
    except ValueError as e:
        raise DiagramFormatError(f"Diagram {path} is not valid JSON: {e}") from e
    return parse_diagram(payload)
