"""
Architecture template listing.

Templates are diagram documents kept as JSON files in one directory. A
template must have ``summary`` and ``detail`` sections; other files are
skipped with a warning.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TEMPLATES_DIR_ENV = "THREAT_MAP_TEMPLATES_DIR"


def templates_dir_from_env() -> Path | None:
    value = os.environ.get(TEMPLATES_DIR_ENV)
    return Path(value) if value else None


def list_templates(directory: Path) -> list[dict[str, Any]]:
    """
    Read every template document in ``directory``.

    Each returned template is tagged with ``id`` (the file stem) and
    ``fileName``. A missing directory yields an empty list.
    """
    logger.info("Loading templates from directory: %s", directory)
    if not directory.is_dir():
        logger.warning("Templates directory does not exist: %s", directory)
        return []

    files = sorted(path for path in directory.iterdir() if path.suffix == ".json")
    logger.info("Found %d template files", len(files))

    templates = []
    for path in files:
        try:
            template = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Error processing template file %s: %s", path.name, e)
            continue

        if not isinstance(template, dict) or not _present(template, "summary") or not _present(template, "detail"):
            logger.warning("Skipping invalid template file: %s - missing required structure", path.name)
            continue

        template["id"] = path.stem
        template["fileName"] = path.name
        templates.append(template)

    return templates


def _present(template: dict[str, Any], key: str) -> bool:
    return template.get(key) not in (None, "", 0)
