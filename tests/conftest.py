"""Shared test fixtures for Threat Map tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from tests.helpers import write_rule_set
from threat_map.core.analyzer import ThreatEngine
from threat_map.models.schemas import EngineConfig


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    return tmp_path / "rules"


@pytest.fixture
def make_engine(rules_dir: Path) -> Callable[..., ThreatEngine]:
    """Build and initialize an engine over freshly written rule sets."""

    def _make(
        baseline: list[dict[str, Any]],
        supplemental: list[dict[str, Any]] | None = None,
        enabled: bool = True,
    ) -> ThreatEngine:
        write_rule_set(rules_dir, "baseline.json", baseline)
        if supplemental is not None:
            write_rule_set(rules_dir, "enhanced-generic.json", supplemental)
        engine = ThreatEngine(EngineConfig(rules_dir=rules_dir, supplemental_enabled=enabled))
        engine.initialize()
        return engine

    return _make


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """A small web application: user -> web frontend -> api -> database."""
    return {
        "title": "Online shop",
        "cells": [
            {"id": "a1", "type": "tm.Actor", "name": "Customer"},
            {"id": "p1", "type": "tm.Process", "name": "Web Frontend"},
            {"id": "p2", "type": "tm.Process", "name": "Orders", "description": "Internal API service"},
            {"id": "s1", "type": "tm.Store", "name": "Orders DB", "isEncrypted": True},
            {
                "id": "f1",
                "type": "tm.Flow",
                "name": "HTTPS request",
                "source": "a1",
                "target": "p1",
                "isPublicNetwork": True,
                "isEncrypted": True,
            },
            {"id": "f2", "type": "tm.Flow", "name": "REST call", "source": "p1", "target": "p2"},
            {"id": "f3", "type": "tm.Flow", "name": "SQL", "source": "p2", "target": "s1"},
            {
                "id": "b1",
                "type": "tm.Boundary",
                "outOfScope": True,
                "threats": [{"id": "manual-1", "title": "Reviewed by hand", "status": "Mitigated"}],
            },
        ],
    }


@pytest.fixture
def sample_diagram_file(tmp_path: Path, sample_payload: dict[str, Any]) -> Path:
    path = tmp_path / "diagram.json"
    path.write_text(json.dumps(sample_payload))
    return path
