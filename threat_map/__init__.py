"""
Threat Map - Rule-driven threat analysis for data-flow diagrams.

Basic usage:
    >>> from threat_map import analyze
    >>> report = analyze("path/to/diagram.json")
    >>> print(report.summary())
    >>> report.to_json("report.json")

Long-lived use:
    >>> from threat_map import EngineConfig, ThreatEngine
    >>> engine = ThreatEngine(EngineConfig(rules_dir="rules"))
    >>> engine.initialize()
    >>> analyzed = engine.analyze_diagram(payload)
"""

from threat_map.core.analyzer import ThreatEngine, analyze
from threat_map.core.errors import (
    DiagramFormatError,
    EngineNotInitializedError,
    RuleLoadError,
    ThreatMapError,
)
from threat_map.core.findings import Finding, Severity
from threat_map.core.report import AnalysisReport
from threat_map.core.rules import RuleStore
from threat_map.models.schemas import Diagram, EngineConfig, GraphNode, Rule

__version__ = "0.1.0"

__all__ = [
    # Main entry points
    "analyze",
    "ThreatEngine",
    "RuleStore",
    # Core classes
    "AnalysisReport",
    "Finding",
    "Severity",
    # Data models
    "Diagram",
    "GraphNode",
    "Rule",
    "EngineConfig",
    # Errors
    "ThreatMapError",
    "RuleLoadError",
    "EngineNotInitializedError",
    "DiagramFormatError",
    # Version
    "__version__",
]
