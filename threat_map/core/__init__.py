"""Core analysis functionality for Threat Map."""

from threat_map.core.analyzer import ThreatEngine, analyze
from threat_map.core.findings import Finding, Severity, synthesize_finding
from threat_map.core.report import AnalysisReport
from threat_map.core.rules import RuleStore

__all__ = [
    "analyze",
    "ThreatEngine",
    "RuleStore",
    "AnalysisReport",
    "Finding",
    "Severity",
    "synthesize_finding",
]
