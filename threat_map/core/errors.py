"""
Exceptions raised by the threat engine.
"""

from __future__ import annotations


class ThreatMapError(Exception):
    """Base class for threat-map errors."""


class RuleLoadError(ThreatMapError):
    """The rules directory could not be created or read."""


class EngineNotInitializedError(ThreatMapError):
    """A diagram was analyzed before the engine loaded its rules."""

    def __init__(self) -> None:
        super().__init__("Threat engine not initialized. Call initialize() first.")


class DiagramFormatError(ThreatMapError):
    """A diagram document could not be read or has no cells array."""
