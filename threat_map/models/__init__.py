"""Data models and schemas for Threat Map."""

from threat_map.models.schemas import (
    Diagram,
    EngineConfig,
    EngineInfo,
    FindingTemplate,
    GraphNode,
    NodeType,
    Rule,
    RuleSet,
)

__all__ = [
    "Diagram",
    "EngineConfig",
    "EngineInfo",
    "FindingTemplate",
    "GraphNode",
    "NodeType",
    "Rule",
    "RuleSet",
]
