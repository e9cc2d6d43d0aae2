"""
Pydantic models for diagrams, rules and engine configuration.

Diagram models keep the JSON attribute names of the diagram documents
(``isEncrypted``, ``outOfScope``, ``threats`` ...) as aliases, and carry any
attribute they do not know about through unchanged.
"""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from threat_map.core.findings import Finding

DEFAULT_RULES_DIR = Path(__file__).resolve().parent.parent / "rules"


class NodeType(str, Enum):
    """Cell type tags used by data-flow diagrams."""

    ACTOR = "tm.Actor"
    PROCESS = "tm.Process"
    STORE = "tm.Store"
    FLOW = "tm.Flow"
    BOUNDARY = "tm.Boundary"
    TEXT = "tm.Text"

    def __str__(self) -> str:
        return self.value


class GraphNode(BaseModel):
    """A single diagram cell: actor, process, store, flow or boundary."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(description="Cell identifier, unique within a diagram")
    type: str = Field(default="", description="Cell type tag (e.g. 'tm.Process')")
    name: str | None = Field(default=None, description="Display name")
    description: str | None = Field(default=None, description="Free-form description")

    # Flow endpoints, kept as written: a cell id or {"cell": "<id>", "port": ...}
    source: Any = Field(default=None, description="Source endpoint (flows only)")
    target: Any = Field(default=None, description="Target endpoint (flows only)")

    # Flags; null reads as false
    is_encrypted: bool | None = Field(default=False, alias="isEncrypted")
    is_public_network: bool | None = Field(default=False, alias="isPublicNetwork")
    is_public_facing: bool | None = Field(default=False, alias="isPublicFacing")
    out_of_scope: bool | None = Field(default=False, alias="outOfScope")

    # Analysis output
    findings: list[Finding] = Field(default_factory=list, alias="threats")
    has_open_findings: bool | None = Field(default=False, alias="hasOpenThreats")

    @field_validator("findings", mode="before")
    @classmethod
    def _no_null_findings(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def source_id(self) -> str | None:
        return _endpoint_id(self.source)

    @property
    def target_id(self) -> str | None:
        return _endpoint_id(self.target)

    def is_type(self, node_type: NodeType) -> bool:
        return self.type == node_type.value

    @property
    def is_flow(self) -> bool:
        return self.is_type(NodeType.FLOW)

    def get_property(self, name: str) -> Any:
        """
        Return the value of a cell attribute by its diagram (JSON) name.

        Attributes that were never given on the cell read as None, even when
        the model carries a default for them.
        """
        field_name = _alias_to_field().get(name, name)
        if field_name in type(self).model_fields:
            if field_name not in self.model_fields_set:
                return None
            return getattr(self, field_name)
        return (self.model_extra or {}).get(name)


def _endpoint_id(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("cell") or value.get("id")
    return value if isinstance(value, str) else None


@lru_cache(maxsize=None)
def _alias_to_field() -> dict[str, str]:
    return {
        info.alias: field_name
        for field_name, info in GraphNode.model_fields.items()
        if info.alias
    }


class Diagram(BaseModel):
    """A data-flow diagram: a title and an ordered list of cells."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(default="", description="Diagram title")
    cells: list[GraphNode] = Field(
        validation_alias=AliasChoices("cells", "nodes"),
        description="Diagram cells in document order",
    )

    @property
    def threat_count(self) -> int:
        return sum(len(cell.findings) for cell in self.cells)

    def to_dict(self) -> dict[str, Any]:
        """Dump using the diagram's JSON attribute names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class FindingTemplate(BaseModel):
    """The finding a rule generates when it matches."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    stride: str | None = Field(default=None, description="STRIDE category")
    type: str | None = Field(default=None, description="Category when 'stride' is absent")
    severity: str | None = None
    description: str | None = None
    mitigation: str | None = None


class Rule(BaseModel):
    """A declarative rule: match expressions plus a finding template."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str | None = Field(default=None, alias="rule", description="Rule name")
    matches: list[str] = Field(
        default_factory=list,
        description="Match expressions; the rule fires when any of them holds",
    )
    generates: FindingTemplate = Field(default_factory=FindingTemplate)

    @field_validator("matches", mode="before")
    @classmethod
    def _no_null_matches(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_active(self) -> bool:
        """Rules without match expressions never fire."""
        return len(self.matches) > 0


class RuleSet(BaseModel):
    """A rule-set document: ``{"rules": [...]}``."""

    rules: list[Any] = Field(description="Raw rule entries, validated one at a time")


def parse_flag(value: Any, default: bool = True) -> bool:
    """
    Interpret a configuration flag.

    Unset (None) gives ``default``; otherwise only ``True``, ``"true"`` and
    ``"1"`` count as enabled.
    """
    if value is None:
        return default
    return value is True or value == "true" or value == "1"


class EngineConfig(BaseModel):
    """Where rules are loaded from and whether supplemental rules apply."""

    rules_dir: Path = Field(default=DEFAULT_RULES_DIR, description="Rule-set directory")
    supplemental_file: str = Field(
        default="enhanced-generic.json",
        description="Name of the supplemental rule-set document inside rules_dir",
    )
    supplemental_prefix: str = Field(
        default="enhanced-",
        description="File name prefix reserved for supplemental documents",
    )
    supplemental_enabled: bool = Field(
        default=True,
        description="Apply supplemental rules after the baseline rules",
    )

    @field_validator("supplemental_enabled", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return parse_flag(value)

    @property
    def supplemental_path(self) -> Path:
        return self.rules_dir / self.supplemental_file

    @classmethod
    def from_env(cls, **overrides: Any) -> EngineConfig:
        """
        Build a config from ``THREAT_MAP_*`` environment variables.

        Keyword overrides that are not None win over the environment.
        """
        values: dict[str, Any] = {}
        rules_dir = os.environ.get("THREAT_MAP_RULES_DIR")
        if rules_dir:
            values["rules_dir"] = Path(rules_dir)
        values["supplemental_enabled"] = os.environ.get("THREAT_MAP_SUPPLEMENTAL_RULES")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class EngineInfo(BaseModel):
    """Introspection snapshot of a threat engine."""

    initialized: bool
    baseline_rule_count: int = Field(ge=0)
    supplemental_rule_count: int = Field(ge=0)
    supplemental_enabled: bool

    @property
    def total_rule_count(self) -> int:
        extra = self.supplemental_rule_count if self.supplemental_enabled else 0
        return self.baseline_rule_count + extra
