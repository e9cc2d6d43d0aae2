"""
Finding and severity models, and the synthesizer that turns a matched rule
into a finding.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

if TYPE_CHECKING:
    from threat_map.models.schemas import GraphNode, Rule

DEFAULT_TITLE = "Untitled Threat"
DEFAULT_CATEGORY = "Undefined"
DEFAULT_SEVERITY = "Medium"
DEFAULT_ORIGIN = "Threat rule"


class Severity(str, Enum):
    """Severity levels used by the bundled rule sets."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def rank(cls, value: str) -> int:
        """Sort key: critical first, unknown severities last."""
        order = {cls.CRITICAL: 0, cls.HIGH: 1, cls.MEDIUM: 2, cls.LOW: 3}
        for member, position in order.items():
            if value.strip().lower() == member.value.lower():
                return position
        return len(order)


class FindingStatus(str, Enum):
    OPEN = "Open"
    MITIGATED = "Mitigated"
    NOT_APPLICABLE = "NotApplicable"

    def __str__(self) -> str:
        return self.value


class Finding(BaseModel):
    """
    A threat attached to a diagram cell.

    Generated findings carry ``isGenerated = true``; findings written by hand
    in the input diagram are read leniently and passed through.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Identity
    id: str = Field(default="", description="Finding identifier")
    title: str = Field(default=DEFAULT_TITLE, description="Short, human-readable title")

    # Classification
    category: str = Field(default=DEFAULT_CATEGORY, alias="type", description="STRIDE category")
    status: str = Field(default=FindingStatus.OPEN.value)
    severity: str = Field(default=DEFAULT_SEVERITY)

    # Evidence
    description: str = Field(default="")
    mitigation: str = Field(default="")

    # Provenance
    subject_type: str = Field(default="", alias="modelType", description="Cell name, else cell type")
    origin: str = Field(default="", alias="generatedBy", description="Name of the rule that fired")
    synthetic: bool = Field(default=False, alias="isGenerated")

    @field_validator(
        "id",
        "title",
        "category",
        "status",
        "severity",
        "description",
        "mitigation",
        "subject_type",
        "origin",
        mode="before",
    )
    @classmethod
    def _as_text(cls, value: Any, info: ValidationInfo) -> Any:
        # Hand-written threats may carry numbers or nulls
        if value is None:
            return cls.model_fields[info.field_name].default
        return value if isinstance(value, str) else str(value)

    @field_validator("synthetic", mode="before")
    @classmethod
    def _generated_flag(cls, value: Any) -> bool:
        return value is True

    def to_summary_dict(self) -> dict[str, Any]:
        """Return a compact dict for reports."""
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "severity": self.severity,
            "status": self.status,
            "subject": self.subject_type,
            "origin": self.origin,
        }


def new_finding_id(node_id: str) -> str:
    """Node id, wall clock in nanoseconds and a random suffix."""
    return f"{node_id}-{time.time_ns()}-{uuid.uuid4().hex[:8]}"


def synthesize_finding(rule: Rule, node: GraphNode) -> Finding:
    """
    Build the finding a matched rule generates for a cell.

    Args:
        rule: The rule whose match expressions held for ``node``.
        node: The cell the finding is attached to.

    Returns:
        A new open, generated Finding. Missing template fields fall back to
        the module defaults.
    """
    template = rule.generates
    return Finding(
        id=new_finding_id(node.id),
        title=template.title or DEFAULT_TITLE,
        category=template.stride or template.type or DEFAULT_CATEGORY,
        status=FindingStatus.OPEN.value,
        severity=template.severity or DEFAULT_SEVERITY,
        description=template.description or "",
        mitigation=template.mitigation or "",
        subject_type=node.name or node.type,
        origin=rule.name or DEFAULT_ORIGIN,
        synthetic=True,
    )
