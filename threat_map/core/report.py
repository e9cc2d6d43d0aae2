"""
Report class that holds analysis results and supports text and JSON output.
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, Field

from threat_map.core.findings import Finding, Severity
from threat_map.models.schemas import Diagram, EngineInfo, GraphNode


class AnalysisReport(BaseModel):
    """
    Analysis report: the analyzed diagram plus engine details.

    Usage:
        >>> report = analyze("diagram.json")
        >>> print(report.summary())
        >>> report.to_json("report.json")
    """

    # Metadata
    source_path: str = Field(description="Path to the analyzed diagram")
    analysis_timestamp: str = Field(description="When this analysis was run")

    # Core data
    diagram: Diagram = Field(description="Analyzed copy of the diagram")
    engine: EngineInfo = Field(description="Rule counts and toggles used for the run")

    @property
    def threat_count(self) -> int:
        return self.diagram.threat_count

    def iter_findings(self) -> Iterator[tuple[GraphNode, Finding]]:
        """Yield (cell, finding) pairs in diagram order."""
        for cell in self.diagram.cells:
            for finding in cell.findings:
                yield cell, finding

    def sorted_by_severity(self) -> list[tuple[GraphNode, Finding]]:
        """Return (cell, finding) pairs, most severe first."""
        return sorted(self.iter_findings(), key=lambda pair: Severity.rank(pair[1].severity))

    def count_by_severity(self) -> dict[str, int]:
        return dict(Counter(finding.severity for _, finding in self.iter_findings()))

    def summary(self) -> str:
        """Generate a text summary of findings."""
        counts = self.count_by_severity()
        lines = [
            f"Threat Map Analysis: {self.source_path}",
            f"{'=' * 50}",
            "",
            f"Diagram: {self.diagram.title or 'Untitled'}",
            f"Cells: {len(self.diagram.cells)}",
            f"Rules: {self.engine.baseline_rule_count} baseline, "
            f"{self.engine.supplemental_rule_count} supplemental "
            f"({'enabled' if self.engine.supplemental_enabled else 'disabled'})",
            "",
            f"Threats: {self.threat_count} total",
        ]
        for severity in Severity:
            lines.append(f"  {severity}: {counts.get(severity.value, 0)}")
        lines.append("")

        if self.threat_count:
            lines.append("Top Threats:")
            lines.append("-" * 30)
            for cell, finding in self.sorted_by_severity()[:10]:
                lines.append(f"  [{finding.severity}] {finding.title}")
                lines.append(f"    Cell: {cell.name or cell.id} ({finding.category})")
                if finding.mitigation:
                    lines.append(f"    Mitigation: {finding.mitigation[:100]}")
                lines.append("")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary, keeping the diagram's JSON names."""
        return {
            "source_path": self.source_path,
            "analysis_timestamp": self.analysis_timestamp,
            "summary": {
                "title": self.diagram.title,
                "num_cells": len(self.diagram.cells),
                "threat_count": self.threat_count,
                "by_severity": self.count_by_severity(),
            },
            "engine": {
                **self.engine.model_dump(),
                "total_rule_count": self.engine.total_rule_count,
            },
            "diagram": self.diagram.to_dict(),
        }

    def to_json(self, path: str | Path, indent: int = 2) -> None:
        """Export report as JSON file."""
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=indent, default=str))
