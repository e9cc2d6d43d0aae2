"""
Main analysis entry point.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from threat_map.core.diagram import load_diagram, parse_diagram
from threat_map.core.errors import EngineNotInitializedError
from threat_map.core.expressions import EvaluationContext, evaluate_matches
from threat_map.core.findings import synthesize_finding
from threat_map.core.report import AnalysisReport
from threat_map.core.rules import RuleStore
from threat_map.models.schemas import Diagram, EngineConfig, EngineInfo, GraphNode, Rule

logger = logging.getLogger(__name__)


class RuleSource(str, Enum):
    BASELINE = "baseline"
    SUPPLEMENTAL = "supplemental"

    def __str__(self) -> str:
        return self.value


class ThreatEngine:
    """
    Applies the rule catalog to every cell of a diagram.

    The engine is constructed, then initialized once before use:

        >>> engine = ThreatEngine(EngineConfig.from_env())
        >>> engine.initialize()
        >>> analyzed = engine.analyze_diagram(diagram)
    """

    def __init__(self, config: EngineConfig | None = None, store: RuleStore | None = None) -> None:
        self.config = config or (store.config if store else EngineConfig())
        self.store = store or RuleStore(self.config)

    @property
    def initialized(self) -> bool:
        return self.store.initialized

    @property
    def supplemental_enabled(self) -> bool:
        return self.config.supplemental_enabled

    def initialize(self) -> None:
        """Load the rule catalog. Safe to call repeatedly and concurrently."""
        self.store.initialize()

    def info(self) -> EngineInfo:
        return EngineInfo(
            initialized=self.initialized,
            baseline_rule_count=len(self.store.baseline),
            supplemental_rule_count=len(self.store.supplemental),
            supplemental_enabled=self.supplemental_enabled,
        )

    def analyze_diagram(
        self,
        diagram: Diagram | dict[str, Any],
        *,
        supplemental: bool | None = None,
    ) -> Diagram:
        """
        Return an analyzed copy of a diagram.

        Args:
            diagram: The diagram model or its JSON payload. Never modified.
            supplemental: Apply supplemental rules. Defaults to the engine
                configuration.

        Returns:
            A deep copy of the diagram whose in-scope cells carry the
            generated findings.

        Raises:
            EngineNotInitializedError: ``initialize`` has not completed.
        """
        if not self.initialized:
            raise EngineNotInitializedError()

        if isinstance(diagram, Diagram):
            analyzed = diagram.model_copy(deep=True)
        else:
            analyzed = parse_diagram(diagram).model_copy(deep=True)

        include_supplemental = self.supplemental_enabled if supplemental is None else supplemental
        logger.info("Analyzing diagram: %s", analyzed.title or "Untitled")

        context = EvaluationContext(analyzed.cells)
        for cell in analyzed.cells:
            self._analyze_cell(cell, context, include_supplemental)

        logger.info("Analysis complete. Generated %d threats.", analyzed.threat_count)
        return analyzed

    def _analyze_cell(
        self,
        cell: GraphNode,
        context: EvaluationContext,
        include_supplemental: bool,
    ) -> None:
        if cell.out_of_scope is True:
            return

        # Drop findings from an earlier run so re-analysis does not duplicate them
        cell.findings = [finding for finding in cell.findings if not finding.synthetic]

        self._apply_rules(cell, context, self.store.baseline, RuleSource.BASELINE)
        if include_supplemental:
            self._apply_rules(cell, context, self.store.supplemental, RuleSource.SUPPLEMENTAL)

        cell.has_open_findings = len(cell.findings) > 0

    def _apply_rules(
        self,
        cell: GraphNode,
        context: EvaluationContext,
        rules: Sequence[Rule],
        source: RuleSource,
    ) -> None:
        for rule in rules:
            if not rule.is_active:
                continue
            if evaluate_matches(rule.matches, cell, context):
                cell.findings.append(synthesize_finding(rule, cell))
                logger.debug("Applied %s rule %r to cell %s", source, rule.name, cell.id)


def analyze(
    diagram: str | Path | dict[str, Any] | Diagram,
    *,
    config: EngineConfig | None = None,
    engine: ThreatEngine | None = None,
    supplemental: bool | None = None,
) -> AnalysisReport:
    """
    Analyze a data-flow diagram and return a report with findings.

    Args:
        diagram: Path to a diagram JSON file, a diagram payload, or a Diagram.
        config: Engine configuration. Read from the environment if None.
        engine: An existing engine to reuse; its configuration wins.
        supplemental: Override the supplemental rules toggle for this call.

    Returns:
        AnalysisReport holding the analyzed diagram and engine details.

    Example:
        >>> from threat_map import analyze
        >>> report = analyze("path/to/diagram.json")
        >>> print(report.summary())
        >>> report.to_json("report.json")
    """
    if isinstance(diagram, (str, Path)):
        source = str(diagram)
        diagram = load_diagram(Path(diagram))
    else:
        source = "<payload>"

    engine = engine or ThreatEngine(config or EngineConfig.from_env())
    engine.initialize()

    analyzed = engine.analyze_diagram(diagram, supplemental=supplemental)
    info = engine.info()
    if supplemental is not None:
        info = info.model_copy(update={"supplemental_enabled": supplemental})

    return AnalysisReport(
        source_path=source,
        analysis_timestamp=datetime.now(timezone.utc).isoformat(),
        diagram=analyzed,
        engine=info,
    )
