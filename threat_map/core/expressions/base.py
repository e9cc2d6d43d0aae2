"""
Base expression interface and the diagram context expressions run in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from threat_map.models.schemas import GraphNode


class EvaluationContext:
    """
    The cells of one diagram, indexed for relationship lookups.

    Built once per analysis. When two cells share an id, lookups resolve to
    the first one in document order.
    """

    def __init__(self, nodes: Sequence[GraphNode]) -> None:
        self.nodes = list(nodes)
        self._by_id: dict[str, GraphNode] = {}
        for node in self.nodes:
            self._by_id.setdefault(node.id, node)
        self._public_flow_targets = {
            node.target_id
            for node in self.nodes
            if node.is_flow and node.is_public_network is True and node.target_id is not None
        }

    def lookup(self, node_id: str | None) -> GraphNode | None:
        if node_id is None:
            return None
        return self._by_id.get(node_id)

    def has_public_flow_to(self, node: GraphNode) -> bool:
        """True if some public-network flow targets ``node``."""
        return node.id in self._public_flow_targets


class Expression(ABC):
    """
    Abstract base class for parsed match expressions.

    Expressions are immutable and shared between evaluations.
    """

    @abstractmethod
    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        """
        Evaluate the expression against one cell.

        Args:
            node: The cell under test.
            context: All cells of the diagram the cell belongs to.

        Returns:
            Whether the expression holds. Never raises.
        """
        pass
