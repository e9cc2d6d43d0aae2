"""
Entry points for evaluating match expressions against diagram cells.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from threat_map.core.expressions.base import EvaluationContext
from threat_map.core.expressions.parser import parse_expression

if TYPE_CHECKING:
    from threat_map.models.schemas import GraphNode

logger = logging.getLogger(__name__)


def evaluate(
    expression: str,
    node: GraphNode,
    nodes: Sequence[GraphNode] | EvaluationContext,
) -> bool:
    """
    Evaluate one match expression against a cell.

    Args:
        expression: Match expression text, e.g. ``"connects(isProcess, isStore)"``.
        node: The cell under test.
        nodes: Every cell of the diagram, or a context already built from them.

    Returns:
        Whether the expression holds. Unrecognized expressions, and
        expressions nested deeper than the interpreter can recurse, return
        False.

    Example:
        >>> evaluate("and(isFlow, not(isEncrypted))", flow, diagram.cells)
        True
    """
    context = nodes if isinstance(nodes, EvaluationContext) else EvaluationContext(nodes)
    try:
        return parse_expression(expression).evaluate(node, context)
    except RecursionError:
        logger.warning("Match expression nested too deeply, treating as no match: %.60s", expression)
        return False


def evaluate_matches(
    expressions: Iterable[str],
    node: GraphNode,
    context: EvaluationContext,
) -> bool:
    """True if any of a rule's match expressions holds."""
    return any(evaluate(expression, node, context) for expression in expressions)
