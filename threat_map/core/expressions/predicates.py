"""
Primitive predicates: fixed-name tests against a cell's type and flags.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from threat_map.models.schemas import NodeType

if TYPE_CHECKING:
    from threat_map.core.expressions.base import EvaluationContext
    from threat_map.models.schemas import GraphNode

Predicate = Callable[["GraphNode", "EvaluationContext"], bool]


def _mentions(node: GraphNode, word: str) -> bool:
    return any(word in (text or "").lower() for text in (node.name, node.description))


def is_actor(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.ACTOR)


def is_process(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.PROCESS)


def is_store(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.STORE)


def is_flow(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.FLOW)


def is_any_process(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.PROCESS) or node.is_type(NodeType.ACTOR)


def is_encrypted(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_encrypted is True


def is_public_network(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_public_network is True


def is_out_of_scope(node: GraphNode, context: EvaluationContext) -> bool:
    return node.out_of_scope is True


def is_public_facing(node: GraphNode, context: EvaluationContext) -> bool:
    """Flagged public facing, or reached by a flow over a public network."""
    return node.is_public_facing is True or context.has_public_flow_to(node)


def is_web_application(node: GraphNode, context: EvaluationContext) -> bool:
    # Heuristic: a process whose name or description mentions "web"
    return node.is_type(NodeType.PROCESS) and _mentions(node, "web")


def is_api(node: GraphNode, context: EvaluationContext) -> bool:
    return node.is_type(NodeType.PROCESS) and _mentions(node, "api")


PREDICATES: dict[str, Predicate] = {
    "isActor": is_actor,
    "isProcess": is_process,
    "isStore": is_store,
    "isFlow": is_flow,
    "isAnyProcess": is_any_process,
    "isEncrypted": is_encrypted,
    "isPublicNetwork": is_public_network,
    "isOutOfScope": is_out_of_scope,
    "isPublicFacing": is_public_facing,
    "isWebApplication": is_web_application,
    "isAPI": is_api,
}
