"""
Expression tree variants produced by the parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from threat_map.core.expressions.base import EvaluationContext, Expression
from threat_map.core.expressions.predicates import PREDICATES

if TYPE_CHECKING:
    from threat_map.models.schemas import GraphNode


@dataclass(frozen=True)
class Primitive(Expression):
    """A named predicate such as ``isProcess``."""

    name: str

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        predicate = PREDICATES.get(self.name)
        return predicate is not None and predicate(node, context)


@dataclass(frozen=True)
class Not(Expression):
    operand: Expression

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        return not self.operand.evaluate(node, context)


@dataclass(frozen=True)
class And(Expression):
    """True when every operand holds; an empty ``and()`` is true."""

    operands: tuple[Expression, ...]

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        return all(operand.evaluate(node, context) for operand in self.operands)


@dataclass(frozen=True)
class Or(Expression):
    """True when any operand holds; an empty ``or()`` is false."""

    operands: tuple[Expression, ...]

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        return any(operand.evaluate(node, context) for operand in self.operands)


@dataclass(frozen=True)
class HasProperty(Expression):
    """
    ``hasProperty(name)`` checks that an attribute is present and not null;
    ``hasProperty(name, value)`` compares its string form with ``value``.
    """

    name: str
    value: str | None = None

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        actual = node.get_property(self.name)
        if actual is None:
            return False
        if self.value is None:
            return True
        return _as_text(actual).strip() == self.value


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Source(Expression):
    """On a flow, evaluate ``operand`` against the flow's source cell."""

    operand: Expression

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        if not node.is_flow:
            return False
        source = context.lookup(node.source_id)
        return source is not None and self.operand.evaluate(source, context)


@dataclass(frozen=True)
class Target(Expression):
    """On a flow, evaluate ``operand`` against the flow's target cell."""

    operand: Expression

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        if not node.is_flow:
            return False
        target = context.lookup(node.target_id)
        return target is not None and self.operand.evaluate(target, context)


@dataclass(frozen=True)
class Connects(Expression):
    """On a flow, both endpoint expressions must hold at once."""

    source: Expression
    target: Expression

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        if not node.is_flow:
            return False
        source = context.lookup(node.source_id)
        target = context.lookup(node.target_id)
        if source is None or target is None:
            return False
        return self.source.evaluate(source, context) and self.target.evaluate(target, context)


@dataclass(frozen=True)
class Unknown(Expression):
    """Anything the parser could not make sense of. Never matches."""

    text: str

    def evaluate(self, node: GraphNode, context: EvaluationContext) -> bool:
        return False
