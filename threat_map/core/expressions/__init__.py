"""
Match expression language.

Rules describe the cells they apply to with small boolean expressions such
as ``and(isProcess, not(isEncrypted))``. The parser turns each expression
into a tree of Expression objects that evaluate against a cell and its
diagram.
"""

from threat_map.core.expressions.base import EvaluationContext, Expression
from threat_map.core.expressions.evaluator import evaluate, evaluate_matches
from threat_map.core.expressions.parser import parse_expression, split_arguments
from threat_map.core.expressions.predicates import PREDICATES
from threat_map.core.expressions.tree import (
    And,
    Connects,
    HasProperty,
    Not,
    Or,
    Primitive,
    Source,
    Target,
    Unknown,
)

__all__ = [
    "EvaluationContext",
    "Expression",
    "evaluate",
    "evaluate_matches",
    "parse_expression",
    "split_arguments",
    "PREDICATES",
    "And",
    "Connects",
    "HasProperty",
    "Not",
    "Or",
    "Primitive",
    "Source",
    "Target",
    "Unknown",
]
