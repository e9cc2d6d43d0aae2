"""
Recursive-descent parser for match expressions.

Grammar::

    expression := IDENTIFIER
                | IDENTIFIER "(" [argument ("," argument)*] ")"

Calls are ``not``, ``and``, ``or``, ``hasProperty``, ``source``, ``target``
and ``connects``. Identifiers must name a primitive predicate. Anything else,
including unbalanced parentheses or the wrong number of arguments, parses to
``Unknown``, which never matches.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable

from threat_map.core.expressions.base import Expression
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

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@lru_cache(maxsize=1024)
def parse_expression(text: str) -> Expression:
    """
    Parse a match expression into an expression tree.

    Results are cached per expression string; trees are immutable.
    """
    text = text.strip()
    if _IDENTIFIER.fullmatch(text):
        return Primitive(text) if text in PREDICATES else Unknown(text)

    call = _split_call(text)
    if call is None:
        return Unknown(text)

    name, arguments = call
    builder = _BUILDERS.get(name)
    if builder is None:
        return Unknown(text)
    return builder(arguments) or Unknown(text)


def split_arguments(text: str) -> list[str]:
    """
    Split an argument list on commas outside nested parentheses.

    >>> split_arguments("or(a,b), c")
    ['or(a,b)', 'c']
    """
    arguments: list[str] = []
    current: list[str] = []
    depth = 0

    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            arguments.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    last = "".join(current).strip()
    if last:
        arguments.append(last)
    return arguments


def _split_call(text: str) -> tuple[str, str] | None:
    """Return (name, argument text) when ``text`` is one whole call."""
    open_at = text.find("(")
    if open_at <= 0 or not text.endswith(")"):
        return None

    name = text[:open_at].strip()
    if not _IDENTIFIER.fullmatch(name):
        return None

    # The first "(" must close at the very last character
    depth = 0
    for position in range(open_at, len(text)):
        char = text[position]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and position != len(text) - 1:
                return None
        if depth < 0:
            return None
    if depth != 0:
        return None

    return name, text[open_at + 1 : -1]


def _build_not(arguments: str) -> Expression | None:
    parts = split_arguments(arguments)
    if len(parts) != 1:
        return None
    return Not(parse_expression(parts[0]))


def _build_and(arguments: str) -> Expression | None:
    return And(tuple(parse_expression(part) for part in split_arguments(arguments)))


def _build_or(arguments: str) -> Expression | None:
    return Or(tuple(parse_expression(part) for part in split_arguments(arguments)))


def _build_has_property(arguments: str) -> Expression | None:
    # The value is everything after the first top-level comma
    parts = split_arguments(arguments)
    if not parts or not parts[0]:
        return None
    name = parts[0]
    if len(parts) == 1:
        return HasProperty(name)
    return HasProperty(name, _after_first_comma(arguments).strip())


def _after_first_comma(arguments: str) -> str:
    depth = 0
    for position, char in enumerate(arguments):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            return arguments[position + 1 :]
    return ""


def _build_source(arguments: str) -> Expression | None:
    parts = split_arguments(arguments)
    if len(parts) != 1:
        return None
    return Source(parse_expression(parts[0]))


def _build_target(arguments: str) -> Expression | None:
    parts = split_arguments(arguments)
    if len(parts) != 1:
        return None
    return Target(parse_expression(parts[0]))


def _build_connects(arguments: str) -> Expression | None:
    parts = split_arguments(arguments)
    if len(parts) != 2:
        return None
    return Connects(parse_expression(parts[0]), parse_expression(parts[1]))


_BUILDERS: dict[str, Callable[[str], Expression | None]] = {
    "not": _build_not,
    "and": _build_and,
    "or": _build_or,
    "hasProperty": _build_has_property,
    "source": _build_source,
    "target": _build_target,
    "connects": _build_connects,
}
