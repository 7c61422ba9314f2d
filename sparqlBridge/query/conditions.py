from __future__ import annotations

"""Condition nodes collected by :class:`~sparqlBridge.query.builder.QueryBuilder`."""

from dataclasses import dataclass, field
from typing import Any, Sequence

from sparqlBridge.errors import CompilationError

AND = "and"
OR = "or"

COMPARISON_OPERATORS = ("=", "!=", "<", ">", "<=", ">=")
FUNCTION_OPERATORS = ("regex", "iregex", "not regex", "not iregex", "lang", "datatype")


def normalize_connector(connector: str) -> str:
    value = str(connector).strip().lower()
    if value not in (AND, OR):
        raise CompilationError(f"Unknown boolean connector '{connector}'")
    return value


def normalize_operator(operator: str) -> str:
    value = str(operator).strip().lower()
    if value == "<>":
        value = "!="
    elif value == "==":
        value = "="
    if value not in COMPARISON_OPERATORS and value not in FUNCTION_OPERATORS:
        raise CompilationError(f"Unsupported operator '{operator}'")
    return value


@dataclass(frozen=True, slots=True)
class Basic:
    column: str
    operator: str
    value: Any
    connector: str = AND


@dataclass(frozen=True, slots=True)
class In:
    column: str
    values: tuple[Any, ...]
    connector: str = AND


@dataclass(frozen=True, slots=True)
class NotIn:
    column: str
    values: tuple[Any, ...]
    connector: str = AND


@dataclass(frozen=True, slots=True)
class Between:
    column: str
    low: Any
    high: Any
    connector: str = AND
    negated: bool = False


@dataclass(frozen=True, slots=True)
class Null:
    column: str
    connector: str = AND


@dataclass(frozen=True, slots=True)
class NotNull:
    column: str
    connector: str = AND


@dataclass(frozen=True, slots=True)
class Raw:
    """Caller-written graph pattern, inserted verbatim."""

    pattern: str
    connector: str = AND
    bindings: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class Filter:
    """Caller-written filter expression (without the ``FILTER`` keyword)."""

    expression: str
    connector: str = AND
    bindings: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class Triple:
    subject: Any
    predicate: Any
    object: Any
    connector: str = AND


@dataclass(frozen=True, slots=True)
class Group:
    """A nested block: ``optional``, ``minus``, ``service`` or a plain ``group``.

    ``target`` holds the endpoint IRI of a ``service`` block.
    """

    kind: str
    conditions: tuple[Any, ...] = field(default_factory=tuple)
    connector: str = AND
    target: str | None = None


@dataclass(frozen=True, slots=True)
class Union:
    branches: tuple[tuple[Any, ...], ...]
    connector: str = AND


@dataclass(frozen=True, slots=True)
class Exists:
    """``EXISTS { ... }`` used as a filter expression."""

    conditions: tuple[Any, ...]
    connector: str = AND
    negated: bool = False


@dataclass(frozen=True, slots=True)
class Path:
    """A property path from the subject, compared against ``value``."""

    path: str
    operator: str
    value: Any
    connector: str = AND


PATTERN_NODES = (Raw, Triple, Group, Union)


def between(column: str, values: Sequence[Any], connector: str = AND, *, negated: bool = False) -> Between:
    values = list(values)
    if len(values) != 2:
        raise CompilationError(
            f"BETWEEN on '{column}' needs exactly two values, got {len(values)}"
        )
    return Between(column, values[0], values[1], normalize_connector(connector), negated)


__all__ = [
    "AND",
    "Basic",
    "Between",
    "COMPARISON_OPERATORS",
    "FUNCTION_OPERATORS",
    "Exists",
    "Filter",
    "Group",
    "In",
    "NotIn",
    "NotNull",
    "Null",
    "OR",
    "PATTERN_NODES",
    "Path",
    "Raw",
    "Triple",
    "Union",
    "between",
    "normalize_connector",
    "normalize_operator",
]
