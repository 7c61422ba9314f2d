from __future__ import annotations

"""Plain state of one query as accumulated by the builder."""

from dataclasses import dataclass, field
from typing import Any

from sparqlBridge.errors import CompilationError

AGGREGATE_FUNCTIONS = ("COUNT", "SUM", "AVG", "MIN", "MAX", "GROUP_CONCAT", "SAMPLE")
ORDER_DIRECTIONS = ("asc", "desc")


def normalize_direction(direction: str) -> str:
    value = str(direction).strip().lower()
    if value not in ORDER_DIRECTIONS:
        raise CompilationError(
            f"Order direction must be 'asc' or 'desc', got '{direction}'"
        )
    return value


@dataclass(frozen=True, slots=True)
class Aggregate:
    function: str
    column: str = "*"
    separator: str | None = None
    distinct: bool = False

    @classmethod
    def parse(cls, function: str, column: str = "*", separator: str | None = None) -> "Aggregate":
        """Build an aggregate, accepting ``GROUP_CONCAT_SEPARATOR_x`` names."""

        name = str(function).strip().upper()
        marker = "GROUP_CONCAT_SEPARATOR_"
        if name.startswith(marker):
            separator = str(function).strip()[len(marker):]
            name = "GROUP_CONCAT"
        if name not in AGGREGATE_FUNCTIONS:
            raise CompilationError(f"Unknown aggregate function '{function}'")
        if separator is not None and name != "GROUP_CONCAT":
            raise CompilationError("Only GROUP_CONCAT accepts a separator")
        return cls(name, column, separator)


@dataclass(frozen=True, slots=True)
class Order:
    column: Any
    direction: str | None = None

    @property
    def is_raw(self) -> bool:
        return self.direction is None


@dataclass(frozen=True, slots=True)
class Bind:
    expression: str
    variable: str
    bindings: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class ValuesBlock:
    variables: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]


@dataclass(slots=True)
class QuerySpec:
    """Structured description of one SELECT-shaped query.

    When an aggregate is requested without any GROUP BY key the ordering is
    dropped, since the query returns a single row.
    """

    subject: str = "?s"
    table: str | None = None
    graph: str | None = None
    namespace: str | None = None
    columns: list[Any] = field(default_factory=list)
    distinct: bool = False
    wheres: list[Any] = field(default_factory=list)
    binds: list[Bind] = field(default_factory=list)
    values: list[ValuesBlock] = field(default_factory=list)
    groups: list[str] = field(default_factory=list)
    havings: list[Any] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    aggregate: Aggregate | None = None

    def effective_orders(self) -> list[Order]:
        if self.aggregate is not None and not self.groups:
            return []
        return list(self.orders)


__all__ = [
    "AGGREGATE_FUNCTIONS",
    "Aggregate",
    "Bind",
    "ORDER_DIRECTIONS",
    "Order",
    "QuerySpec",
    "ValuesBlock",
    "normalize_direction",
]
