from __future__ import annotations

"""Uniform result objects built from SPARQL JSON responses."""

from dataclasses import dataclass, field
from decimal import InvalidOperation
from typing import Any, Iterator, Mapping, Sequence

from sparqlBridge.query.terms import NUMERIC_DATATYPES, XSD_BOOLEAN, Term, TermKind, URN_RE


def term_from_binding(binding: Mapping[str, Any]) -> Term:
    """Convert one ``application/sparql-results+json`` binding to a Term."""

    kind = binding.get("type")
    value = binding.get("value", "")
    if kind == "uri":
        return Term(TermKind.URN if URN_RE.match(value) else TermKind.IRI, value)
    if kind == "bnode":
        return Term(TermKind.BLANK, value if value.startswith("_:") else f"_:{value}")
    datatype = binding.get("datatype")
    lang = binding.get("xml:lang")
    if datatype in NUMERIC_DATATYPES:
        try:
            return Term(TermKind.NUMERIC, NUMERIC_DATATYPES[datatype](value))
        except (ValueError, InvalidOperation):
            return Term(TermKind.STRING, value, datatype=datatype)
    if datatype == XSD_BOOLEAN:
        return Term(TermKind.BOOLEAN, value.strip().lower() in ("true", "1"))
    return Term(TermKind.STRING, value, lang=lang or None, datatype=None if lang else datatype)


class Row(Mapping[str, Term]):
    """One solution; unbound variables are simply absent."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Term]) -> None:
        self._values = dict(values)

    def __getitem__(self, key: str) -> Term:
        return self._values[key.lstrip("?")]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def value(self, key: str, default: Any = None) -> Any:
        term = self._values.get(key.lstrip("?"))
        return default if term is None else term.value

    def as_dict(self) -> dict[str, Any]:
        return {key: term.value for key, term in self._values.items()}

    def __repr__(self) -> str:
        return f"Row({self.as_dict()!r})"


@dataclass(slots=True)
class ResultSet(Sequence[Row]):
    variables: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "ResultSet":
        variables = list(payload.get("head", {}).get("vars", []))
        rows = [
            Row({name: term_from_binding(binding) for name, binding in solution.items()})
            for solution in payload.get("results", {}).get("bindings", [])
        ]
        return cls(variables, rows)

    def __getitem__(self, index):  # type: ignore[override]
        return self.rows[index]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def first(self) -> Row | None:
        return self.rows[0] if self.rows else None

    def column(self, name: str) -> list[Any]:
        return [row.value(name) for row in self.rows]

    def as_dicts(self) -> list[dict[str, Any]]:
        return [row.as_dict() for row in self.rows]


@dataclass(frozen=True, slots=True)
class AskResult:
    boolean: bool

    def __bool__(self) -> bool:
        return self.boolean


__all__ = ["AskResult", "ResultSet", "Row", "term_from_binding"]
