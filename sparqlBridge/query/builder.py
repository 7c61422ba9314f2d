from __future__ import annotations

"""Fluent construction of :class:`QuerySpec` objects.

The builder is pure state plus validation; when it is created through
:meth:`sparqlBridge.connection.Connection.query` the execution helpers
(``get``, ``count``, ``exists``...) run through that connection.
"""

import copy
import re
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Sequence

from sparqlBridge.bindings import bind_values, positional_bindings
from sparqlBridge.errors import CompilationError
from sparqlBridge.query import conditions as nodes
from sparqlBridge.query.grammar import CompiledQuery, Grammar
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.spec import (
    Aggregate,
    Bind,
    Order,
    QuerySpec,
    ValuesBlock,
    normalize_direction,
)
from sparqlBridge.query.terms import Term, TermKind, raw, xsd_datatype
from sparqlBridge.query.wrapper import wrap_uri
from sparqlBridge.triplestore.base import validate_namespace

if TYPE_CHECKING:  # pragma: no cover
    from sparqlBridge.connection import Connection
    from sparqlBridge.results import ResultSet, Row

_MISSING = object()
_LIKE_SPECIALS = re.compile(r"([.^$*+?()\[\]{}|\\])")
_LANG_TAG_RE = re.compile(r"^[A-Za-z]+(?:-[A-Za-z0-9]+)*$")


def like_to_regex(pattern: str) -> str:
    """Translate a SQL ``LIKE`` pattern into an anchored regular expression."""

    escaped = _LIKE_SPECIALS.sub(r"\\\1", pattern)
    return "^" + escaped.replace("%", ".*").replace("_", ".") + "$"


class QueryBuilder:
    """Accumulate a query description through chained calls."""

    def __init__(
        self,
        connection: "Connection | None" = None,
        *,
        prefixes: PrefixTable | None = None,
        grammar: Grammar | None = None,
        subject: str = "?s",
    ) -> None:
        self.connection = connection
        if prefixes is None:
            prefixes = connection.prefixes if connection is not None else PrefixTable()
        self.prefixes = prefixes
        self.grammar = grammar or Grammar(prefixes)
        self.spec = QuerySpec(subject=subject)
        self.cache_ttl: float | None = None
        self.remembered = False

    # ------------------------------------------------------------------
    # target

    def from_(self, table: str) -> "QueryBuilder":
        self.spec.table = table
        return self

    table = from_

    def graph(self, graph: str | None) -> "QueryBuilder":
        self.spec.graph = graph
        return self

    def namespace(self, namespace: str | None) -> "QueryBuilder":
        if namespace is not None:
            validate_namespace(namespace)
        self.spec.namespace = namespace
        return self

    # ------------------------------------------------------------------
    # select list

    def select(self, *columns: Any) -> "QueryBuilder":
        self.spec.columns = list(_flatten(columns)) or ["*"]
        return self

    def add_select(self, *columns: Any) -> "QueryBuilder":
        current = [column for column in self.spec.columns if column != "*"]
        self.spec.columns = current + list(_flatten(columns))
        return self

    def select_expression(self, expression: str) -> "QueryBuilder":
        """Add a caller-trusted SELECT expression such as ``(COUNT(?x) as ?n)``."""

        current = [column for column in self.spec.columns if column != "*"]
        self.spec.columns = current + [raw(expression)]
        return self

    def distinct(self, value: bool = True) -> "QueryBuilder":
        self.spec.distinct = value
        return self

    # ------------------------------------------------------------------
    # conditions

    def where(
        self,
        column: Any,
        operator: Any = _MISSING,
        value: Any = _MISSING,
        connector: str = nodes.AND,
    ) -> "QueryBuilder":
        if isinstance(column, Mapping):
            for key, item in column.items():
                self.where(key, "=", item, connector)
            return self
        if value is _MISSING:
            if operator is _MISSING:
                raise CompilationError(f"where('{column}') needs a value")
            operator, value = "=", operator
        connector = nodes.normalize_connector(connector)
        op = str(operator).strip().lower()
        if value is None and op in ("=", "is"):
            self.spec.wheres.append(nodes.Null(column, connector))
            return self
        if value is None and op in ("!=", "<>", "is not"):
            self.spec.wheres.append(nodes.NotNull(column, connector))
            return self
        if op == "like":
            return self.where_like(column, value, connector)
        if op == "not like":
            return self.where_not_like(column, value, connector)
        self.spec.wheres.append(
            nodes.Basic(column, nodes.normalize_operator(op), value, connector)
        )
        return self

    def or_where(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING) -> "QueryBuilder":
        return self.where(column, operator, value, nodes.OR)

    def where_in(self, column: str, values: Iterable[Any], connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.In(column, tuple(values), nodes.normalize_connector(connector)))
        return self

    def or_where_in(self, column: str, values: Iterable[Any]) -> "QueryBuilder":
        return self.where_in(column, values, nodes.OR)

    def where_not_in(self, column: str, values: Iterable[Any], connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.NotIn(column, tuple(values), nodes.normalize_connector(connector)))
        return self

    def where_between(self, column: str, values: Sequence[Any], connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.between(column, values, connector))
        return self

    def where_not_between(self, column: str, values: Sequence[Any], connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.between(column, values, connector, negated=True))
        return self

    def where_null(self, column: str, connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.Null(column, nodes.normalize_connector(connector)))
        return self

    def where_not_null(self, column: str, connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(nodes.NotNull(column, nodes.normalize_connector(connector)))
        return self

    def where_like(self, column: str, pattern: str, connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(
            nodes.Basic(column, "iregex", like_to_regex(str(pattern)), nodes.normalize_connector(connector))
        )
        return self

    def where_raw(self, pattern: str, bindings: Any = None, connector: str = nodes.AND) -> "QueryBuilder":
        text, values = positional_bindings(pattern, bindings)
        self.spec.wheres.append(nodes.Raw(text, nodes.normalize_connector(connector), tuple(values)))
        return self

    def or_where_raw(self, pattern: str, bindings: Any = None) -> "QueryBuilder":
        return self.where_raw(pattern, bindings, nodes.OR)

    def filter(self, expression: str, bindings: Any = None, connector: str = nodes.AND) -> "QueryBuilder":
        text, values = positional_bindings(expression, bindings)
        self.spec.wheres.append(nodes.Filter(text, nodes.normalize_connector(connector), tuple(values)))
        return self

    def or_filter(self, expression: str, bindings: Any = None) -> "QueryBuilder":
        return self.filter(expression, bindings, nodes.OR)

    def where_triple(self, subject: Any, predicate: Any, obj: Any) -> "QueryBuilder":
        self.spec.wheres.append(nodes.Triple(subject, predicate, obj))
        return self

    def where_not_like(self, column: str, pattern: str, connector: str = nodes.AND) -> "QueryBuilder":
        self.spec.wheres.append(
            nodes.Basic(column, "not iregex", like_to_regex(str(pattern)), nodes.normalize_connector(connector))
        )
        return self

    def or_where_not_like(self, column: str, pattern: str) -> "QueryBuilder":
        return self.where_not_like(column, pattern, nodes.OR)

    def where_path(self, path: str, operator: Any, value: Any = _MISSING, connector: str = nodes.AND) -> "QueryBuilder":
        """Match a property path such as ``foaf:knows+/foaf:name`` from the subject.

        Elements are prefixed names or ``<iri>``; full IRIs need the angle
        brackets because ``/`` is the sequence operator.
        """

        if value is _MISSING:
            operator, value = "=", operator
        self.spec.wheres.append(
            nodes.Path(str(path), nodes.normalize_operator(operator), value, nodes.normalize_connector(connector))
        )
        return self

    property_path = where_path

    def where_exists(
        self,
        callback: Callable[["QueryBuilder"], Any],
        connector: str = nodes.AND,
        *,
        negated: bool = False,
    ) -> "QueryBuilder":
        nested = self._nested(callback)
        if nested:
            self.spec.wheres.append(nodes.Exists(nested, nodes.normalize_connector(connector), negated))
        return self

    def or_where_exists(self, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        return self.where_exists(callback, nodes.OR)

    def where_not_exists(self, callback: Callable[["QueryBuilder"], Any], connector: str = nodes.AND) -> "QueryBuilder":
        return self.where_exists(callback, connector, negated=True)

    def or_where_not_exists(self, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        return self.where_exists(callback, nodes.OR, negated=True)

    def optional(self, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        return self._group("optional", callback)

    def minus(self, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        return self._group("minus", callback)

    def where_nested(self, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        return self._group("group", callback)

    def service(self, endpoint: str, callback: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        """Evaluate the patterns built by ``callback`` at a remote SPARQL endpoint."""

        return self._group("service", callback, target=endpoint)

    def union(self, *callbacks: Callable[["QueryBuilder"], Any]) -> "QueryBuilder":
        """Add ``{ a } UNION { b } ...`` with one branch per callback.

        A union added right after another one extends it with more branches.
        """

        branches = tuple(branch for branch in (self._nested(callback) for callback in callbacks) if branch)
        if not branches:
            return self
        last = self.spec.wheres[-1] if self.spec.wheres else None
        if isinstance(last, nodes.Union):
            self.spec.wheres[-1] = nodes.Union(last.branches + branches, last.connector)
        else:
            self.spec.wheres.append(nodes.Union(branches))
        return self

    # SPARQL UNION never removes duplicate solutions.
    union_all = union

    def _group(self, kind: str, callback: Callable[["QueryBuilder"], Any], *, target: str | None = None) -> "QueryBuilder":
        nested = self._nested(callback)
        if nested:
            self.spec.wheres.append(nodes.Group(kind, nested, target=target))
        return self

    def _nested(self, callback: Callable[["QueryBuilder"], Any]) -> tuple[Any, ...]:
        nested = QueryBuilder(prefixes=self.prefixes, grammar=self.grammar, subject=self.spec.subject)
        callback(nested)
        return tuple(nested.spec.wheres)

    def bind(self, expression: str, variable: str, bindings: Any = None) -> "QueryBuilder":
        text, values = positional_bindings(expression, bindings)
        self.spec.binds.append(Bind(text, "?" + variable.lstrip("?$"), tuple(values)))
        return self

    def typed(self, variable: str, value: Any, datatype: str) -> "QueryBuilder":
        """Bind ``variable`` to ``STRDT(value, datatype)``.

        ``datatype`` is an XSD local name (``integer``, ``dateTime``...), a
        prefixed name or an IRI.
        """

        target = wrap_uri(xsd_datatype(datatype, self.prefixes))
        return self.bind(f"STRDT( ? , {target} )", variable, [_lexical(value)])

    def lang_tagged(self, variable: str, value: Any, lang: str) -> "QueryBuilder":
        if not _LANG_TAG_RE.match(str(lang)):
            raise CompilationError(f"Invalid language tag {lang!r}")
        return self.bind(f'STRLANG( ? , "{lang}" )', variable, [str(value)])

    def integer(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "integer")

    def decimal(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "decimal")

    def double(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "double")

    def boolean(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, bool(value), "boolean")

    def string(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "string")

    def date(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "date")

    def date_time(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "dateTime")

    def time(self, variable: str, value: Any) -> "QueryBuilder":
        return self.typed(variable, value, "time")

    def values(self, variables: str | Sequence[str], rows: Iterable[Any]) -> "QueryBuilder":
        if isinstance(variables, str):
            variables = [variables]
        names = tuple(variables)
        normalized = []
        for row in rows:
            row = tuple(row) if isinstance(row, (list, tuple)) else (row,)
            if len(row) != len(names):
                raise CompilationError(
                    f"VALUES row {row!r} does not match variables {names!r}"
                )
            normalized.append(row)
        self.spec.values.append(ValuesBlock(names, tuple(normalized)))
        return self

    # ------------------------------------------------------------------
    # grouping, ordering, slicing

    def group_by(self, *columns: str) -> "QueryBuilder":
        self.spec.groups.extend(_flatten(columns))
        return self

    def having(self, column: str, operator: Any, value: Any = _MISSING, connector: str = nodes.AND) -> "QueryBuilder":
        if value is _MISSING:
            operator, value = "=", operator
        self.spec.havings.append(
            nodes.Basic(column, nodes.normalize_operator(operator), value, nodes.normalize_connector(connector))
        )
        return self

    def having_raw(self, expression: str, bindings: Any = None, connector: str = nodes.AND) -> "QueryBuilder":
        text, values = positional_bindings(expression, bindings)
        self.spec.havings.append(nodes.Filter(text, nodes.normalize_connector(connector), tuple(values)))
        return self

    def order_by(self, column: str, direction: str = "asc") -> "QueryBuilder":
        self.spec.orders.append(Order(column, normalize_direction(direction)))
        return self

    def order_by_desc(self, column: str) -> "QueryBuilder":
        return self.order_by(column, "desc")

    def order_by_raw(self, expression: str) -> "QueryBuilder":
        self.spec.orders.append(Order(expression))
        return self

    def in_random_order(self) -> "QueryBuilder":
        return self.order_by_raw("RAND()")

    def limit(self, value: int) -> "QueryBuilder":
        self.spec.limit = max(0, int(value))
        return self

    take = limit

    def offset(self, value: int) -> "QueryBuilder":
        self.spec.offset = max(0, int(value))
        return self

    skip = offset

    def for_page(self, page: int, per_page: int = 15) -> "QueryBuilder":
        return self.offset((max(1, int(page)) - 1) * per_page).limit(per_page)

    def aggregate(self, function: str, column: str = "*", separator: str | None = None) -> "QueryBuilder":
        self.spec.aggregate = Aggregate.parse(function, column, separator)
        if not self.spec.groups:
            self.spec.orders = []
        return self

    # ------------------------------------------------------------------
    # compilation

    def compile(self) -> CompiledQuery:
        return self.grammar.compile_select(self.spec)

    def to_sql(self) -> str:
        return self.compile().text

    def get_bindings(self) -> list[Any]:
        return self.compile().bindings

    def to_sparql(self) -> str:
        """Compiled SELECT text with every placeholder substituted."""

        text, bindings = self.compile()
        return bind_values(text, bindings, self.prefixes)

    def clone(self) -> "QueryBuilder":
        duplicate = QueryBuilder(
            self.connection, prefixes=self.prefixes, grammar=self.grammar, subject=self.spec.subject
        )
        duplicate.spec = copy.deepcopy(self.spec)
        duplicate.cache_ttl = self.cache_ttl
        duplicate.remembered = self.remembered
        return duplicate

    # ------------------------------------------------------------------
    # caching

    def remember(self, ttl: float | None = None) -> "QueryBuilder":
        if ttl is None and self.connection is not None:
            ttl = self.connection.config.cache_ttl
        self.remembered = True
        self.cache_ttl = None if ttl is None or ttl < 0 else ttl
        return self

    def remember_forever(self) -> "QueryBuilder":
        return self.remember(-1)

    def dont_remember(self) -> "QueryBuilder":
        self.remembered = False
        self.cache_ttl = None
        return self

    def cache_key(self) -> str:
        text, bindings = self.compile()
        return self._connection().cache_key(text, bindings)

    # ------------------------------------------------------------------
    # execution

    def get(self, *columns: Any) -> "ResultSet":
        builder = self.clone().select(*columns) if columns else self
        compiled = builder.compile()
        return builder._run(
            lambda conn: conn.select(
                compiled.text,
                compiled.bindings,
                cache=builder.remembered,
                ttl=builder.cache_ttl,
            )
        )

    def first(self) -> "Row | None":
        return self.clone().limit(1).get().first()

    def exists(self) -> bool:
        compiled = self.grammar.compile_ask(self.spec)
        return bool(self._run(lambda conn: conn.ask(compiled.text, compiled.bindings)))

    def count(self, column: str = "*") -> int:
        return self._aggregate_value("COUNT", column, default=0)

    def sum(self, column: str) -> int | float:
        return self._aggregate_value("SUM", column, default=0)

    def avg(self, column: str) -> int | float | None:
        return self._aggregate_value("AVG", column)

    def min(self, column: str) -> Any:
        return self._aggregate_value("MIN", column)

    def max(self, column: str) -> Any:
        return self._aggregate_value("MAX", column)

    def sample(self, column: str) -> Any:
        return self._aggregate_value("SAMPLE", column)

    def group_concat(self, column: str, separator: str | None = None) -> str | None:
        value = self._aggregate_value("GROUP_CONCAT", column, separator=separator)
        return None if value is None else str(value)

    def construct(self, template: Any = None) -> str:
        compiled = self.grammar.compile_construct(self.spec, template)
        return self._run(lambda conn: conn.construct(compiled.text, compiled.bindings))

    def describe(self, resources: Sequence[Any] | None = None) -> str:
        compiled = self.grammar.compile_describe(self.spec, resources)
        return self._run(lambda conn: conn.construct(compiled.text, compiled.bindings))

    def delete(self, template: Any = None) -> None:
        compiled = self.grammar.compile_delete_where(self.spec, template)
        self._run(lambda conn: conn.update(compiled.text, compiled.bindings))

    def insert_batch(self, records: Iterable[Mapping[str, Any]]) -> int:
        records = list(records)
        if not records:
            return 0
        compiled = self.grammar.compile_insert_batch(records, self.spec.graph, self.spec.table)
        self._run(lambda conn: conn.update(compiled.text))
        return len(records)

    def delete_batch(self, uris: Iterable[Any]) -> int:
        uris = list(uris)
        if not uris:
            return 0
        compiled = self.grammar.compile_delete_batch(uris, self.spec.graph)
        self._run(lambda conn: conn.update(compiled.text))
        return len(uris)

    def _aggregate_value(self, function: str, column: str, *, separator: str | None = None, default: Any = None) -> Any:
        builder = self.clone().aggregate(function, column, separator)
        row = builder.get().first()
        term = row.get("aggregate") if row is not None else None
        if term is None:
            return default
        return _to_number(term)

    def _connection(self) -> "Connection":
        if self.connection is None:
            raise CompilationError("this builder is not attached to a connection")
        return self.connection

    def _run(self, call: Callable[["Connection"], Any]) -> Any:
        connection = self._connection()
        if self.spec.namespace is None:
            return call(connection)
        with connection.namespace_scope(self.spec.namespace):
            return call(connection)

    def __repr__(self) -> str:
        return f"QueryBuilder({self.to_sql()!r})"


def _to_number(term: Term) -> Any:
    if term.kind in (TermKind.NUMERIC, TermKind.BOOLEAN):
        return term.value
    text = str(term.value)
    if re.fullmatch(r"[-+]?\d+", text):
        return int(text)
    if re.fullmatch(r"[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?", text):
        return float(text)
    return text


def _lexical(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _flatten(columns: Iterable[Any]) -> Iterable[Any]:
    for column in columns:
        if isinstance(column, (list, tuple)):
            yield from column
        else:
            yield column


__all__ = ["QueryBuilder", "like_to_regex"]
