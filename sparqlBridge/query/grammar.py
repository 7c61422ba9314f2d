from __future__ import annotations

"""Compile a :class:`QuerySpec` into SPARQL 1.1 query and update text.

Every user-supplied scalar in a condition becomes one ``?`` placeholder and
is appended to the returned binding list in text order; terms are inlined.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from rdflib.namespace import RDF
from rdflib.term import Identifier

from sparqlBridge.errors import CompilationError
from sparqlBridge.query import conditions as nodes
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.spec import Aggregate, QuerySpec, normalize_direction
from sparqlBridge.query.terms import Term, TermKind, classify
from sparqlBridge.query.wrapper import data_value, normalize_uri, wrap, wrap_term, wrap_uri

logger = logging.getLogger(__name__)

PLACEHOLDER = "?"
RDF_TYPE = str(RDF.type)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_]\w*$")
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_]")
_GRAPH_KEYWORDS = ("default", "named", "all")
_PATH_ELEMENT_RE = re.compile(r"<[^<>\s]*>|[^\s/|^*+?()!<>]+")
_PATH_IRI_RE = re.compile(r"<([^<>\s]*)>")
_LOOSE_OPTIONAL_RE = re.compile(r"(?<!>)\?")


@dataclass(slots=True)
class CompiledQuery:
    text: str
    bindings: list[Any] = field(default_factory=list)

    def __iter__(self):
        return iter((self.text, self.bindings))


class _Context:
    """Variable allocation shared by every clause of one compilation."""

    def __init__(self, spec: QuerySpec, prefixes: PrefixTable) -> None:
        self.subject = "?" + spec.subject.lstrip("?$")
        self.prefixes = prefixes
        self.variables: dict[str, str] = {}
        self.taken: set[str] = {self.subject[1:], "aggregate", "p", "o"}
        self.emitted: set[str] = set()
        self.needed: dict[str, bool] = {}

    def variable_for(self, predicate: str, *, hint: str | None = None) -> str:
        existing = self.variables.get(predicate)
        if existing:
            return existing
        local = re.split(r"[#/:]", (hint or predicate).rstrip("/#"))[-1]
        base = _NON_WORD_RE.sub("_", local) or "v"
        if base[0].isdigit():
            base = f"v{base}"
        name = base
        counter = 2
        while name in self.taken:
            name = f"{base}{counter}"
            counter += 1
        self.taken.add(name)
        self.variables[predicate] = f"?{name}"
        return self.variables[predicate]

    def resolve(self, column: Any) -> tuple[str, str | None]:
        """Return ``(sparql_ref, predicate)`` for a column name."""

        if isinstance(column, Term):
            if column.is_resource:
                predicate = normalize_uri(column.value)
                return self.variable_for(predicate), predicate
            return wrap_term(column, self.prefixes), None
        text = str(column).strip()
        if text.startswith(("?", "$")):
            return "?" + text[1:], None
        term = classify(text, self.prefixes)
        if term.is_resource:
            predicate = normalize_uri(term.value)
            return self.variable_for(predicate), predicate
        if _IDENTIFIER_RE.match(text):
            return f"?{text}", None
        return text, None

    def need(self, column: Any, *, optional: bool) -> str:
        ref, predicate = self.resolve(column)
        if predicate is not None:
            self.needed[predicate] = self.needed.get(predicate, True) and optional
        return ref

    def pattern(self, predicate: str, obj: str) -> str:
        return f"{self.subject} {wrap_uri(predicate)} {obj} ."


class Grammar:
    """Turn builder state into SPARQL text plus ordered placeholder values."""

    def __init__(self, prefixes: PrefixTable | None = None) -> None:
        self.prefixes = prefixes or PrefixTable()

    # ------------------------------------------------------------------
    # query forms

    def compile_select(self, spec: QuerySpec) -> CompiledQuery:
        ctx = _Context(spec, self.prefixes)
        select = self._compile_select_clause(spec, ctx)
        groups = self._compile_groups(spec, ctx)
        having_text, having_bindings = self._compile_havings(spec, ctx)
        orders = self._compile_orders(spec, ctx)
        where_text, bindings = self._compile_where(spec, ctx)
        parts = [select]
        parts.append(self._compile_from(spec))
        parts.append(f"WHERE {{ {where_text} }}")
        parts.extend([groups, having_text, orders, *self._compile_slice(spec)])
        text = " ".join(part for part in parts if part)
        logger.debug("compiled select: %s", text)
        return CompiledQuery(text, bindings + having_bindings)

    def compile_ask(self, spec: QuerySpec) -> CompiledQuery:
        ctx = _Context(spec, self.prefixes)
        where_text, bindings = self._compile_where(spec, ctx)
        parts = ["ASK", self._compile_from(spec), f"WHERE {{ {where_text} }}"]
        return CompiledQuery(" ".join(part for part in parts if part), bindings)

    def compile_construct(self, spec: QuerySpec, template: Any = None) -> CompiledQuery:
        ctx = _Context(spec, self.prefixes)
        orders = self._compile_orders(spec, ctx)
        where_text, bindings = self._compile_where(spec, ctx)
        if template is None:
            template_text = f"{ctx.subject} ?p ?o ."
            where_text = f"{where_text} {template_text}".strip()
        else:
            template_text = self._compile_template(template)
        parts = [
            f"CONSTRUCT {{ {template_text} }}",
            self._compile_from(spec),
            f"WHERE {{ {where_text} }}",
            orders,
            *self._compile_slice(spec),
        ]
        return CompiledQuery(" ".join(part for part in parts if part), bindings)

    def compile_describe(self, spec: QuerySpec, resources: Sequence[Any] | None = None) -> CompiledQuery:
        ctx = _Context(spec, self.prefixes)
        if resources:
            targets = " ".join(wrap(resource, self.prefixes) for resource in resources)
        else:
            targets = ctx.subject
        if resources and not spec.wheres and not spec.table:
            return CompiledQuery(f"DESCRIBE {targets}")
        where_text, bindings = self._compile_where(spec, ctx)
        parts = [
            f"DESCRIBE {targets}",
            self._compile_from(spec),
            f"WHERE {{ {where_text} }}",
            *self._compile_slice(spec),
        ]
        return CompiledQuery(" ".join(part for part in parts if part), bindings)

    # ------------------------------------------------------------------
    # update forms

    def compile_insert_data(self, triples: Iterable[Sequence[Any]], graph: str | None = None) -> CompiledQuery:
        return CompiledQuery(f"INSERT DATA {{ {self._graph_block(self._data_triples(triples), graph)} }}")

    def compile_delete_data(self, triples: Iterable[Sequence[Any]], graph: str | None = None) -> CompiledQuery:
        return CompiledQuery(f"DELETE DATA {{ {self._graph_block(self._data_triples(triples), graph)} }}")

    def compile_insert_where(self, spec: QuerySpec, template: Any) -> CompiledQuery:
        return self._compile_modify(spec, insert_template=template)

    def compile_delete_where(self, spec: QuerySpec, template: Any = None) -> CompiledQuery:
        """Delete ``template`` for every match, or every triple of each
        matched subject when no template is given."""

        if template is None:
            return self._compile_modify(spec, delete_subjects=True)
        return self._compile_modify(spec, delete_template=template)

    def compile_delete_insert(self, spec: QuerySpec, delete_template: Any, insert_template: Any) -> CompiledQuery:
        return self._compile_modify(spec, delete_template=delete_template, insert_template=insert_template)

    def _compile_modify(
        self,
        spec: QuerySpec,
        *,
        delete_template: Any = None,
        insert_template: Any = None,
        delete_subjects: bool = False,
    ) -> CompiledQuery:
        ctx = _Context(spec, self.prefixes)
        where_text, bindings = self._compile_where(spec, ctx)
        parts = []
        if spec.graph:
            parts.append(f"WITH {wrap_uri(spec.graph)}")
        if delete_subjects:
            delete_text = f"{ctx.subject} ?p ?o ."
            where_text = f"{where_text} {delete_text}".strip()
            parts.append(f"DELETE {{ {delete_text} }}")
        elif delete_template is not None:
            parts.append(f"DELETE {{ {self._compile_template(delete_template)} }}")
        if insert_template is not None:
            parts.append(f"INSERT {{ {self._compile_template(insert_template)} }}")
        if not delete_subjects and delete_template is None and insert_template is None:
            raise CompilationError("An update needs a DELETE or an INSERT template")
        parts.append(f"WHERE {{ {where_text} }}")
        return CompiledQuery(" ".join(parts), bindings)

    def compile_delete_batch(self, uris: Sequence[Any], graph: str | None = None) -> CompiledQuery:
        resources = [wrap(uri, self.prefixes) for uri in uris]
        if not resources:
            raise CompilationError("delete_batch needs at least one resource")
        prefix = f"WITH {wrap_uri(graph)} " if graph else ""
        members = ", ".join(resources)
        return CompiledQuery(
            f"{prefix}DELETE {{ ?s ?p ?o }} WHERE {{ ?s ?p ?o . FILTER(?s IN ({members})) }}"
        )

    def compile_insert_batch(
        self,
        records: Iterable[Mapping[str, Any]],
        graph: str | None = None,
        table: str | None = None,
    ) -> CompiledQuery:
        triples: list[tuple[Any, Any, Any]] = []
        for record in records:
            fields = dict(record)
            subject = fields.pop("@id", None) or fields.pop("id", None)
            if subject is None:
                raise CompilationError("every batch record needs an 'id'")
            if table:
                triples.append((subject, RDF_TYPE, classify(table, self.prefixes)))
            for predicate, value in fields.items():
                values = value if isinstance(value, (list, tuple, set)) else [value]
                for item in values:
                    if item is not None:
                        triples.append((subject, predicate, item))
        if not triples:
            raise CompilationError("insert_batch needs at least one record")
        return self.compile_insert_data(triples, graph)

    def compile_load(self, source: str, graph: str | None = None, *, silent: bool = False) -> CompiledQuery:
        text = f"LOAD{self._silent(silent)} {wrap_uri(source)}"
        if graph:
            text += f" INTO GRAPH {wrap_uri(graph)}"
        return CompiledQuery(text)

    def compile_clear(self, target: str = "default", *, silent: bool = False) -> CompiledQuery:
        return CompiledQuery(f"CLEAR{self._silent(silent)} {self._graph_ref(target)}")

    def compile_drop(self, target: str = "default", *, silent: bool = False) -> CompiledQuery:
        return CompiledQuery(f"DROP{self._silent(silent)} {self._graph_ref(target)}")

    def compile_create(self, graph: str, *, silent: bool = False) -> CompiledQuery:
        return CompiledQuery(f"CREATE{self._silent(silent)} GRAPH {wrap_uri(graph)}")

    def compile_transfer(self, operation: str, source: str, target: str, *, silent: bool = False) -> CompiledQuery:
        """``COPY``/``MOVE``/``ADD`` between the default graph and named graphs."""

        keyword = operation.strip().upper()
        if keyword not in ("COPY", "MOVE", "ADD"):
            raise CompilationError(f"Unknown graph transfer '{operation}'")
        return CompiledQuery(
            f"{keyword}{self._silent(silent)} {self._transfer_ref(source)} TO {self._transfer_ref(target)}"
        )

    # ------------------------------------------------------------------
    # clauses

    def _compile_select_clause(self, spec: QuerySpec, ctx: _Context) -> str:
        if spec.aggregate is not None:
            return f"SELECT {self._compile_aggregate(spec.aggregate, spec, ctx)}"
        keyword = "SELECT DISTINCT" if spec.distinct else "SELECT"
        columns = [column for column in spec.columns if column != "*"]
        if not columns:
            return f"{keyword} *"
        rendered = []
        for column in columns:
            if isinstance(column, Term) and column.kind is TermKind.RAW:
                rendered.append(str(column.value))
            else:
                rendered.append(ctx.need(column, optional=True))
        return f"{keyword} {' '.join(rendered)}"

    def _compile_aggregate(self, aggregate: Aggregate, spec: QuerySpec, ctx: _Context) -> str:
        if aggregate.column in ("*", None):
            if aggregate.function != "COUNT":
                raise CompilationError(f"{aggregate.function} needs a column")
            target = "*"
        else:
            target = ctx.need(aggregate.column, optional=False)
        if spec.distinct or aggregate.distinct:
            target = f"DISTINCT {target}"
        if aggregate.separator is not None:
            separator = aggregate.separator.replace("\\", "\\\\").replace('"', '\\"')
            inner = f'{aggregate.function}({target}; separator="{separator}")'
        else:
            inner = f"{aggregate.function}({target})"
        return f"({inner} as ?aggregate)"

    def _compile_from(self, spec: QuerySpec) -> str:
        return f"FROM {wrap_uri(spec.graph)}" if spec.graph else ""

    def _compile_where(self, spec: QuerySpec, ctx: _Context) -> tuple[str, list[Any]]:
        parts: list[str] = []
        bindings: list[Any] = []
        if spec.table:
            table = classify(spec.table, self.prefixes)
            parts.append(f"{ctx.subject} {wrap_uri(RDF_TYPE)} {wrap_term(table, self.prefixes)} .")
        text, condition_bindings = self._compile_conditions(spec.wheres, ctx, top=True)
        if text:
            parts.append(text)
        bindings.extend(condition_bindings)
        for predicate, optional in ctx.needed.items():
            if predicate in ctx.emitted:
                continue
            pattern = ctx.pattern(predicate, ctx.variables[predicate])
            parts.append(f"OPTIONAL {{ {pattern} }}" if optional else pattern)
        for bind in spec.binds:
            parts.append(f"BIND({bind.expression} AS ?{bind.variable.lstrip('?$')})")
            bindings.extend(bind.bindings)
        for block in spec.values:
            parts.append(self._compile_values(block))
        return " ".join(parts), bindings

    def _compile_values(self, block) -> str:
        variables = " ".join("?" + name.lstrip("?$") for name in block.variables)
        rows = " ".join(
            "(" + " ".join(data_value(value, self.prefixes) for value in row) + ")"
            for row in block.rows
        )
        return f"VALUES ({variables}) {{ {rows} }}"

    def _compile_conditions(
        self, conditions: Sequence[Any], ctx: _Context, *, top: bool
    ) -> tuple[str, list[Any]]:
        filter_nodes = [node for node in conditions if not isinstance(node, nodes.PATTERN_NODES)]
        fold = any(node.connector == nodes.OR for node in filter_nodes[1:])
        patterns: list[str] = []
        pattern_bindings: list[Any] = []
        filters: list[tuple[str, str, list[Any]]] = []
        seen: set[str] = set()

        def add_pattern(text: str, values: Sequence[Any] = ()) -> None:
            if not values and text in seen:
                return
            seen.add(text)
            patterns.append(text)
            pattern_bindings.extend(values)

        for node in conditions:
            if isinstance(node, nodes.Raw):
                add_pattern(node.pattern, node.bindings)
            elif isinstance(node, nodes.Triple):
                text, values = self._compile_triple(node)
                add_pattern(text, values)
            elif isinstance(node, nodes.Group):
                inner, values = self._compile_conditions(node.conditions, ctx, top=False)
                add_pattern(self._group_text(node, inner), values)
            elif isinstance(node, nodes.Union):
                branches = []
                values = []
                for branch in node.branches:
                    inner, branch_values = self._compile_conditions(branch, ctx, top=False)
                    branches.append(f"{{ {inner} }}")
                    values.extend(branch_values)
                add_pattern(" UNION ".join(branches), values)
            elif isinstance(node, nodes.Exists):
                inner, values = self._compile_conditions(node.conditions, ctx, top=False)
                keyword = "NOT EXISTS" if node.negated else "EXISTS"
                filters.append((node.connector, f"{keyword} {{ {inner} }}", values))
            elif isinstance(node, nodes.Path):
                self._compile_path_condition(node, ctx, fold=fold, add_pattern=add_pattern, filters=filters)
            elif isinstance(node, nodes.Filter):
                filters.append((node.connector, f"( {node.expression} )", list(node.bindings)))
            else:
                self._compile_column_condition(node, ctx, fold=fold, top=top, add_pattern=add_pattern, filters=filters)

        text_parts = list(patterns)
        filter_bindings: list[Any] = []
        if filters and fold:
            expression = filters[0][1]
            filter_bindings.extend(filters[0][2])
            for connector, expr, values in filters[1:]:
                operator = "||" if connector == nodes.OR else "&&"
                expression = f"( {expression} {operator} {expr} )"
                filter_bindings.extend(values)
            text_parts.append(f"FILTER( {expression} )")
        else:
            for _, expr, values in filters:
                text_parts.append(f"FILTER( {expr} )")
                filter_bindings.extend(values)
        return " ".join(text_parts), pattern_bindings + filter_bindings

    def _compile_column_condition(self, node, ctx: _Context, *, fold: bool, top: bool, add_pattern, filters) -> None:
        ref, predicate = ctx.resolve(node.column)

        def bind_pattern(optional: bool) -> None:
            if predicate is None:
                return
            pattern = ctx.pattern(predicate, ref)
            add_pattern(f"OPTIONAL {{ {pattern} }}" if optional else pattern)
            if top:
                ctx.emitted.add(predicate)

        if isinstance(node, nodes.Null):
            bind_pattern(True)
            filters.append((node.connector, f"!BOUND({ref})", []))
            return
        if isinstance(node, nodes.NotNull):
            if fold or predicate is None:
                bind_pattern(fold)
                filters.append((node.connector, f"BOUND({ref})", []))
            else:
                bind_pattern(False)
            return
        if isinstance(node, (nodes.In, nodes.NotIn)):
            bind_pattern(fold)
            values: list[Any] = []
            members = [self._value(value, values) for value in node.values]
            negated = isinstance(node, nodes.NotIn)
            if not members:
                filters.append((node.connector, "true" if negated else "false", []))
                return
            keyword = "NOT IN" if negated else "IN"
            filters.append((node.connector, f"{ref} {keyword} ( {' , '.join(members)} )", values))
            return
        if isinstance(node, nodes.Between):
            bind_pattern(fold)
            values = []
            low = self._value(node.low, values)
            high = self._value(node.high, values)
            if node.negated:
                expr = f"( {ref} < {low} || {ref} > {high} )"
            else:
                expr = f"( {ref} >= {low} && {ref} <= {high} )"
            filters.append((node.connector, expr, values))
            return
        if isinstance(node, nodes.Basic):
            operator = nodes.normalize_operator(node.operator)
            if operator == "=" and predicate is not None and not fold:
                values = []
                obj = self._value(node.value, values)
                pattern = ctx.pattern(predicate, obj)
                add_pattern(pattern, values)
                return
            bind_pattern(fold)
            values = []
            expr = self._operator_expression(ref, operator, node.value, values, node.column)
            filters.append((node.connector, expr, values))
            return
        raise CompilationError(f"Malformed condition node {node!r}")

    def _operator_expression(self, ref: str, operator: str, value: Any, values: list[Any], label: Any) -> str:
        if operator == "datatype":
            datatype = classify(value, self.prefixes)
            if not datatype.is_resource:
                raise CompilationError(f"DATATYPE filter on '{label}' needs an IRI")
            return f"DATATYPE({ref}) = {wrap_term(datatype)}"
        if operator.endswith("regex"):
            pattern = self._value(value, values)
            flags = ' , "i"' if operator.endswith("iregex") else ""
            negation = "!" if operator.startswith("not ") else ""
            return f"{negation}REGEX( {ref} , {pattern}{flags} )"
        if operator == "lang":
            return f"LANGMATCHES( LANG({ref}) , {self._value(value, values)} )"
        return f"{ref} {operator} {self._value(value, values)}"

    def _group_text(self, node: nodes.Group, inner: str) -> str:
        if node.kind == "group":
            return f"{{ {inner} }}"
        if node.kind == "service":
            if not node.target:
                raise CompilationError("SERVICE needs an endpoint IRI")
            return f"SERVICE {wrap(node.target, self.prefixes)} {{ {inner} }}"
        return f"{node.kind.upper()} {{ {inner} }}"

    def _compile_path(self, path: str) -> str:
        """Expand each path element to ``<iri>``; operators are kept as written."""

        def element(match: re.Match[str]) -> str:
            token = match.group(0)
            if token == "a":
                return token
            term = classify(token, self.prefixes)
            if not term.is_resource:
                raise CompilationError(f"'{token}' in property path '{path}' is not an IRI")
            return wrap_uri(str(term.value))

        text = _PATH_ELEMENT_RE.sub(element, str(path).strip())
        if not text:
            raise CompilationError("empty property path")
        if _LOOSE_OPTIONAL_RE.search(_PATH_IRI_RE.sub("<>", text)):
            raise CompilationError(
                f"property path '{path}': '?' is only supported directly after an IRI"
            )
        return text

    def _compile_path_condition(self, node: nodes.Path, ctx: _Context, *, fold: bool, add_pattern, filters) -> None:
        path = self._compile_path(node.path)
        operator = nodes.normalize_operator(node.operator)
        if operator == "=" and not fold:
            values: list[Any] = []
            obj = self._node_value(node.value, values)
            add_pattern(f"{ctx.subject} {path} {obj} .", values)
            return
        iris = _PATH_IRI_RE.findall(path)
        ref = ctx.variable_for(path, hint=iris[-1] if iris else None)
        pattern = f"{ctx.subject} {path} {ref} ."
        add_pattern(f"OPTIONAL {{ {pattern} }}" if fold else pattern)
        values = []
        expr = self._operator_expression(ref, operator, node.value, values, node.path)
        filters.append((node.connector, expr, values))

    def _compile_triple(self, node: nodes.Triple) -> tuple[str, list[Any]]:
        values: list[Any] = []
        subject = self._node_value(node.subject, values)
        obj = self._node_value(node.object, values)
        return f"{subject} {self._predicate(node.predicate)} {obj} .", values

    def _compile_groups(self, spec: QuerySpec, ctx: _Context) -> str:
        if not spec.groups:
            return ""
        return "GROUP BY " + " ".join(ctx.need(column, optional=False) for column in spec.groups)

    def _compile_havings(self, spec: QuerySpec, ctx: _Context) -> tuple[str, list[Any]]:
        if not spec.havings:
            return "", []
        bindings: list[Any] = []
        expression = ""
        for index, node in enumerate(spec.havings):
            values: list[Any] = []
            if isinstance(node, nodes.Filter):
                expr = f"( {node.expression} )"
                values.extend(node.bindings)
            else:
                ref = ctx.need(node.column, optional=False)
                operator = nodes.normalize_operator(node.operator)
                if operator not in nodes.COMPARISON_OPERATORS:
                    raise CompilationError(f"HAVING only supports comparisons, not '{operator}'")
                expr = f"{ref} {operator} {self._value(node.value, values)}"
            if index == 0:
                expression = expr
            else:
                joiner = "||" if node.connector == nodes.OR else "&&"
                expression = f"( {expression} {joiner} {expr} )"
            bindings.extend(values)
        return f"HAVING( {expression} )", bindings

    def _compile_orders(self, spec: QuerySpec, ctx: _Context) -> str:
        orders = spec.effective_orders()
        if not orders:
            return ""
        rendered = []
        for order in orders:
            if order.is_raw:
                rendered.append(str(order.column))
                continue
            direction = normalize_direction(order.direction)
            rendered.append(f"{direction.upper()}({ctx.need(order.column, optional=True)})")
        return "ORDER BY " + " ".join(rendered)

    def _compile_slice(self, spec: QuerySpec) -> list[str]:
        parts = []
        if spec.limit is not None:
            parts.append(f"LIMIT {max(0, int(spec.limit))}")
        if spec.offset:
            parts.append(f"OFFSET {max(0, int(spec.offset))}")
        return parts

    # ------------------------------------------------------------------
    # values

    def _value(self, value: Any, bindings: list[Any]) -> str:
        """Inline a term, or emit a placeholder and record the scalar."""

        if isinstance(value, (Term, Identifier)):
            return wrap_term(classify(value, self.prefixes), self.prefixes)
        bindings.append(value)
        return PLACEHOLDER

    def _node_value(self, value: Any, bindings: list[Any]) -> str:
        if isinstance(value, str):
            term = classify(value, self.prefixes)
            if term.kind in (TermKind.IRI, TermKind.URN, TermKind.BLANK, TermKind.VARIABLE):
                return wrap_term(term, self.prefixes)
        return self._value(value, bindings)

    def _predicate(self, predicate: Any) -> str:
        if isinstance(predicate, str) and predicate.strip() == "a":
            return "a"
        term = classify(predicate, self.prefixes)
        if term.kind is TermKind.VARIABLE:
            return wrap_term(term)
        return wrap_uri(str(term.value))

    def _data_triples(self, triples: Iterable[Sequence[Any]]) -> str:
        rendered = []
        for triple in triples:
            subject, predicate, obj = triple
            rendered.append(
                f"{wrap(subject, self.prefixes)} {self._predicate(predicate)} {data_value(obj, self.prefixes)} ."
            )
        if not rendered:
            raise CompilationError("no triples to write")
        return " ".join(rendered)

    def _compile_template(self, template: Any) -> str:
        if isinstance(template, str):
            return template.strip()
        rendered = []
        for subject, predicate, obj in template:
            rendered.append(
                f"{wrap(subject, self.prefixes)} {self._predicate(predicate)} {wrap(obj, self.prefixes)} ."
            )
        return " ".join(rendered)

    def _graph_block(self, body: str, graph: str | None) -> str:
        if graph:
            return f"GRAPH {wrap_uri(graph)} {{ {body} }}"
        return body

    @staticmethod
    def _silent(silent: bool) -> str:
        return " SILENT" if silent else ""

    @staticmethod
    def _graph_ref(target: str) -> str:
        if target.strip().lower() in _GRAPH_KEYWORDS:
            return target.strip().upper()
        return f"GRAPH {wrap_uri(target)}"

    @staticmethod
    def _transfer_ref(target: str) -> str:
        if target.strip().lower() == "default":
            return "DEFAULT"
        return f"GRAPH {wrap_uri(target)}"


__all__ = ["CompiledQuery", "Grammar", "PLACEHOLDER", "RDF_TYPE"]
