from __future__ import annotations

"""Execution gateway between compiled SPARQL and a triple store.

One :class:`Connection` owns a :class:`requests.Session`, the adapter for
the configured vendor, the prefix table and an optional result cache. Every
call maps to exactly one HTTP request; nothing is retried.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Sequence, TypeVar

import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

from sparqlBridge.bindings import (
    ASK,
    CONSTRUCT,
    DESCRIBE,
    UPDATE,
    bind_values,
    positional_bindings,
    statement_kind,
)
from sparqlBridge.cache import ResultCache, cache_key
from sparqlBridge.config import ConnectionConfig, config_from_mapping
from sparqlBridge.errors import ConfigurationError, ProtocolError
from sparqlBridge.ntriples import to_ntriples
from sparqlBridge.query.builder import QueryBuilder
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.results import AskResult, ResultSet, Row
from sparqlBridge.triplestore import get_adapter
from sparqlBridge.triplestore.base import TripleStoreAdapter, validate_namespace
from sparqlBridge.utils.log_json import JsonLogger

logger = logging.getLogger(__name__)
_events = JsonLogger("connection")

RESULTS_JSON = "application/sparql-results+json"
NTRIPLES = "application/n-triples"

T = TypeVar("T")


class Connection:
    """SPARQL query/update gateway for a single triple store."""

    def __init__(
        self,
        config: ConnectionConfig | Mapping[str, Any] | None = None,
        *,
        session: requests.Session | None = None,
        cache: ResultCache | None = None,
        adapter: TripleStoreAdapter | None = None,
    ) -> None:
        if config is None or isinstance(config, Mapping):
            config = config_from_mapping(config)
        self.config = config
        self.adapter = adapter or get_adapter(config.implementation)
        self.prefixes = PrefixTable(config.prefixes)
        self.cache = cache if cache is not None else ResultCache()
        self.session = session or requests.Session()
        if config.auth.enabled:
            auth_cls = HTTPDigestAuth if config.auth.type == "digest" else HTTPBasicAuth
            self.session.auth = auth_cls(config.auth.username, config.auth.password or "")
        self._namespace: str | None = None
        if config.namespace:
            self.set_namespace(config.namespace)

    # ------------------------------------------------------------------
    # endpoints and namespaces

    @property
    def query_endpoint(self) -> str:
        if self._namespace is None:
            return self.config.endpoint
        return self.adapter.build_namespace_endpoint(self.config.endpoint, self._namespace)

    @property
    def update_endpoint(self) -> str:
        if self._namespace is not None:
            base = self.config.update_endpoint or self.config.endpoint
            return self.adapter.build_namespace_endpoint(base, self._namespace, service="update")
        if self.config.update_endpoint:
            return self.config.update_endpoint
        return self.adapter.derive_update_endpoint(self.config.endpoint)

    @property
    def gsp_endpoint(self) -> str:
        return self.adapter.derive_gsp_endpoint(self.query_endpoint)

    def gsp_url(self, graph: str | None = None) -> str:
        return self.adapter.build_gsp_url(self.gsp_endpoint, graph or self.config.graph)

    def get_namespace(self) -> str | None:
        if self._namespace is not None:
            return self._namespace
        return self.adapter.extract_namespace(self.config.endpoint)

    def set_namespace(self, namespace: str | None) -> "Connection":
        """Point query and update traffic at ``namespace`` (``None`` resets)."""

        if namespace is None:
            self._namespace = None
            return self
        validate_namespace(namespace)
        self._require_namespaces()
        self._namespace = namespace
        logger.debug("namespace %s -> %s", namespace, self.query_endpoint)
        return self

    namespace = set_namespace

    @contextmanager
    def namespace_scope(self, namespace: str) -> Iterator["Connection"]:
        """Temporarily switch namespace; the previous one is always restored."""

        previous = self._namespace
        self.set_namespace(namespace)
        try:
            yield self
        finally:
            self._namespace = previous

    def within_namespace(self, namespace: str, callback: Callable[["Connection"], T]) -> T:
        with self.namespace_scope(namespace):
            return callback(self)

    def add_prefix(self, prefix: str, iri: str) -> "Connection":
        self.prefixes.register(prefix, iri)
        return self

    # ------------------------------------------------------------------
    # builder entry points

    def query(self) -> QueryBuilder:
        builder = QueryBuilder(self)
        if self.config.graph:
            builder.graph(self.config.graph)
        return builder

    def table(self, table: str) -> QueryBuilder:
        return self.query().from_(table)

    # ------------------------------------------------------------------
    # execution

    def prepare(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> str:
        """Substitute named or positional bindings into ``text``."""

        text, values = positional_bindings(text, bindings)
        return bind_values(text, values, self.prefixes)

    def cache_key(self, text: str, bindings: Sequence[Any] | None = None) -> str:
        identity = f"{self.adapter.name}|{self.query_endpoint}|{self.config.auth.username or ''}"
        return cache_key(identity, text, bindings)

    def select(
        self,
        text: str,
        bindings: Mapping[str, Any] | Sequence[Any] | None = None,
        *,
        cache: bool = False,
        ttl: float | None = None,
    ) -> ResultSet | AskResult | bool:
        """Run a SELECT; ASK text returns an :class:`AskResult` and update
        statements go to the update endpoint instead."""

        kind = statement_kind(text)
        if kind == ASK:
            return self.ask(text, bindings)
        if kind == UPDATE:
            return self.update(text, bindings)
        query = self.prepare(text, bindings)
        if not cache:
            return ResultSet.from_json(self._get_json(query))
        key = self.cache_key(query)
        result, hit = self.cache.remember(key, ttl, lambda: ResultSet.from_json(self._get_json(query)))
        if hit:
            _events.debug("cache.hit", vendor=self.adapter.name, key=key[:16])
        return result

    def cursor(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> Iterator[Row]:
        yield from self.select(text, bindings)

    def ask(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> AskResult:
        payload = self._get_json(self.prepare(text, bindings))
        return AskResult(bool(payload.get("boolean", False)))

    def construct(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> str:
        query = self.prepare(text, bindings)
        response = self._send("GET", self.query_endpoint, params={"query": query}, headers={"Accept": NTRIPLES})
        return response.text

    def update(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> bool:
        statement = self.prepare(text, bindings)
        self._send(
            "POST",
            self.update_endpoint,
            data={"update": statement},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return True

    statement = update

    def run(self, text: str, bindings: Mapping[str, Any] | Sequence[Any] | None = None) -> Any:
        """Dispatch on the statement form: update, ask, construct/describe or select."""

        kind = statement_kind(text)
        if kind == UPDATE:
            return self.update(text, bindings)
        if kind == ASK:
            return self.ask(text, bindings)
        if kind in (CONSTRUCT, DESCRIBE):
            return self.construct(text, bindings)
        return self.select(text, bindings)

    # ------------------------------------------------------------------
    # graph store protocol

    def insert_graph(self, data: Any, graph: str | None = None) -> bool:
        """POST triples to the graph store, adding to ``graph``."""

        return self._gsp("POST", graph, data)

    def replace_graph(self, data: Any, graph: str | None = None) -> bool:
        """PUT triples to the graph store, replacing ``graph``."""

        return self._gsp("PUT", graph, data)

    def delete_graph(self, graph: str | None = None) -> bool:
        return self._gsp("DELETE", graph, None)

    def _gsp(self, method: str, graph: str | None, data: Any) -> bool:
        url = self.gsp_url(graph)
        kwargs: dict[str, Any] = {}
        if data is not None:
            payload = to_ntriples(data, self.prefixes)
            kwargs["data"] = payload.encode("utf-8")
            kwargs["headers"] = {"Content-Type": self.adapter.ntriples_content_type}
        _events.info("gsp.request", vendor=self.adapter.name, method=method, url=url)
        started = time.perf_counter()
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as exc:
            _events.error("gsp.error", vendor=self.adapter.name, method=method, url=url, error=str(exc))
            raise ProtocolError(self.adapter.name, url, str(exc)) from exc
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        _events.info(
            "gsp.response",
            vendor=self.adapter.name,
            method=method,
            url=url,
            status=response.status_code,
            latency_ms=latency_ms,
            modified=self.adapter.modified_count(response.text),
        )
        if not self.adapter.is_success_response(response.status_code, response.text):
            raise ProtocolError(
                self.adapter.name,
                url,
                response.text[:500] or "bulk operation rejected",
                status=response.status_code,
            )
        return True

    # ------------------------------------------------------------------
    # namespace administration

    def create_namespace(self, namespace: str, properties: Mapping[str, Any] | None = None) -> bool:
        validate_namespace(namespace)
        self._require_namespaces()
        created = self.adapter.create_namespace(
            self.session, self.config.endpoint, namespace, properties, timeout=self.config.timeout
        )
        _events.info("namespace.create", vendor=self.adapter.name, namespace=namespace, created=created)
        return created

    def delete_namespace(self, namespace: str) -> bool:
        validate_namespace(namespace)
        self._require_namespaces()
        deleted = self.adapter.delete_namespace(
            self.session, self.config.endpoint, namespace, timeout=self.config.timeout
        )
        _events.info("namespace.delete", vendor=self.adapter.name, namespace=namespace, deleted=deleted)
        return deleted

    def namespace_exists(self, namespace: str) -> bool:
        validate_namespace(namespace)
        self._require_namespaces()
        return self.adapter.namespace_exists(
            self.session, self.config.endpoint, namespace, timeout=self.config.timeout
        )

    def _require_namespaces(self) -> None:
        if not self.adapter.supports_namespaces():
            raise ConfigurationError(f"The {self.adapter.name} adapter does not support namespaces")

    # ------------------------------------------------------------------
    # transport

    def _get_json(self, query: str) -> dict[str, Any]:
        response = self._send(
            "GET", self.query_endpoint, params={"query": query}, headers={"Accept": RESULTS_JSON}
        )
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(self.adapter.name, self.query_endpoint, "Invalid JSON response") from exc

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        _events.info("sparql.request", vendor=self.adapter.name, method=method, url=url)
        started = time.perf_counter()
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as exc:
            _events.error("sparql.error", vendor=self.adapter.name, method=method, url=url, error=str(exc))
            raise ProtocolError(self.adapter.name, url, str(exc)) from exc
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        _events.info(
            "sparql.response",
            vendor=self.adapter.name,
            method=method,
            url=url,
            status=response.status_code,
            latency_ms=latency_ms,
        )
        if not 200 <= response.status_code < 300:
            raise ProtocolError(
                self.adapter.name, url, response.text[:500], status=response.status_code
            )
        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Connection", "NTRIPLES", "RESULTS_JSON"]
