from __future__ import annotations

"""Blazegraph: one ``/namespace/{name}/sparql`` endpoint per namespace."""

import re
from typing import Any, Mapping

import requests

from sparqlBridge.triplestore.base import TripleStoreAdapter, is_success_status, validate_namespace

_NAMESPACE_PATH_RE = re.compile(r"^(.*)/namespace/([^/]+)(?:/sparql)?/?$")
_MODIFIED_RE = re.compile(r'modified="(\d+)"')
NAMESPACE_PROPERTY = "com.bigdata.rdf.sail.namespace"


class BlazegraphAdapter(TripleStoreAdapter):
    name = "blazegraph"
    graph_parameter = "context-uri"
    ntriples_content_type = "text/plain"

    def derive_gsp_endpoint(self, endpoint: str) -> str:
        # bulk loads go to the SPARQL endpoint itself
        return endpoint.rstrip("/")

    def is_success_response(self, status: int, body: str | None = None) -> bool:
        """Any 2xx; mutation responses look like ``<data modified="N" .../>``
        and ``modified="0"`` still counts as success."""

        return is_success_status(status)

    def modified_count(self, body: str | None) -> int | None:
        match = _MODIFIED_RE.search(body or "")
        return int(match.group(1)) if match else None

    def supports_namespaces(self) -> bool:
        return True

    def service_root(self, endpoint: str) -> str:
        """Strip any ``/namespace/{name}`` segment and the ``/sparql`` suffix."""

        trimmed = endpoint.rstrip("/")
        match = _NAMESPACE_PATH_RE.match(trimmed)
        if match:
            return match.group(1)
        if trimmed.endswith("/sparql"):
            return trimmed[: -len("/sparql")]
        return trimmed

    def build_namespace_endpoint(self, endpoint: str, namespace: str, *, service: str = "sparql") -> str:
        validate_namespace(namespace)
        return f"{self.service_root(endpoint)}/namespace/{namespace}/sparql"

    def extract_namespace(self, endpoint: str) -> str | None:
        match = _NAMESPACE_PATH_RE.match(endpoint.rstrip("/"))
        return match.group(2) if match else None

    def create_namespace(
        self,
        session: requests.Session,
        endpoint: str,
        namespace: str,
        properties: Mapping[str, Any] | None = None,
        *,
        timeout: float = 15,
    ) -> bool:
        validate_namespace(namespace)
        lines = [f"{NAMESPACE_PROPERTY}={namespace}"]
        for key, value in (properties or {}).items():
            if key != NAMESPACE_PROPERTY:
                lines.append(f"{key}={value}")
        url = f"{self.service_root(endpoint)}/namespace"
        response = self._request(
            session,
            "POST",
            url,
            data="\n".join(lines).encode("utf-8"),
            headers={"Content-Type": "text/plain"},
            timeout=timeout,
        )
        return self._check(response, url, tolerate=(409,))

    def delete_namespace(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        validate_namespace(namespace)
        url = f"{self.service_root(endpoint)}/namespace/{namespace}"
        response = self._request(session, "DELETE", url, timeout=timeout)
        return self._check(response, url, tolerate=(404,))

    def namespace_exists(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        validate_namespace(namespace)
        url = f"{self.service_root(endpoint)}/namespace/{namespace}"
        response = self._request(session, "GET", url, timeout=timeout)
        return self._check(response, url, tolerate=(404,))


__all__ = ["BlazegraphAdapter", "NAMESPACE_PROPERTY"]
