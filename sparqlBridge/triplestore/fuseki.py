from __future__ import annotations

"""Apache Jena Fuseki: datasets act as namespaces."""

import json
from typing import Any, Mapping

import requests

from sparqlBridge.triplestore.base import TripleStoreAdapter, is_success_status, validate_namespace

DEFAULT_DB_TYPE = "tdb2"
_COUNT_FIELDS = ("count", "tripleCount", "quadCount")


class FusekiAdapter(TripleStoreAdapter):
    name = "fuseki"
    graph_parameter = "graph"
    ntriples_content_type = "application/n-triples; charset=utf-8"

    def derive_gsp_endpoint(self, endpoint: str) -> str:
        return self.remove_service_suffix(endpoint.rstrip("/"))

    def derive_update_endpoint(self, endpoint: str) -> str:
        trimmed = endpoint.rstrip("/")
        for suffix in ("/sparql", "/query"):
            if trimmed.endswith(suffix):
                return trimmed[: -len(suffix)] + "/update"
        return endpoint

    def is_success_response(self, status: int, body: str | None = None) -> bool:
        """2xx, and when the body is JSON it must report a triple count."""

        if not is_success_status(status):
            return False
        if not body or not body.strip():
            return True
        try:
            payload = json.loads(body)
        except ValueError:
            return True
        if isinstance(payload, dict):
            return any(field in payload for field in _COUNT_FIELDS)
        return True

    def supports_namespaces(self) -> bool:
        return True

    def build_namespace_endpoint(self, endpoint: str, namespace: str, *, service: str = "sparql") -> str:
        validate_namespace(namespace)
        return f"{self.base_url(endpoint)}/{namespace}/{service}"

    def extract_namespace(self, endpoint: str) -> str | None:
        name = self.extract_dataset_name(endpoint)
        if name is None or name == "$":
            return None
        return name

    def admin_url(self, endpoint: str, namespace: str | None = None) -> str:
        url = f"{self.base_url(endpoint)}/$/datasets"
        return f"{url}/{namespace}" if namespace else url

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
        props = dict(properties or {})
        url = self.admin_url(endpoint)
        data = {"dbName": namespace, "dbType": props.pop("dbType", DEFAULT_DB_TYPE)}
        auth = None
        if props.get("username"):
            auth = (props.pop("username"), props.pop("password", ""))
        response = self._request(session, "POST", url, data=data, auth=auth, timeout=timeout)
        # 409: dataset already present
        return self._check(response, url, tolerate=(409,))

    def delete_namespace(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        validate_namespace(namespace)
        url = self.admin_url(endpoint, namespace)
        response = self._request(session, "DELETE", url, timeout=timeout)
        return self._check(response, url, tolerate=(404,))

    def namespace_exists(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        validate_namespace(namespace)
        url = self.admin_url(endpoint, namespace)
        response = self._request(session, "GET", url, timeout=timeout)
        return self._check(response, url, tolerate=(404,))


__all__ = ["DEFAULT_DB_TYPE", "FusekiAdapter"]
