from __future__ import annotations

"""Shared behaviour for per-vendor triple store adapters.

Adapters are stateless: they derive URLs, judge bulk responses and, when
the vendor supports it, talk to the administrative namespace API through
the :class:`requests.Session` handed to them by the connection.
"""

import logging
import re
from typing import Any, Mapping
from urllib.parse import quote, urlsplit

import requests

from sparqlBridge.errors import ConfigurationError, ProtocolError

logger = logging.getLogger(__name__)

NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_-]+$")
SERVICE_SUFFIX_RE = re.compile(r"/(sparql|update|query|data)/?$")
DATASET_RE = re.compile(r"^https?://[^/]+/([^/]+)(?:/(?:sparql|update|query|data))?/?$")


def validate_namespace(namespace: str) -> str:
    """Return ``namespace`` if it only holds letters, digits, ``_`` or ``-``."""

    if not isinstance(namespace, str) or not NAMESPACE_RE.match(namespace):
        raise ConfigurationError(
            f"Invalid namespace {namespace!r}: only letters, digits, '_' and '-' are allowed"
        )
    return namespace


def is_success_status(status: int) -> bool:
    return 200 <= int(status) < 300


class TripleStoreAdapter:
    """Base adapter implementing the W3C defaults.

    Subclasses override the class attributes and the hooks that differ for
    their vendor; adding a vendor never requires touching another adapter.
    """

    name = "base"
    graph_parameter = "graph"
    ntriples_content_type = "application/n-triples"

    # ------------------------------------------------------------------
    # graph store protocol

    def derive_gsp_endpoint(self, endpoint: str) -> str:
        raise NotImplementedError

    def build_gsp_url(self, gsp_endpoint: str, graph: str | None = None) -> str:
        if not graph:
            return gsp_endpoint
        separator = "&" if "?" in gsp_endpoint else "?"
        return f"{gsp_endpoint}{separator}{self.graph_parameter}={quote(graph, safe='')}"

    def is_success_response(self, status: int, body: str | None = None) -> bool:
        return is_success_status(status)

    def modified_count(self, body: str | None) -> int | None:
        """Number of statements a bulk request changed, when the vendor reports it."""

        return None

    def derive_update_endpoint(self, endpoint: str) -> str:
        return endpoint

    def query_hints(self) -> list[str]:
        return []

    # ------------------------------------------------------------------
    # namespaces

    def supports_namespaces(self) -> bool:
        return False

    def build_namespace_endpoint(self, endpoint: str, namespace: str, *, service: str = "sparql") -> str:
        return endpoint

    def extract_namespace(self, endpoint: str) -> str | None:
        return None

    def is_namespace_endpoint(self, endpoint: str) -> bool:
        return self.extract_namespace(endpoint) is not None

    def create_namespace(
        self,
        session: requests.Session,
        endpoint: str,
        namespace: str,
        properties: Mapping[str, Any] | None = None,
        *,
        timeout: float = 15,
    ) -> bool:
        raise self._unsupported()

    def delete_namespace(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        raise self._unsupported()

    def namespace_exists(self, session: requests.Session, endpoint: str, namespace: str, *, timeout: float = 15) -> bool:
        raise self._unsupported()

    # ------------------------------------------------------------------
    # helpers

    def _unsupported(self) -> ConfigurationError:
        return ConfigurationError(f"The {self.name} adapter does not support namespaces")

    @staticmethod
    def base_url(endpoint: str) -> str:
        parts = urlsplit(endpoint)
        return f"{parts.scheme}://{parts.netloc}"

    @staticmethod
    def remove_service_suffix(endpoint: str) -> str:
        return SERVICE_SUFFIX_RE.sub("", endpoint).rstrip("/")

    @staticmethod
    def extract_dataset_name(endpoint: str) -> str | None:
        match = DATASET_RE.match(endpoint)
        return match.group(1) if match else None

    def _request(
        self,
        session: requests.Session,
        method: str,
        url: str,
        *,
        timeout: float,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            return session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            raise ProtocolError(self.name, url, str(exc)) from exc

    def _check(self, response: requests.Response, url: str, *, tolerate: tuple[int, ...] = ()) -> bool:
        """Raise unless the response is 2xx or one of the ``tolerate`` codes."""

        if is_success_status(response.status_code):
            return True
        if response.status_code in tolerate:
            logger.debug("%s tolerated HTTP %s for %s", self.name, response.status_code, url)
            return False
        raise ProtocolError(self.name, url, response.text[:500], status=response.status_code)


__all__ = [
    "NAMESPACE_RE",
    "TripleStoreAdapter",
    "is_success_status",
    "validate_namespace",
]
