from __future__ import annotations

"""Plain W3C SPARQL 1.1 / Graph Store Protocol server."""

import re

from sparqlBridge.triplestore.base import TripleStoreAdapter

_SERVICE_RE = re.compile(r"^(.+?)/(sparql|update|query)$")


class GenericAdapter(TripleStoreAdapter):
    name = "generic"
    graph_parameter = "graph"
    ntriples_content_type = "application/n-triples"

    def derive_gsp_endpoint(self, endpoint: str) -> str:
        trimmed = endpoint.rstrip("/")
        match = _SERVICE_RE.match(trimmed)
        if match:
            return f"{match.group(1)}/data"
        if trimmed.endswith("/data"):
            return trimmed
        return f"{trimmed}/data"


__all__ = ["GenericAdapter"]
