from __future__ import annotations

import os

import pytest
from pytest_socket import disable_socket, enable_socket

from sparqlBridge.connection import Connection

_ENV_VARS = (
    "SPARQLBRIDGE_CONFIG",
    "SPARQL_ENDPOINT",
    "SPARQL_UPDATE_ENDPOINT",
    "SPARQL_IMPLEMENTATION",
    "SPARQL_GRAPH",
    "SPARQL_NAMESPACE",
)

FUSEKI_ENDPOINT = "http://localhost:3030/ds/sparql"
BLAZEGRAPH_ENDPOINT = "http://localhost:9999/blazegraph/sparql"


@pytest.fixture(autouse=True)
def _disable_network():
    """All HTTP in the suite goes through requests_mock."""

    if os.getenv("PYTEST_ALLOW_NETWORK", "0") == "1":
        yield
        return
    disable_socket()
    try:
        yield
    finally:
        enable_socket()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def fuseki():
    conn = Connection({"endpoint": FUSEKI_ENDPOINT, "implementation": "fuseki"})
    yield conn
    conn.close()


@pytest.fixture()
def blazegraph():
    conn = Connection({"endpoint": BLAZEGRAPH_ENDPOINT, "implementation": "blazegraph"})
    yield conn
    conn.close()
