import pytest
import requests

from sparqlBridge.errors import ConfigurationError
from sparqlBridge.triplestore.generic import GenericAdapter


@pytest.mark.parametrize(
    "endpoint, expected",
    [
        ("http://localhost:8890/sparql", "http://localhost:8890/data"),
        ("http://localhost:8890/sparql/", "http://localhost:8890/data"),
        ("http://localhost:8890/ds/update", "http://localhost:8890/ds/data"),
        ("http://localhost:8890/ds/query", "http://localhost:8890/ds/data"),
        ("http://localhost:8890/test", "http://localhost:8890/test/data"),
        ("http://localhost:8890/test/", "http://localhost:8890/test/data"),
        ("http://localhost:8890/test/data", "http://localhost:8890/test/data"),
    ],
)
def test_gsp_endpoint(endpoint, expected):
    assert GenericAdapter().derive_gsp_endpoint(endpoint) == expected


def test_defaults():
    adapter = GenericAdapter()
    assert adapter.build_gsp_url("http://localhost:8890/data", "http://g") == (
        "http://localhost:8890/data?graph=http%3A%2F%2Fg"
    )
    assert adapter.ntriples_content_type == "application/n-triples"
    assert adapter.is_success_response(201, "")
    assert not adapter.is_success_response(404, "")
    assert adapter.derive_update_endpoint("http://localhost:8890/sparql") == "http://localhost:8890/sparql"


def test_no_namespace_support():
    adapter = GenericAdapter()
    endpoint = "http://localhost:8890/sparql"
    assert not adapter.supports_namespaces()
    assert adapter.build_namespace_endpoint(endpoint, "kb") == endpoint
    assert adapter.extract_namespace(endpoint) is None
    with pytest.raises(ConfigurationError):
        adapter.create_namespace(requests.Session(), endpoint, "kb")
    with pytest.raises(ConfigurationError):
        adapter.namespace_exists(requests.Session(), endpoint, "kb")
