import pytest
import requests

from sparqlBridge.errors import ProtocolError
from sparqlBridge.triplestore.blazegraph import BlazegraphAdapter

ENDPOINT = "http://localhost:9999/blazegraph/sparql"


@pytest.fixture()
def adapter():
    return BlazegraphAdapter()


def test_gsp_uses_sparql_endpoint(adapter):
    assert adapter.derive_gsp_endpoint(ENDPOINT) == ENDPOINT
    assert adapter.derive_gsp_endpoint(ENDPOINT + "/") == ENDPOINT
    assert adapter.derive_update_endpoint(ENDPOINT) == ENDPOINT


def test_gsp_url_uses_context_uri(adapter):
    url = adapter.build_gsp_url(ENDPOINT, "http://g")
    assert url == ENDPOINT + "?context-uri=http%3A%2F%2Fg"
    assert "graph=" not in url


def test_modified_zero_is_success(adapter):
    assert adapter.is_success_response(200, '<data modified="0" milliseconds="3"/>')
    assert not adapter.is_success_response(500, '<data modified="5"/>')
    assert adapter.modified_count('<data modified="7" milliseconds="1"/>') == 7
    assert adapter.modified_count("") is None
    assert adapter.ntriples_content_type == "text/plain"


@pytest.mark.parametrize(
    "endpoint, namespace, expected",
    [
        (
            "http://localhost:9090/bigdata/sparql",
            "tenant_X_ds_Y",
            "http://localhost:9090/bigdata/namespace/tenant_X_ds_Y/sparql",
        ),
        (
            "http://localhost:9090/bigdata/namespace/kb/sparql",
            "other",
            "http://localhost:9090/bigdata/namespace/other/sparql",
        ),
        (
            "http://example.com/my/custom/blazegraph/sparql",
            "test_namespace",
            "http://example.com/my/custom/blazegraph/namespace/test_namespace/sparql",
        ),
        (
            "http://localhost:9090/bigdata",
            "kb",
            "http://localhost:9090/bigdata/namespace/kb/sparql",
        ),
    ],
)
def test_namespace_endpoint(adapter, endpoint, namespace, expected):
    assert adapter.build_namespace_endpoint(endpoint, namespace) == expected


def test_extract_namespace(adapter):
    assert adapter.extract_namespace("http://localhost:9090/bigdata/namespace/kb/sparql") == "kb"
    assert adapter.extract_namespace("http://localhost:9090/bigdata/namespace/kb") == "kb"
    assert adapter.extract_namespace(ENDPOINT) is None
    assert not adapter.is_namespace_endpoint(ENDPOINT)


def test_create_namespace_posts_properties(adapter, requests_mock):
    requests_mock.post("http://localhost:9999/blazegraph/namespace", status_code=201)
    created = adapter.create_namespace(
        requests.Session(), ENDPOINT, "tenant1", {"com.bigdata.rdf.store.AbstractTripleStore.quads": "true"}
    )
    assert created is True
    sent = requests_mock.last_request
    body = sent.body.decode("utf-8")
    assert body.splitlines()[0] == "com.bigdata.rdf.sail.namespace=tenant1"
    assert "com.bigdata.rdf.store.AbstractTripleStore.quads=true" in body
    assert sent.headers["Content-Type"] == "text/plain"


def test_create_existing_namespace(adapter, requests_mock):
    requests_mock.post("http://localhost:9999/blazegraph/namespace", status_code=409)
    assert adapter.create_namespace(requests.Session(), ENDPOINT, "tenant1") is False


def test_delete_and_check_namespace(adapter, requests_mock):
    url = "http://localhost:9999/blazegraph/namespace/tenant1"
    requests_mock.delete(url, status_code=200)
    requests_mock.get(url, status_code=404)
    session = requests.Session()
    assert adapter.delete_namespace(session, ENDPOINT, "tenant1") is True
    assert adapter.namespace_exists(session, ENDPOINT, "tenant1") is False


def test_admin_transport_failure(adapter, requests_mock):
    requests_mock.get(
        "http://localhost:9999/blazegraph/namespace/tenant1",
        exc=requests.exceptions.ConnectTimeout,
    )
    with pytest.raises(ProtocolError) as excinfo:
        adapter.namespace_exists(requests.Session(), ENDPOINT, "tenant1")
    assert "blazegraph" in str(excinfo.value)
