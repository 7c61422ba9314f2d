import pytest
import requests

from sparqlBridge.errors import ConfigurationError, ProtocolError
from sparqlBridge.triplestore.fuseki import FusekiAdapter

ENDPOINT = "http://localhost:3030/test/sparql"


@pytest.fixture()
def adapter():
    return FusekiAdapter()


def test_gsp_endpoint_is_dataset_root(adapter):
    assert adapter.derive_gsp_endpoint(ENDPOINT) == "http://localhost:3030/test"
    assert adapter.derive_gsp_endpoint(ENDPOINT + "/") == "http://localhost:3030/test"
    assert adapter.derive_gsp_endpoint("http://localhost:3030/test") == "http://localhost:3030/test"


def test_gsp_url_encodes_graph(adapter):
    gsp = adapter.derive_gsp_endpoint(ENDPOINT)
    assert adapter.build_gsp_url(gsp, "http://g") == "http://localhost:3030/test?graph=http%3A%2F%2Fg"
    assert adapter.build_gsp_url(gsp, None) == gsp


def test_update_endpoint(adapter):
    assert adapter.derive_update_endpoint(ENDPOINT) == "http://localhost:3030/test/update"
    assert adapter.derive_update_endpoint("http://localhost:3030/test/query") == "http://localhost:3030/test/update"


@pytest.mark.parametrize(
    "status, body, ok",
    [
        (200, '{"count": 3, "tripleCount": 3, "quadCount": 0}', True),
        (200, '{"tripleCount": 1}', True),
        (200, '{"error": "parse failure"}', False),
        (200, "", True),
        (204, None, True),
        (200, "<html>ok</html>", True),
        (500, '{"count": 1}', False),
    ],
)
def test_success_response(adapter, status, body, ok):
    assert adapter.is_success_response(status, body) is ok


def test_content_type(adapter):
    assert adapter.ntriples_content_type == "application/n-triples; charset=utf-8"
    assert adapter.query_hints() == []


def test_namespace_endpoints(adapter):
    assert adapter.supports_namespaces()
    assert adapter.build_namespace_endpoint(ENDPOINT, "tenant_1") == "http://localhost:3030/tenant_1/sparql"
    assert (
        adapter.build_namespace_endpoint(ENDPOINT, "tenant_1", service="update")
        == "http://localhost:3030/tenant_1/update"
    )
    with pytest.raises(ConfigurationError):
        adapter.build_namespace_endpoint(ENDPOINT, "../etc")


def test_extract_namespace(adapter):
    assert adapter.extract_namespace(ENDPOINT) == "test"
    assert adapter.extract_namespace("http://localhost:3030/test") == "test"
    assert adapter.extract_namespace("http://localhost:3030/") is None
    assert adapter.extract_namespace("http://localhost:3030/$/datasets") is None
    assert adapter.is_namespace_endpoint(ENDPOINT)


def test_create_dataset(adapter, requests_mock):
    requests_mock.post("http://localhost:3030/$/datasets", status_code=200)
    assert adapter.create_namespace(requests.Session(), ENDPOINT, "tenant1") is True
    body = requests_mock.last_request.text
    assert "dbName=tenant1" in body
    assert "dbType=tdb2" in body


def test_create_existing_dataset(adapter, requests_mock):
    requests_mock.post("http://localhost:3030/$/datasets", status_code=409)
    assert adapter.create_namespace(requests.Session(), ENDPOINT, "tenant1", {"dbType": "mem"}) is False
    assert "dbType=mem" in requests_mock.last_request.text


def test_create_dataset_failure(adapter, requests_mock):
    requests_mock.post("http://localhost:3030/$/datasets", status_code=500, text="boom")
    with pytest.raises(ProtocolError) as excinfo:
        adapter.create_namespace(requests.Session(), ENDPOINT, "tenant1")
    assert excinfo.value.status == 500
    assert excinfo.value.vendor == "fuseki"


def test_delete_and_check_dataset(adapter, requests_mock):
    url = "http://localhost:3030/$/datasets/tenant1"
    requests_mock.delete(url, status_code=404)
    requests_mock.get(url, status_code=200, json={"ds.name": "/tenant1"})
    session = requests.Session()
    assert adapter.delete_namespace(session, ENDPOINT, "tenant1") is False
    assert adapter.namespace_exists(session, ENDPOINT, "tenant1") is True
