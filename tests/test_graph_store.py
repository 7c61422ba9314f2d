import json
import logging

import pytest
from rdflib import Graph, Literal, URIRef

from sparqlBridge.connection import Connection
from sparqlBridge.errors import ProtocolError

TRIPLES = [("http://example.org/a", "http://schema.org/name", "ruïne")]


def test_fuseki_upload_to_named_graph(requests_mock):
    conn = Connection({"endpoint": "http://localhost:3030/test/sparql", "implementation": "fuseki"})
    assert conn.gsp_url("http://g") == "http://localhost:3030/test?graph=http%3A%2F%2Fg"
    requests_mock.post(
        "http://localhost:3030/test",
        json={"count": 1, "tripleCount": 1, "quadCount": 0},
    )
    assert conn.insert_graph(TRIPLES, "http://g") is True
    sent = requests_mock.last_request
    assert sent.url == "http://localhost:3030/test?graph=http%3A%2F%2Fg"
    assert sent.headers["Content-Type"] == "application/n-triples; charset=utf-8"
    body = sent.body.decode("ascii")
    assert '"ru\\u00EFne"' in body


def test_fuseki_json_without_counts_is_failure(fuseki, requests_mock):
    requests_mock.post("http://localhost:3030/ds", json={"error": "bad data"})
    with pytest.raises(ProtocolError) as excinfo:
        fuseki.insert_graph(TRIPLES)
    assert excinfo.value.status == 200


def test_blazegraph_upload_uses_context_uri(blazegraph, requests_mock):
    requests_mock.post(
        "http://localhost:9999/blazegraph/sparql",
        text='<?xml version="1.0"?><data modified="0" milliseconds="4"/>',
    )
    assert blazegraph.insert_graph(TRIPLES, "http://g") is True
    sent = requests_mock.last_request
    assert "context-uri=http%3A%2F%2Fg" in sent.url
    assert "graph=" not in sent.url.replace("context-uri=", "")
    assert sent.headers["Content-Type"] == "text/plain"


def test_replace_and_delete_graph(fuseki, requests_mock):
    requests_mock.put("http://localhost:3030/ds", status_code=204)
    requests_mock.delete("http://localhost:3030/ds", status_code=204)
    graph = Graph()
    graph.add((URIRef("http://example.org/a"), URIRef("http://schema.org/name"), Literal("x")))
    assert fuseki.replace_graph(graph, "http://g") is True
    assert requests_mock.last_request.method == "PUT"
    assert fuseki.delete_graph("http://g") is True
    assert requests_mock.last_request.method == "DELETE"
    assert requests_mock.last_request.body is None


def test_generic_default_graph_upload(requests_mock):
    conn = Connection({"endpoint": "http://localhost:8890/sparql", "graph": "http://example.org/default"})
    requests_mock.post("http://localhost:8890/data", status_code=201)
    conn.insert_graph("<http://example.org/a> <http://example.org/b> \"c\" .\n")
    assert requests_mock.last_request.url == "http://localhost:8890/data?graph=http%3A%2F%2Fexample.org%2Fdefault"


def test_rejected_upload(blazegraph, requests_mock):
    requests_mock.post("http://localhost:9999/blazegraph/sparql", status_code=400, text="parse error")
    with pytest.raises(ProtocolError) as excinfo:
        blazegraph.insert_graph(TRIPLES)
    assert excinfo.value.status == 400
    assert "parse error" in str(excinfo.value)


def test_namespace_admin_through_connection(blazegraph, requests_mock):
    requests_mock.post("http://localhost:9999/blazegraph/namespace", status_code=201)
    requests_mock.get("http://localhost:9999/blazegraph/namespace/tenant1", status_code=200)
    requests_mock.delete("http://localhost:9999/blazegraph/namespace/tenant1", status_code=200)
    assert blazegraph.create_namespace("tenant1") is True
    assert blazegraph.namespace_exists("tenant1") is True
    assert blazegraph.delete_namespace("tenant1") is True


def test_blazegraph_upload_logs_modified_count(blazegraph, requests_mock, caplog):
    caplog.set_level(logging.INFO, logger="sparqlbridge.connection.json")
    requests_mock.post(
        "http://localhost:9999/blazegraph/sparql",
        text='<?xml version="1.0"?><data modified="3" milliseconds="4"/>',
    )
    blazegraph.insert_graph(TRIPLES)
    events = [json.loads(record.getMessage()) for record in caplog.records]
    response = [event for event in events if event["event"] == "gsp.response"][-1]
    assert response["details"]["modified"] == 3


def test_fuseki_upload_logs_no_modified_count(fuseki, requests_mock, caplog):
    caplog.set_level(logging.INFO, logger="sparqlbridge.connection.json")
    requests_mock.post("http://localhost:3030/ds", json={"count": 1, "tripleCount": 1, "quadCount": 0})
    fuseki.insert_graph(TRIPLES)
    events = [json.loads(record.getMessage()) for record in caplog.records]
    response = [event for event in events if event["event"] == "gsp.response"][-1]
    assert "modified" not in response.get("details", {})
