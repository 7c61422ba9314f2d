from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

from sparqlBridge.cache import ResultCache
from sparqlBridge.connection import Connection
from sparqlBridge.errors import ConfigurationError, ProtocolError
from sparqlBridge.results import AskResult

ENDPOINT = "http://localhost:3030/ds/sparql"
UPDATE = "http://localhost:3030/ds/update"
XSD_INTEGER = "http://www.w3.org/2001/XMLSchema#integer"


def payload(*rows, variables=None):
    names = variables if variables is not None else sorted({key for row in rows for key in row})
    return {"head": {"vars": names}, "results": {"bindings": list(rows)}}


def sent_query(requests_mock) -> str:
    return parse_qs(urlsplit(requests_mock.last_request.url).query)["query"][0]


def test_select_sends_results_json(fuseki, requests_mock):
    requests_mock.get(
        ENDPOINT,
        json=payload({"s": {"type": "uri", "value": "http://example.org/a"}}),
    )
    result = fuseki.select("SELECT ?s WHERE { ?s ?p ? }", ["Alice"])
    assert result.column("s") == ["http://example.org/a"]
    assert requests_mock.last_request.headers["Accept"] == "application/sparql-results+json"
    assert sent_query(requests_mock) == "SELECT ?s WHERE { ?s ?p 'Alice' }"


def test_named_bindings(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json=payload(variables=["s"]))
    fuseki.select("SELECT ?s WHERE { ?s <http://schema.org/age> ?age FILTER(?age > :min) }", {"min": 21})
    assert "FILTER(?age >  21 )" in sent_query(requests_mock)


def test_update_posts_form(fuseki, requests_mock):
    requests_mock.post(UPDATE, status_code=204)
    assert fuseki.update("INSERT DATA { <http://example.org/a> <http://schema.org/name> ? }", ["Al"]) is True
    sent = requests_mock.last_request
    assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
    body = parse_qs(sent.text)
    assert body["update"] == ["INSERT DATA { <http://example.org/a> <http://schema.org/name> 'Al' }"]


def test_explicit_update_endpoint(requests_mock):
    conn = Connection({"endpoint": ENDPOINT, "update_endpoint": "http://other/update"})
    requests_mock.post("http://other/update", status_code=200)
    conn.statement("CLEAR ALL")
    assert requests_mock.last_request.url == "http://other/update"


def test_ask_and_construct(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json={"head": {}, "boolean": True})
    assert bool(fuseki.ask("ASK { ?s ?p ?o }"))
    requests_mock.get(ENDPOINT, text="<http://example.org/a> <http://example.org/b> \"c\" .\n")
    text = fuseki.construct("CONSTRUCT { ?s ?p ?o } WHERE { ?s ?p ?o }")
    assert text.startswith("<http://example.org/a>")
    assert requests_mock.last_request.headers["Accept"] == "application/n-triples"


def test_run_dispatches_on_statement(fuseki, requests_mock):
    requests_mock.post(UPDATE, status_code=200)
    requests_mock.get(ENDPOINT, json={"boolean": False})
    assert fuseki.run("PREFIX ex: <http://example.org/>\nINSERT DATA { ex:a ex:b ex:c }") is True
    assert requests_mock.last_request.method == "POST"
    assert not fuseki.run("ASK { ?s ?p ?o }")


def test_http_errors_are_protocol_errors(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, status_code=500, text="Internal failure")
    with pytest.raises(ProtocolError) as excinfo:
        fuseki.select("SELECT * WHERE { ?s ?p ?o }")
    err = excinfo.value
    assert (err.vendor, err.url, err.status) == ("fuseki", ENDPOINT, 500)
    assert "Internal failure" in str(err)


def test_transport_errors_are_protocol_errors(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, exc=requests.exceptions.ConnectTimeout)
    with pytest.raises(ProtocolError) as excinfo:
        fuseki.select("SELECT * WHERE { ?s ?p ?o }")
    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectTimeout)


def test_invalid_json(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, text="not json")
    with pytest.raises(ProtocolError, match="Invalid JSON"):
        fuseki.select("SELECT * WHERE { ?s ?p ?o }")


def test_cached_select(requests_mock):
    conn = Connection({"endpoint": ENDPOINT}, cache=ResultCache())
    requests_mock.get(ENDPOINT, json=payload(variables=["s"]))
    conn.select("SELECT * WHERE { ?s ?p ? }", [1], cache=True, ttl=60)
    conn.select("SELECT * WHERE { ?s ?p ? }", [1], cache=True, ttl=60)
    assert requests_mock.call_count == 1
    conn.select("SELECT * WHERE { ?s ?p ? }", [2], cache=True, ttl=60)
    assert requests_mock.call_count == 2


def test_namespace_switching(fuseki):
    assert fuseki.get_namespace() == "ds"
    fuseki.set_namespace("tenant_1")
    assert fuseki.query_endpoint == "http://localhost:3030/tenant_1/sparql"
    assert fuseki.update_endpoint == "http://localhost:3030/tenant_1/update"
    assert fuseki.gsp_endpoint == "http://localhost:3030/tenant_1"
    fuseki.set_namespace(None)
    assert fuseki.query_endpoint == ENDPOINT


@pytest.mark.parametrize("bad", ["../etc", "a b", "tenant/1", ""])
def test_namespace_validation(fuseki, bad):
    with pytest.raises(ConfigurationError):
        fuseki.set_namespace(bad)


def test_namespace_scope_restores_on_error(blazegraph):
    original = blazegraph.query_endpoint
    with pytest.raises(RuntimeError):
        with blazegraph.namespace_scope("tenant_X"):
            assert blazegraph.query_endpoint == "http://localhost:9999/blazegraph/namespace/tenant_X/sparql"
            raise RuntimeError("boom")
    assert blazegraph.query_endpoint == original
    assert blazegraph.get_namespace() is None


def test_within_namespace_returns_callback_value(blazegraph):
    seen = blazegraph.within_namespace("kb", lambda conn: conn.get_namespace())
    assert seen == "kb"
    assert blazegraph.get_namespace() is None


def test_generic_rejects_namespaces():
    conn = Connection({"endpoint": "http://localhost:8890/sparql"})
    with pytest.raises(ConfigurationError):
        conn.set_namespace("kb")
    with pytest.raises(ConfigurationError):
        conn.create_namespace("kb")


def test_auth_configuration():
    basic = Connection({"auth": {"username": "u", "password": "p"}})
    assert isinstance(basic.session.auth, HTTPBasicAuth)
    digest = Connection({"auth": {"type": "digest", "username": "u", "password": "p"}})
    assert isinstance(digest.session.auth, HTTPDigestAuth)
    assert Connection({}).session.auth is None


def test_builder_get_through_connection(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json=payload(variables=["s"]))
    fuseki.table("http://schema.org/Person").where("http://schema.org/age", ">", 18).get()
    assert "FILTER( ?age > 18 )" in sent_query(requests_mock)


def test_builder_aggregates(fuseki, requests_mock):
    requests_mock.get(
        ENDPOINT,
        json=payload({"aggregate": {"type": "literal", "value": "42", "datatype": XSD_INTEGER}}),
    )
    assert fuseki.table("http://schema.org/Person").count() == 42
    assert "COUNT(*)" in sent_query(requests_mock)
    requests_mock.get(ENDPOINT, json=payload(variables=["aggregate"]))
    assert fuseki.table("http://schema.org/Person").sum("http://schema.org/age") == 0
    assert fuseki.table("http://schema.org/Person").max("http://schema.org/age") is None


def test_builder_exists_and_first(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json={"boolean": True})
    assert fuseki.table("http://schema.org/Person").exists() is True
    assert sent_query(requests_mock).startswith("ASK WHERE")
    requests_mock.get(ENDPOINT, json=payload({"s": {"type": "uri", "value": "http://example.org/a"}}))
    row = fuseki.table("http://schema.org/Person").first()
    assert row.value("s") == "http://example.org/a"
    assert sent_query(requests_mock).endswith("LIMIT 1")


def test_builder_namespace_is_scoped(fuseki, requests_mock):
    requests_mock.get("http://localhost:3030/tenant_2/sparql", json=payload(variables=["s"]))
    fuseki.query().namespace("tenant_2").from_("http://schema.org/Person").get()
    assert requests_mock.last_request.url.startswith("http://localhost:3030/tenant_2/sparql")
    assert fuseki.query_endpoint == ENDPOINT


def test_builder_batches(fuseki, requests_mock):
    requests_mock.post(UPDATE, status_code=200)
    people = fuseki.table("http://schema.org/Person")
    assert people.insert_batch([{"id": "http://example.org/a", "http://schema.org/name": "Alice"}]) == 1
    assert "INSERT DATA" in parse_qs(requests_mock.last_request.text)["update"][0]
    assert people.delete_batch(["http://example.org/a", "http://example.org/b"]) == 2
    assert "FILTER(?s IN (<http://example.org/a>, <http://example.org/b>))" in (
        parse_qs(requests_mock.last_request.text)["update"][0]
    )
    calls = requests_mock.call_count
    assert people.insert_batch([]) == 0
    assert people.delete_batch([]) == 0
    assert requests_mock.call_count == calls


def test_builder_remember_uses_cache(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json=payload(variables=["s"]))
    query = fuseki.table("http://schema.org/Person").remember(30)
    query.get()
    query.get()
    assert requests_mock.call_count == 1


def test_query_applies_configured_graph():
    conn = Connection({"graph": "http://example.org/g"})
    assert "FROM <http://example.org/g>" in conn.query().to_sql()


def test_count_after_order_by_drops_ordering(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json=payload(variables=["aggregate"]))
    assert fuseki.table("http://schema.org/Person").order_by("http://schema.org/age").count() == 0
    assert "ORDER BY" not in sent_query(requests_mock)


def test_select_returns_ask_result_for_ask(fuseki, requests_mock):
    requests_mock.get(ENDPOINT, json={"head": {}, "boolean": True})
    result = fuseki.select("ASK { ?s <http://schema.org/name> ? }", ["Alice"])
    assert isinstance(result, AskResult)
    assert bool(result) is True
    assert sent_query(requests_mock) == "ASK { ?s <http://schema.org/name> 'Alice' }"


def test_select_routes_updates_to_update_endpoint(fuseki, requests_mock):
    requests_mock.post(UPDATE, status_code=204)
    assert fuseki.select("INSERT DATA { <http://example.org/a> <http://schema.org/name> ? }", ["Al"]) is True
    sent = requests_mock.last_request
    assert sent.method == "POST"
    assert sent.url == UPDATE
    assert parse_qs(sent.text)["update"] == [
        "INSERT DATA { <http://example.org/a> <http://schema.org/name> 'Al' }"
    ]


def test_cursor_yields_rows(fuseki, requests_mock):
    requests_mock.get(
        ENDPOINT,
        json=payload(
            {"s": {"type": "uri", "value": "http://example.org/a"}},
            {"s": {"type": "uri", "value": "http://example.org/b"}},
        ),
    )
    cursor = fuseki.cursor("SELECT ?s WHERE { ?s ?p ?o }")
    assert requests_mock.call_count == 0
    assert [row["s"].value for row in cursor] == ["http://example.org/a", "http://example.org/b"]
    assert requests_mock.call_count == 1
