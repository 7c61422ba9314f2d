from sparqlBridge.query.prefixes import PrefixTable


def test_defaults_and_registration():
    table = PrefixTable({"ex": "<http://example.org/>"})
    assert table.expand("ex:thing") == "http://example.org/thing"
    assert table.expand("foaf:name") == "http://xmlns.com/foaf/0.1/name"
    assert table.expand("http://example.org/x") == "http://example.org/x"
    assert "ex" in table


def test_shorten_picks_longest_namespace():
    table = PrefixTable({"ex": "http://example.org/", "exv": "http://example.org/vocab/"})
    assert table.shorten("http://example.org/vocab/name") == "exv:name"
    assert table.shorten("http://other.org/x") == "http://other.org/x"


def test_as_sparql_and_copy():
    table = PrefixTable({"ex": "http://example.org/"}, defaults=False)
    assert table.as_sparql() == "PREFIX ex: <http://example.org/>"
    clone = table.copy()
    clone.register("b", "http://b.org/")
    assert "b" not in table
    assert len(clone) == 2
