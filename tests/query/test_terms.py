from decimal import Decimal

import pytest
from rdflib import BNode, Literal, URIRef
from rdflib.namespace import XSD

from sparqlBridge.errors import CompilationError
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.terms import (
    Term,
    TermKind,
    bnode,
    classify,
    from_rdflib,
    iri,
    is_absolute_url,
    literal,
    var,
)
from sparqlBridge.query.wrapper import wrap_term


@pytest.mark.parametrize(
    "value, kind",
    [
        ("_:b0", TermKind.BLANK),
        ("http://schema.org/Person", TermKind.IRI),
        ("<http://schema.org/Person>", TermKind.IRI),
        ("urn:isbn:0451450523", TermKind.URN),
        ("urn", TermKind.URN),
        ("mailto:alice@example.org", TermKind.IRI),
        ("?name", TermKind.VARIABLE),
        ("$name", TermKind.VARIABLE),
        (":local", TermKind.COMPACT),
        ("hello world", TermKind.RAW),
        ("COUNT(?s)", TermKind.RAW),
        (42, TermKind.NUMERIC),
        (Decimal("1.5"), TermKind.NUMERIC),
        (True, TermKind.BOOLEAN),
    ],
)
def test_classify_kinds(value, kind):
    assert classify(value).kind is kind


def test_blank_node_wins_over_everything():
    assert classify("_:http://example.org").kind is TermKind.BLANK


def test_prefixed_name_expands_to_iri():
    term = classify("schema:Person", PrefixTable())
    assert term.kind is TermKind.IRI
    assert term.value == "http://schema.org/Person"


def test_unknown_prefix_is_not_expanded():
    term = classify("nope:Person", PrefixTable())
    assert term.value == "nope:Person"


def test_terms_keep_their_kind():
    term = literal("5", datatype="xsd:integer")
    assert classify(term) is term
    assert classify(URIRef("urn:uuid:1234")).kind is TermKind.URN


@pytest.mark.parametrize(
    "value",
    ["_:b1", "http://example.org/a", "urn:isbn:1", "?x", ":local", "hello world"],
)
def test_wrapping_preserves_classification(value):
    term = classify(value)
    assert classify(wrap_term(term)).kind is term.kind


def test_lang_and_datatype_only_on_strings():
    with pytest.raises(CompilationError):
        Term(TermKind.NUMERIC, 1, lang="en")
    with pytest.raises(CompilationError):
        Term(TermKind.STRING, "x", lang="en", datatype="xsd:string")


def test_constructors():
    assert iri("<http://example.org/a>").value == "http://example.org/a"
    assert literal(True).kind is TermKind.BOOLEAN
    assert literal(3.5).kind is TermKind.NUMERIC
    assert literal("chat", lang="fr").lang == "fr"
    assert var("$age").value == "?age"
    assert bnode("x").value == "_:x"
    assert iri("http://example.org/a").is_resource


def test_from_rdflib_literals():
    assert from_rdflib(Literal(7)).value == 7
    assert from_rdflib(Literal("true", datatype=XSD.boolean)).value is True
    tagged = from_rdflib(Literal("hola", lang="es"))
    assert (tagged.lang, tagged.datatype) == ("es", None)
    assert from_rdflib(BNode("n1")).value == "_:n1"


def test_is_absolute_url():
    assert is_absolute_url("http://example.org/a")
    assert not is_absolute_url("mailto:someone@example.org")
    assert not is_absolute_url("http://example.org/a b")
