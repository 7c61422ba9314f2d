from __future__ import annotations

"""N-Triples payloads for Graph Store Protocol uploads.

Every code point above U+007F is written as ``\\uXXXX`` or ``\\UXXXXXXXX``
so the payload is pure ASCII. Several stores ignore the charset parameter
on bulk uploads and would otherwise mangle the bytes.
"""

from typing import Any, Iterable, Sequence

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.term import Identifier

from sparqlBridge.errors import CompilationError
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.terms import TermKind, classify
from sparqlBridge.query.wrapper import escape_literal


def escape_unicode(text: str) -> str:
    out = []
    for ch in text:
        code = ord(ch)
        if code <= 0x7F:
            out.append(ch)
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04X}")
        else:
            out.append(f"\\U{code:08X}")
    return "".join(out)


def to_rdflib(value: Any, prefixes: PrefixTable | None = None, *, position: str = "object") -> Identifier:
    """Convert a term or scalar into the matching rdflib node.

    Plain strings in object position that are not IRIs become literals.
    """

    if isinstance(value, Identifier):
        return value
    term = classify(value, prefixes)
    if term.kind in (TermKind.IRI, TermKind.URN):
        return URIRef(term.value)
    if term.kind is TermKind.BLANK:
        return BNode(str(term.value)[2:])
    if position != "object":
        raise CompilationError(f"{value!r} cannot be used as a {position}")
    if term.kind is TermKind.VARIABLE:
        raise CompilationError(f"variable {value!r} cannot appear in bulk data")
    if term.kind is TermKind.STRING:
        datatype = None
        if term.datatype:
            resolved = classify(term.datatype, prefixes)
            datatype = URIRef(resolved.value)
        return Literal(term.value, lang=term.lang, datatype=datatype)
    if term.kind in (TermKind.NUMERIC, TermKind.BOOLEAN):
        return Literal(term.value)
    return Literal(str(term.value))


def node_to_nt(node: Identifier) -> str:
    """One N-Triples term; literals always use the single-line quoted form."""

    if not isinstance(node, Literal):
        return node.n3()
    text = f'"{escape_literal(str(node))}"'
    if node.language:
        return f"{text}@{node.language}"
    if node.datatype:
        return f"{text}^^<{node.datatype}>"
    return text


def serialize_triples(triples: Iterable[Sequence[Any]], prefixes: PrefixTable | None = None) -> str:
    lines = []
    for subject, predicate, obj in triples:
        s = to_rdflib(subject, prefixes, position="subject")
        p = to_rdflib(predicate, prefixes, position="predicate")
        if not isinstance(p, URIRef):
            raise CompilationError(f"predicate {predicate!r} must be an IRI")
        o = to_rdflib(obj, prefixes)
        lines.append(f"{s.n3()} {p.n3()} {node_to_nt(o)} .")
    return escape_unicode("\n".join(lines) + ("\n" if lines else ""))


def to_ntriples(data: Any, prefixes: PrefixTable | None = None) -> str:
    """Encode an rdflib graph, N-Triples text or ``(s, p, o)`` tuples."""

    if isinstance(data, Graph):
        text = data.serialize(format="nt")
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        return escape_unicode(text)
    if isinstance(data, bytes):
        return escape_unicode(data.decode("utf-8"))
    if isinstance(data, str):
        return escape_unicode(data)
    return serialize_triples(data, prefixes)


__all__ = ["escape_unicode", "node_to_nt", "serialize_triples", "to_ntriples", "to_rdflib"]
