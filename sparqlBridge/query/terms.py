from __future__ import annotations

"""Tagged representation of SPARQL values and scalar classification.

Classification is ordered and the first matching rule wins:

1. already a :class:`Term` (or an rdflib node) -> its own kind
2. a string starting with ``_:`` -> blank node
3. a prefixed name that expands to an absolute URL -> IRI
4. ``urn(:segment)*`` -> URN
5. ``scheme:`` followed by anything -> IRI
6. everything else is passed through unchanged

Unrecognised input never raises; it comes back as a variable, a compact
name or a raw fragment so hand-written SPARQL keeps working.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from rdflib import BNode, Literal, URIRef, Variable

from sparqlBridge.errors import CompilationError
from sparqlBridge.query.prefixes import PrefixTable

URN_RE = re.compile(r"^urn(:[^:]*)*$", re.IGNORECASE)
IRI_RE = re.compile(r"^[a-z][a-z0-9+.\-]*:.+", re.IGNORECASE | re.UNICODE)
VARIABLE_RE = re.compile(r"^[?$][A-Za-z_][\w]*$")
COMPACT_RE = re.compile(r"^[A-Za-z_]?[\w.\-]*:[\w.\-]*$")

NUMERIC_DATATYPES = {
    "http://www.w3.org/2001/XMLSchema#integer": int,
    "http://www.w3.org/2001/XMLSchema#int": int,
    "http://www.w3.org/2001/XMLSchema#long": int,
    "http://www.w3.org/2001/XMLSchema#short": int,
    "http://www.w3.org/2001/XMLSchema#nonNegativeInteger": int,
    "http://www.w3.org/2001/XMLSchema#positiveInteger": int,
    "http://www.w3.org/2001/XMLSchema#decimal": Decimal,
    "http://www.w3.org/2001/XMLSchema#double": float,
    "http://www.w3.org/2001/XMLSchema#float": float,
}
XSD = "http://www.w3.org/2001/XMLSchema#"
XSD_BOOLEAN = XSD + "boolean"
_LOCAL_NAME_RE = re.compile(r"^[A-Za-z]+$")


class TermKind(str, Enum):
    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    IRI = "iri"
    URN = "urn"
    BLANK = "blank"
    COMPACT = "compact"
    VARIABLE = "variable"
    RAW = "raw"


@dataclass(frozen=True, slots=True)
class Term:
    """One classified SPARQL value.

    ``lang`` and ``datatype`` are only valid on string literals and are
    mutually exclusive.
    """

    kind: TermKind
    value: Any
    lang: str | None = None
    datatype: str | None = None

    def __post_init__(self) -> None:
        if (self.lang or self.datatype) and self.kind is not TermKind.STRING:
            raise CompilationError(
                f"lang/datatype are only valid on string literals, not {self.kind.value}"
            )
        if self.lang and self.datatype:
            raise CompilationError("a literal cannot carry both a language and a datatype")

    @property
    def is_resource(self) -> bool:
        return self.kind in (TermKind.IRI, TermKind.URN)

    def to_python(self) -> Any:
        return self.value


def iri(value: str) -> Term:
    return Term(TermKind.IRI, str(value).strip("<>"))


def literal(value: Any, *, lang: str | None = None, datatype: str | None = None) -> Term:
    if isinstance(value, bool):
        return Term(TermKind.BOOLEAN, value)
    if isinstance(value, (int, float, Decimal)) and not lang and not datatype:
        return Term(TermKind.NUMERIC, value)
    return Term(TermKind.STRING, str(value), lang=lang, datatype=datatype)


def var(name: str) -> Term:
    return Term(TermKind.VARIABLE, "?" + name.lstrip("?$"))


def bnode(label: str) -> Term:
    return Term(TermKind.BLANK, label if label.startswith("_:") else f"_:{label}")


def raw(text: str) -> Term:
    """Caller-trusted SPARQL text, emitted verbatim."""

    return Term(TermKind.RAW, text)


Expression = raw


def is_absolute_url(value: str) -> bool:
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def from_rdflib(node: Any) -> Term:
    if isinstance(node, URIRef):
        value = str(node)
        return Term(TermKind.URN if URN_RE.match(value) else TermKind.IRI, value)
    if isinstance(node, BNode):
        return bnode(str(node))
    if isinstance(node, Variable):
        return var(str(node))
    if isinstance(node, Literal):
        datatype = str(node.datatype) if node.datatype is not None else None
        if datatype in NUMERIC_DATATYPES:
            try:
                return Term(TermKind.NUMERIC, NUMERIC_DATATYPES[datatype](str(node)))
            except (TypeError, ValueError, ArithmeticError):
                return Term(TermKind.STRING, str(node), datatype=datatype)
        if datatype == XSD_BOOLEAN:
            return Term(TermKind.BOOLEAN, str(node).strip().lower() in ("true", "1"))
        if node.language:
            return Term(TermKind.STRING, str(node), lang=node.language)
        return Term(TermKind.STRING, str(node), datatype=datatype)
    raise TypeError(f"unsupported rdflib node {node!r}")


def xsd_datatype(name: str, prefixes: PrefixTable | None = None) -> str:
    """Resolve ``integer``, ``xsd:integer`` or a full IRI to a datatype IRI."""

    text = str(name).strip()
    if _LOCAL_NAME_RE.match(text):
        return XSD + text
    term = classify(text, prefixes)
    if not term.is_resource:
        raise CompilationError(f"Unknown datatype {name!r}")
    return str(term.value)


def classify(value: Any, prefixes: PrefixTable | None = None) -> Term:
    """Classify ``value`` into a :class:`Term`."""

    if isinstance(value, Term):
        return value
    if isinstance(value, (URIRef, BNode, Literal, Variable)):
        return from_rdflib(value)
    if isinstance(value, bool):
        return Term(TermKind.BOOLEAN, value)
    if isinstance(value, (int, float, Decimal)):
        return Term(TermKind.NUMERIC, value)
    text = str(value)
    if text.startswith("_:"):
        return Term(TermKind.BLANK, text)
    candidate = text.strip()
    if candidate.startswith("<") and candidate.endswith(">"):
        candidate = candidate[1:-1]
    expanded = prefixes.expand(candidate) if prefixes is not None else candidate
    if is_absolute_url(expanded):
        return Term(TermKind.IRI, expanded)
    if URN_RE.match(candidate):
        return Term(TermKind.URN, candidate)
    if IRI_RE.match(candidate) and not any(ch.isspace() for ch in candidate):
        return Term(TermKind.IRI, candidate)
    if VARIABLE_RE.match(text):
        return Term(TermKind.VARIABLE, text)
    if COMPACT_RE.match(text):
        return Term(TermKind.COMPACT, text)
    return Term(TermKind.RAW, text)


__all__ = [
    "Expression",
    "Term",
    "TermKind",
    "bnode",
    "classify",
    "from_rdflib",
    "iri",
    "is_absolute_url",
    "literal",
    "raw",
    "var",
    "xsd_datatype",
]
