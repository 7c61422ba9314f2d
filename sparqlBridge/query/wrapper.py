from __future__ import annotations

"""Turn terms and raw scalars into SPARQL surface syntax."""

import re
from typing import Any

from rdflib.term import Identifier

from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.terms import Term, TermKind, classify

_SCHEME_SEP_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*://)(.*)$", re.DOTALL)
_DUP_SLASH_RE = re.compile(r"/{2,}")
_ALIAS_RE = re.compile(r"\s+as\s+", re.IGNORECASE)

_LITERAL_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def normalize_uri(value: str) -> str:
    """Strip surrounding angle brackets and collapse duplicate path slashes.

    The ``scheme://`` separator itself is left alone.
    """

    value = value.strip()
    if value.startswith("<"):
        value = value[1:]
    if value.endswith(">"):
        value = value[:-1]
    match = _SCHEME_SEP_RE.match(value)
    if match is None:
        return value
    scheme, rest = match.groups()
    host, sep, remainder = rest.partition("/")
    if not sep:
        return value
    path, qsep, query = remainder.partition("?")
    path = _DUP_SLASH_RE.sub("/", "/" + path)
    return f"{scheme}{host}{path}{qsep}{query}"


def escape_literal(value: str) -> str:
    return "".join(_LITERAL_ESCAPES.get(ch, ch) for ch in value)


def wrap_uri(value: str) -> str:
    return f"<{normalize_uri(value)}>"


def wrap_term(term: Term, prefixes: PrefixTable | None = None) -> str:
    kind = term.kind
    if kind in (TermKind.IRI, TermKind.URN):
        return wrap_uri(str(term.value))
    if kind is TermKind.BOOLEAN:
        return "true" if term.value else "false"
    if kind is TermKind.NUMERIC:
        return str(term.value)
    if kind is TermKind.VARIABLE:
        return "?" + str(term.value).lstrip("?$")
    if kind is TermKind.STRING:
        text = f'"{escape_literal(str(term.value))}"'
        if term.lang:
            return f"{text}@{term.lang}"
        if term.datatype:
            datatype = classify(term.datatype, prefixes)
            if datatype.is_resource:
                return f"{text}^^{wrap_uri(datatype.value)}"
            return f"{text}^^{term.datatype}"
        return text
    return str(term.value)


def wrap(value: Any, prefixes: PrefixTable | None = None) -> str:
    """Wrap a column, value or ``expr as alias`` pair for emission.

    Unclassifiable strings (variables, compact names, raw fragments) are
    returned unchanged.
    """

    if prefixes is None:
        prefixes = PrefixTable()
    if isinstance(value, str) and not isinstance(value, Identifier):
        parts = _ALIAS_RE.split(value, maxsplit=1)
        if len(parts) == 2:
            return f"{wrap(parts[0], prefixes)} as {wrap(parts[1], prefixes)}"
    return wrap_term(classify(value, prefixes), prefixes)


def data_value(value: Any, prefixes: PrefixTable | None = None) -> str:
    """Serialise a value for data blocks (VALUES, INSERT DATA).

    Strings that are not resources, variables or blank nodes become quoted
    literals; ``None`` becomes ``UNDEF``.
    """

    if value is None:
        return "UNDEF"
    term = classify(value, prefixes)
    if term.kind in (TermKind.RAW, TermKind.COMPACT) and not isinstance(value, Term):
        term = Term(TermKind.STRING, str(value))
    return wrap_term(term, prefixes)


__all__ = [
    "data_value",
    "escape_literal",
    "normalize_uri",
    "wrap",
    "wrap_term",
    "wrap_uri",
]
