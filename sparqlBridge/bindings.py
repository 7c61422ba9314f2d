from __future__ import annotations

"""Placeholder substitution and statement classification for SPARQL text."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Sequence

from rdflib.term import Identifier

from sparqlBridge.errors import CompilationError
from sparqlBridge.query.prefixes import PrefixTable
from sparqlBridge.query.terms import Term, classify
from sparqlBridge.query.wrapper import wrap_term

# Quoted strings and IRIs are matched first so a ``?`` inside them is kept.
# A ``?`` glued to the end of an IRI is a zero-or-one path modifier.
# A bare ``?`` only counts as a placeholder when no identifier follows it.
_TOKEN_RE = re.compile(
    r'"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|<[^<>\s\"{}|^`\\]*>(?:\?(?![A-Za-z0-9_]))?"
    r"|\?(?![A-Za-z0-9_])"
)
_NAMED_RE = re.compile(
    r'"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|<[^<>\s\"{}|^`\\]*>"
    r"|(?<![\w:?$]):([A-Za-z_]\w*)"
)
_PROLOGUE_RE = re.compile(
    r"^\s*(?:#[^\n]*\n\s*)*"
    r"(?:(?:PREFIX\s+[\w.\-]*:\s*<[^>]*>|BASE\s+<[^>]*>|WITH\s+<[^>]*>)\s*(?:#[^\n]*\n\s*)*)*",
    re.IGNORECASE,
)
_UPDATE_RE = re.compile(r"^(INSERT|DELETE|LOAD|CLEAR|CREATE|DROP|COPY|MOVE|ADD)\b", re.IGNORECASE)
_FORM_RE = re.compile(r"^(ASK|CONSTRUCT|DESCRIBE|SELECT)\b", re.IGNORECASE)
_IRI_RE = re.compile(r"^<[^<>\s]*>$")
_VARIABLE_RE = re.compile(r"^\?[A-Za-z_]\w*$")

UPDATE = "update"
ASK = "ask"
CONSTRUCT = "construct"
DESCRIBE = "describe"
SELECT = "select"


def quote_value(value: Any, prefixes: PrefixTable | None = None) -> str:
    """Render one binding value for insertion into query text."""

    if isinstance(value, (Term, Identifier)):
        return wrap_term(classify(value, prefixes), prefixes)
    if value is None:
        raise CompilationError("cannot bind None; use where_null() instead")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        value = value.isoformat()
    text = str(value)
    if _IRI_RE.match(text) or _VARIABLE_RE.match(text):
        return text
    escaped = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def bind_values(text: str, bindings: Sequence[Any] | None, prefixes: PrefixTable | None = None) -> str:
    """Replace each placeholder ``?`` in ``text`` with the next binding.

    ``?name`` variables and anything inside string literals or IRIs are
    left untouched. Text without bindings is returned as-is. Running out of
    bindings is an error; surplus bindings are ignored.
    """

    if not bindings:
        return text
    values = iter(bindings)

    def _replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token != "?":
            return token
        try:
            value = next(values)
        except StopIteration:
            raise CompilationError(
                f"not enough bindings for placeholders ({len(bindings)} given)"
            ) from None
        return quote_value(value, prefixes)

    return _TOKEN_RE.sub(_replace, text)


def positional_bindings(text: str, bindings: Mapping[str, Any] | Sequence[Any] | None) -> tuple[str, list[Any]]:
    """Turn ``:name`` markers into ``?`` placeholders with ordered values."""

    if bindings is None:
        return text, []
    if not isinstance(bindings, Mapping):
        return text, list(bindings)
    ordered: list[Any] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name is None or name not in bindings:
            return match.group(0)
        ordered.append(bindings[name])
        return " ? "

    return _NAMED_RE.sub(_replace, text), ordered


def strip_prologue(text: str) -> str:
    return text[_PROLOGUE_RE.match(text).end():]


def statement_kind(text: str) -> str:
    """Classify SPARQL text as update, ask, construct, describe or select."""

    body = strip_prologue(text)
    if _UPDATE_RE.match(body):
        return UPDATE
    match = _FORM_RE.match(body)
    if match:
        return match.group(1).lower()
    return SELECT


def is_update(text: str) -> bool:
    return statement_kind(text) == UPDATE


__all__ = [
    "ASK",
    "CONSTRUCT",
    "DESCRIBE",
    "SELECT",
    "UPDATE",
    "bind_values",
    "is_update",
    "positional_bindings",
    "quote_value",
    "statement_kind",
    "strip_prologue",
]
