from __future__ import annotations

"""Namespace-prefix table used to expand and shorten compact names."""

from typing import Iterator, Mapping

from rdflib.namespace import DC, DCTERMS, FOAF, OWL, RDF, RDFS, SKOS, XSD

SCHEMA_NS = "http://schema.org/"

DEFAULT_PREFIXES: dict[str, str] = {
    "rdf": str(RDF),
    "rdfs": str(RDFS),
    "owl": str(OWL),
    "xsd": str(XSD),
    "foaf": str(FOAF),
    "skos": str(SKOS),
    "dc": str(DC),
    "dcterms": str(DCTERMS),
    "schema": SCHEMA_NS,
}


class PrefixTable:
    """Mutable mapping of prefix -> namespace IRI."""

    def __init__(
        self, prefixes: Mapping[str, str] | None = None, *, defaults: bool = True
    ) -> None:
        self._prefixes: dict[str, str] = dict(DEFAULT_PREFIXES) if defaults else {}
        for prefix, iri in (prefixes or {}).items():
            self.register(prefix, iri)

    def register(self, prefix: str, iri: str) -> None:
        self._prefixes[prefix.rstrip(":")] = str(iri).strip("<>")

    def expand(self, name: str) -> str:
        """Return ``name`` with a registered prefix replaced by its IRI.

        Names whose prefix is unknown, and full IRIs such as
        ``http://example.org/x``, come back unchanged.
        """

        prefix, sep, local = name.partition(":")
        if not sep or local.startswith("//"):
            return name
        iri = self._prefixes.get(prefix)
        if iri is None:
            return name
        return iri + local

    def shorten(self, iri: str) -> str:
        best = ""
        result = iri
        for prefix, namespace in self._prefixes.items():
            if iri.startswith(namespace) and len(namespace) > len(best):
                local = iri[len(namespace):]
                if local and "/" not in local and "#" not in local:
                    best = namespace
                    result = f"{prefix}:{local}"
        return result

    def as_sparql(self) -> str:
        return "\n".join(
            f"PREFIX {prefix}: <{iri}>" for prefix, iri in sorted(self._prefixes.items())
        )

    def copy(self) -> "PrefixTable":
        return PrefixTable(self._prefixes, defaults=False)

    def as_dict(self) -> dict[str, str]:
        return dict(self._prefixes)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._prefixes

    def __getitem__(self, prefix: str) -> str:
        return self._prefixes[prefix]

    def __iter__(self) -> Iterator[str]:
        return iter(self._prefixes)

    def __len__(self) -> int:
        return len(self._prefixes)


__all__ = ["DEFAULT_PREFIXES", "PrefixTable", "SCHEMA_NS"]
