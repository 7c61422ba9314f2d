from __future__ import annotations

"""Registry of triple store adapters keyed by implementation name."""

from typing import Type

from sparqlBridge.errors import ConfigurationError
from sparqlBridge.triplestore.base import TripleStoreAdapter, validate_namespace
from sparqlBridge.triplestore.blazegraph import BlazegraphAdapter
from sparqlBridge.triplestore.fuseki import FusekiAdapter
from sparqlBridge.triplestore.generic import GenericAdapter

_ADAPTERS: dict[str, Type[TripleStoreAdapter]] = {
    FusekiAdapter.name: FusekiAdapter,
    BlazegraphAdapter.name: BlazegraphAdapter,
    GenericAdapter.name: GenericAdapter,
}


def register_adapter(name: str, adapter_cls: Type[TripleStoreAdapter]) -> None:
    _ADAPTERS[name.strip().lower()] = adapter_cls


def available_adapters() -> list[str]:
    return sorted(_ADAPTERS)


def get_adapter(name: str) -> TripleStoreAdapter:
    """Instantiate the adapter registered under ``name``.

    Unknown names raise :class:`ConfigurationError`; there is no fallback.
    """

    key = str(name or "").strip().lower()
    adapter_cls = _ADAPTERS.get(key)
    if adapter_cls is None:
        raise ConfigurationError(
            f"Unknown triple store implementation {name!r}; "
            f"expected one of: {', '.join(available_adapters())}"
        )
    return adapter_cls()


__all__ = [
    "BlazegraphAdapter",
    "FusekiAdapter",
    "GenericAdapter",
    "TripleStoreAdapter",
    "available_adapters",
    "get_adapter",
    "register_adapter",
    "validate_namespace",
]
