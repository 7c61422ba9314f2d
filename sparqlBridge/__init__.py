from __future__ import annotations

"""Package metadata and the public entry points."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sparqlBridge")
except PackageNotFoundError:  # pragma: no cover - package not installed
    __version__ = "0.1.0"

from sparqlBridge.config import ConnectionConfig, load_config
from sparqlBridge.connection import Connection
from sparqlBridge.errors import (
    CompilationError,
    ConfigurationError,
    ProtocolError,
    SparqlBridgeError,
)
from sparqlBridge.query.builder import QueryBuilder
from sparqlBridge.query.terms import Term, TermKind

__all__ = [
    "__version__",
    "CompilationError",
    "ConfigurationError",
    "Connection",
    "ConnectionConfig",
    "ProtocolError",
    "QueryBuilder",
    "SparqlBridgeError",
    "Term",
    "TermKind",
    "load_config",
]
