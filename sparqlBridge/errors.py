from __future__ import annotations

"""Exception taxonomy shared by the compiler, the gateway and the adapters."""


class SparqlBridgeError(Exception):
    """Base class for every error raised by sparqlBridge."""


class ConfigurationError(SparqlBridgeError, ValueError):
    """Raised for unknown adapters, bad auth settings or invalid namespaces."""


class CompilationError(SparqlBridgeError, ValueError):
    """Raised when a query description cannot be turned into SPARQL text."""


class ProtocolError(SparqlBridgeError, RuntimeError):
    """Raised when an HTTP exchange with the triple store fails.

    Carries the vendor name, the target URL and the transport message so a
    caller can tell which store and which endpoint misbehaved.
    """

    def __init__(
        self,
        vendor: str,
        url: str,
        message: str,
        *,
        status: int | None = None,
    ) -> None:
        self.vendor = vendor
        self.url = url
        self.message = message
        self.status = status
        detail = f"[{vendor}] {url}"
        if status is not None:
            detail += f" returned HTTP {status}"
        super().__init__(f"{detail}: {message}")


__all__ = [
    "CompilationError",
    "ConfigurationError",
    "ProtocolError",
    "SparqlBridgeError",
]
