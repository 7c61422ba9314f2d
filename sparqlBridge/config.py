from __future__ import annotations

"""Connection settings loaded from YAML with environment overrides."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from sparqlBridge.errors import ConfigurationError
from sparqlBridge.triplestore import available_adapters
from sparqlBridge.triplestore.base import validate_namespace

DEFAULT_ENDPOINT = "http://localhost:3030/ds/sparql"
DEFAULT_TIMEOUT = 15.0
CONFIG_ENV = "SPARQLBRIDGE_CONFIG"
AUTH_TYPES = ("none", "basic", "digest")


@dataclass(slots=True)
class AuthConfig:
    """HTTP credentials for the query, update and admin endpoints."""

    type: str = "none"
    username: str | None = None
    password: str | None = None

    @property
    def enabled(self) -> bool:
        return self.type != "none" and bool(self.username)


@dataclass(slots=True)
class ConnectionConfig:
    """Everything a :class:`~sparqlBridge.connection.Connection` needs."""

    endpoint: str = DEFAULT_ENDPOINT
    update_endpoint: str | None = None
    implementation: str = "generic"
    graph: str | None = None
    namespace: str | None = None
    auth: AuthConfig = field(default_factory=AuthConfig)
    prefixes: dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float | None = None

    def __post_init__(self) -> None:
        self.implementation = str(self.implementation or "generic").strip().lower()
        if self.implementation not in available_adapters():
            raise ConfigurationError(
                f"Unknown triple store implementation {self.implementation!r}; "
                f"expected one of: {', '.join(available_adapters())}"
            )
        if self.auth.type not in AUTH_TYPES:
            raise ConfigurationError(
                f"Unknown auth type {self.auth.type!r}; expected one of: {', '.join(AUTH_TYPES)}"
            )
        if self.namespace is not None:
            validate_namespace(self.namespace)


def _coerce_float(value: Any, default: float | None) -> float | None:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _load_auth(data: Mapping[str, Any] | None) -> AuthConfig:
    if not data:
        return AuthConfig()
    auth_type = str(data.get("type") or "basic").strip().lower()
    return AuthConfig(
        type=auth_type,
        username=data.get("username") or data.get("user"),
        password=data.get("password"),
    )


def config_from_mapping(data: Mapping[str, Any] | None) -> ConnectionConfig:
    """Build a config from a plain mapping; ``host`` is accepted for ``endpoint``."""

    data = dict(data or {})
    endpoint = data.get("endpoint") or data.get("host") or DEFAULT_ENDPOINT
    prefixes = data.get("prefixes") or data.get("namespaces") or {}
    return ConnectionConfig(
        endpoint=str(endpoint),
        update_endpoint=data.get("update_endpoint"),
        implementation=data.get("implementation") or "generic",
        graph=data.get("graph"),
        namespace=data.get("namespace"),
        auth=_load_auth(data.get("auth")),
        prefixes={str(k): str(v) for k, v in dict(prefixes).items()},
        timeout=_coerce_float(data.get("timeout"), DEFAULT_TIMEOUT),
        cache_ttl=_coerce_float(data.get("cache_ttl"), None),
    )


def _env_overrides() -> dict[str, Any]:
    mapping = {
        "endpoint": "SPARQL_ENDPOINT",
        "update_endpoint": "SPARQL_UPDATE_ENDPOINT",
        "implementation": "SPARQL_IMPLEMENTATION",
        "graph": "SPARQL_GRAPH",
        "namespace": "SPARQL_NAMESPACE",
    }
    return {key: os.getenv(env) for key, env in mapping.items() if os.getenv(env)}


def load_config(path: Path | str | None = None) -> ConnectionConfig:
    """Load settings from YAML, then apply ``SPARQL_*`` environment overrides.

    Without ``path`` the file named by ``SPARQLBRIDGE_CONFIG`` is used; a
    missing file just means defaults plus environment.
    """

    path = path or os.getenv(CONFIG_ENV)
    data: dict[str, Any] = {}
    if path:
        cfg_path = Path(path)
        if cfg_path.exists():
            try:
                loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid YAML in {cfg_path}: {exc}") from exc
            if not isinstance(loaded, Mapping):
                raise ConfigurationError(f"{cfg_path} must contain a mapping")
            data.update(loaded.get("sparql", loaded))
    data.update(_env_overrides())
    return config_from_mapping(data)


__all__ = [
    "AuthConfig",
    "ConnectionConfig",
    "DEFAULT_ENDPOINT",
    "config_from_mapping",
    "load_config",
]
