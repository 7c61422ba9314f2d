from __future__ import annotations

"""Structured JSON logger for triple store traffic.

Credentials, tokens and URL query strings (which carry SPARQL text) are
scrubbed before anything is written.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, MutableMapping

TOKEN_RE = re.compile(r"(?:bearer\s+)?[A-Za-z0-9\-_=]{32,}", re.IGNORECASE)
USERINFO_RE = re.compile(r"(https?://)[^/\s:@]+(?::[^/\s@]*)?@")
URL_QUERY_RE = re.compile(r"https?://[^\s?]+\?[^\s]+")
PASSWORD_RE = re.compile(r"(password|passwd|secret)=[^&\s]+", re.IGNORECASE)

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _scrub(value: str) -> str:
    value = USERINFO_RE.sub(r"\1[redacted]@", value)
    value = PASSWORD_RE.sub(r"\1=[redacted]", value)
    value = URL_QUERY_RE.sub(lambda m: m.group(0).split("?")[0], value)
    value = TOKEN_RE.sub("[redacted]", value)
    return value


def _sanitize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(k): _sanitize(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(v) for v in obj]
    if isinstance(obj, (int, float, bool)):
        return obj
    if obj is None:
        return None
    return _scrub(str(obj))


def _truncate(details: Mapping[str, Any] | Iterable[Any], max_bytes: int) -> Any:
    if max_bytes <= 0:
        return details
    serialized = json.dumps(details, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    blob = serialized.encode("utf-8")
    if len(blob) <= max_bytes:
        return details
    preview = blob[:max_bytes].decode("utf-8", errors="ignore")
    return {"note": "truncated", "preview": preview}


class JsonLogger:
    """Emit structured JSON events with consistent keys."""

    def __init__(
        self,
        service: str,
        *,
        logger: logging.Logger | None = None,
        max_details_bytes: int = 2048,
    ) -> None:
        self._service = service
        self._logger = logger or logging.getLogger(f"sparqlbridge.{service}.json")
        self._max_details_bytes = max(0, int(max_details_bytes))

    def debug(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self._emit("DEBUG", event, fields)

    def info(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self._emit("INFO", event, fields)

    def warning(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self._emit("WARNING", event, fields)

    def error(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self._emit("ERROR", event, fields)

    def _emit(self, level: str, event: str, fields: MutableMapping[str, Any]) -> dict[str, Any] | None:
        numeric = _LEVEL_MAP.get(level, logging.INFO)
        if not self._logger.isEnabledFor(numeric):
            return None
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "service": self._service,
            "event": event,
        }
        for key in ("vendor", "method", "latency_ms", "status"):
            value = fields.pop(key, None)
            if value is not None:
                entry[key] = value
        url = fields.pop("url", None)
        if url is not None:
            entry["url"] = _scrub(str(url))
        if fields:
            entry["details"] = _truncate(_sanitize(dict(fields)), self._max_details_bytes)
        payload = json.dumps(entry, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        self._logger.log(numeric, payload)
        return entry


__all__ = ["JsonLogger"]
