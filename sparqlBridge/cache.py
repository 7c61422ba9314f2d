from __future__ import annotations

"""In-memory result cache keyed by a SHA-256 of the executed query."""

import hashlib
import json
import threading
import time
from typing import Any, Callable, Sequence


def cache_key(identity: str, text: str, bindings: Sequence[Any] | None = None) -> str:
    raw = json.dumps(
        [identity, text, [repr(value) for value in bindings or ()]],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResultCache:
    """Per-key TTL store; ``ttl=None`` keeps an entry until it is evicted.

    A lock per key keeps a single producer for that key, so concurrent
    callers asking for the same missing entry only trigger one HTTP call
    while other keys stay available.
    """

    def __init__(self, *, max_entries: int = 1024) -> None:
        self.max_entries = max(1, int(max_entries))
        self._store: dict[str, tuple[float | None, Any]] = {}
        self._lock = threading.RLock()
        self._key_locks: dict[str, threading.Lock] = {}

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires, value = entry
            if expires is not None and time.monotonic() > expires:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires = None if ttl is None or ttl < 0 else time.monotonic() + ttl
        with self._lock:
            self._store.pop(key, None)
            self._store[key] = (expires, value)
            while len(self._store) > self.max_entries:
                oldest = next(iter(self._store))
                del self._store[oldest]

    def remember(self, key: str, ttl: float | None, producer: Callable[[], Any]) -> tuple[Any, bool]:
        """Return ``(value, hit)``, calling ``producer`` at most once per key."""

        cached = self.get(key)
        if cached is not None:
            return cached, True
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        try:
            with key_lock:
                cached = self.get(key)
                if cached is not None:
                    return cached, True
                value = producer()
                self.set(key, value, ttl)
                return value, False
        finally:
            with self._lock:
                if not key_lock.locked():
                    self._key_locks.pop(key, None)

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)


__all__ = ["ResultCache", "cache_key"]
