"""In-memory TTL cache keyed by {operation}:{canonical params}."""

from __future__ import annotations

import json
import threading
import time
from typing import Any


def make_key(operation: str, params: dict[str, Any] | None = None) -> str:
    """Build a deterministic cache key from an operation name and its params.

    Params set to None are dropped so that omitting a filter and passing it
    as None share one entry. The remaining params are serialized as sorted
    JSON, which keeps distinct parameter sets from colliding.
    """
    present = {k: v for k, v in (params or {}).items() if v is not None}
    canonical = json.dumps(present, sort_keys=True, separators=(",", ":"), default=str)
    return f"{operation}:{canonical}"


class TTLCache:
    """Simple in-memory cache with per-key TTL."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._store[key] = (value, time.monotonic() + ttl)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
