"""In-memory TTL cache for source files.

Passed around explicitly (never a module global) so that tests and
long-running workers control its lifetime.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Thread-safe key-value cache with lazy expiration.

    A ``ttl_seconds`` of zero or less means entries never expire.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)``; expired entries are dropped on access."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._misses += 1
                return False, None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[key]
                self._misses += 1
                return False, None
            self._hits += 1
            return True, value

    def set(self, key: str, value: Any) -> None:
        expires_at = None
        if self.ttl_seconds > 0:
            expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._data[key] = (value, expires_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._data),
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total else 0.0,
            }
