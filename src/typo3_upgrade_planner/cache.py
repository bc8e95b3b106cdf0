"""Thread-safe in-memory cache with TTL support."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    stored_at: float


class TTLCache:
    """Session cache keyed by string with per-lookup expiry.

    Instances are handed to the collaborators that need memoization (the
    package resolver, the command composer); nothing here is module-global.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """Initialize cache.

        Args:
            clock: Monotonic time source, replaceable in tests
        """
        self._clock = clock or time.monotonic
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _is_expired(self, entry: _Entry, ttl: float | None) -> bool:
        """Check if an entry has expired.

        Args:
            entry: Cached entry
            ttl: Time-to-live in seconds (None = never expires)

        Returns:
            True if expired, False otherwise
        """
        if ttl is None:
            return False
        return self._clock() - entry.stored_at > ttl

    def get(self, key: str, ttl: float | None = None) -> Any | None:
        """Get value from cache.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds

        Returns:
            Cached value or None if not found/expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._is_expired(entry, ttl):
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def contains(self, key: str, ttl: float | None = None) -> bool:
        """Check for a live entry, including entries holding None."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._is_expired(entry, ttl)

    def set(self, key: str, value: Any) -> None:
        """Store a value."""
        with self._lock:
            self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def delete(self, key: str) -> bool:
        """Delete a cache entry.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self, prefix: str | None = None) -> int:
        """Clear entries, optionally only those whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            if prefix is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed

            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def get_or_refresh(self, key: str, ttl: float | None, loader: Callable[[], Any]) -> Any:
        """Return the cached value, reloading it once it is older than ``ttl``.

        The loader runs outside the lock; when it raises, a stale value is
        returned if one exists, otherwise the exception propagates.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds (None = never expires)
            loader: Callable producing a fresh value

        Returns:
            Fresh or cached value
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._is_expired(entry, ttl):
                self.hits += 1
                return entry.value
            self.misses += 1

        try:
            value = loader()
        except Exception as e:
            if entry is not None:
                logger.warning(f"Refreshing cache key {key} failed, serving stale value: {e}")
                return entry.value
            raise

        self.set(key, value)
        return value

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
            }

    def __len__(self) -> int:
        return len(self._entries)
