"""
Provider Response Cache
=======================

Keeps each park's ThemeParks.wiki attraction list for a short window so a
re-run inside the collection interval does not hit the provider again.

Entries carry their own expiry (monotonic clock) and are dropped when read
after it. Empty lists are cached like any other value; only None means miss.

Usage:
    from utils.cache import TTLCache

    cache = TTLCache(ttl_seconds=300)
    attractions = cache.get_or_fetch(park_uuid, lambda: fetch_live(park_uuid))
"""

import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

T = TypeVar('T')


class TTLCache:
    """Thread-safe dictionary of values that expire ttl_seconds after being stored."""

    def __init__(self, ttl_seconds: int = 300):
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = Lock()
        self.ttl_seconds = ttl_seconds
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if time.monotonic() < expires_at:
                    self.hits += 1
                    return value
                del self._entries[key]
            self.misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + self.ttl_seconds)

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], T]) -> T:
        """
        Return the cached value or call fetch_fn and store its result.

        fetch_fn runs outside the lock; an exception from it propagates and
        nothing is stored.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = fetch_fn()
        self.set(key, value)
        return value

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or every entry when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
