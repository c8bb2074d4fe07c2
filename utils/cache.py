"""In-memory read-through cache for persisted collections.

The set of collections is small and fixed, so entries never expire and are
never evicted; the cache is emptied only by an explicit ``clear()``.
"""

import threading
from typing import Any


class CollectionCache:
    """Thread-safe map from collection key to its last known value.

    ``None`` is a legitimate cached value for a collection that does not
    exist yet, so lookups go through ``lookup()`` which reports presence
    separately from the value.

    Usage::

        cache = CollectionCache()
        cache.set("widget-configs", [])
        found, value = cache.lookup("widget-configs")
    """

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def lookup(self, key: str) -> tuple[bool, Any]:
        """Return ``(True, value)`` on a hit, ``(False, None)`` on a miss."""
        with self._lock:
            if key in self._store:
                self._hits += 1
                return True, self._store[key]
            self._misses += 1
            return False, None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = value

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss counters."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and ``size``."""
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }
