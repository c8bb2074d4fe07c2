"""Unified Storage: typed collection access over a key-value store.

Every collection is a JSON array kept under one key. Reads go through an
in-memory ``CollectionCache``; writes go to the store first and update the
cache only after the store accepted them, so a failed write never leaves
the cache ahead of the medium.

Mutations return a ``StorageResult`` instead of raising; callers decide how
loud a failure should be.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from storage.adapter import KeyValueStore
from storage.errors import StorageError, StorageQuotaExceededError
from utils.cache import CollectionCache
from utils.common import deep_clone, serialize, touch_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a storage mutation.

    ``persisted`` is False when the write only reached the cache, either
    because persistence is disabled for this user or because nothing
    changed.
    """

    ok: bool
    error: Optional[str] = None
    persisted: bool = True
    quota_exceeded: bool = False

    @classmethod
    def success(cls, persisted: bool = True) -> "StorageResult":
        return cls(ok=True, persisted=persisted)

    @classmethod
    def noop(cls) -> "StorageResult":
        return cls(ok=True, persisted=False)

    @classmethod
    def failure(cls, error: str, quota_exceeded: bool = False) -> "StorageResult":
        return cls(ok=False, error=error, persisted=False, quota_exceeded=quota_exceeded)

    def __bool__(self) -> bool:
        return self.ok


class UnifiedStorage:
    """Read-through, write-through access to named JSON collections.

    Args:
        store: Underlying key-value medium.
        key_prefix: Prepended to every collection name on the medium.
        can_persist: Optional zero-argument predicate. When it returns False
            writes stay in the cache only and are reported with
            ``persisted=False``.
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = "",
                 can_persist: Callable[[], bool] | None = None):
        self.store = store
        self.key_prefix = key_prefix
        self._can_persist = can_persist
        self._cache = CollectionCache()

    def _key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    def persistence_enabled(self) -> bool:
        return self._can_persist is None or bool(self._can_persist())

    # ── Raw values ──────────────────────────────────────────────────────────

    def get_data(self, name: str, default: Any = None) -> Any:
        """Return a deep copy of the value stored under *name*.

        Missing keys, unreadable media and corrupted JSON all yield
        *default*. A corrupted value is cached as *default* so the warning
        is logged once per cache lifetime.
        """
        key = self._key(name)
        found, cached = self._cache.lookup(key)
        if found:
            return deep_clone(cached) if cached is not None else deep_clone(default)

        try:
            raw = self.store.get_item(key)
        except StorageError as e:
            logger.warning("read of %s failed: %s", key, e)
            return deep_clone(default)

        if raw is None:
            value = None
        else:
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning("corrupted data under %s treated as empty: %s", key, e)
                value = None

        self._cache.set(key, value)
        return deep_clone(value) if value is not None else deep_clone(default)

    def save_data(self, name: str, value: Any) -> StorageResult:
        """Serialize *value* and write it under *name*."""
        key = self._key(name)
        snapshot = deep_clone(value)

        if not self.persistence_enabled():
            self._cache.set(key, snapshot)
            logger.debug("persistence disabled; %s kept in memory only", key)
            return StorageResult.success(persisted=False)

        try:
            self.store.set_item(key, serialize(value))
        except StorageQuotaExceededError as e:
            logger.error("storage quota exceeded writing %s: %s", key, e)
            return StorageResult.failure(str(e), quota_exceeded=True)
        except StorageError as e:
            logger.error("failed to write %s: %s", key, e)
            return StorageResult.failure(str(e))

        self._cache.set(key, snapshot)
        return StorageResult.success()

    def remove_data(self, name: str) -> StorageResult:
        key = self._key(name)
        if self.persistence_enabled():
            try:
                self.store.remove_item(key)
            except StorageError as e:
                logger.error("failed to remove %s: %s", key, e)
                return StorageResult.failure(str(e))
        self._cache.set(key, None)
        return StorageResult.success(persisted=self.persistence_enabled())

    # ── Collections ─────────────────────────────────────────────────────────

    def get_collection(self, name: str) -> list[dict[str, Any]]:
        """Return the collection under *name* as a list (empty if absent).

        Data written by older releases as ``{"<something>": [...]}`` is
        unwrapped to the inner list. Elements that are not objects are
        dropped.
        """
        value = self.get_data(name)
        if isinstance(value, dict):
            lists = [v for v in value.values() if isinstance(v, list)]
            if len(lists) == 1:
                value = lists[0]
        if isinstance(value, list):
            items = [v for v in value if isinstance(v, dict)]
            if len(items) != len(value):
                logger.warning("dropped %d non-object entries from collection %s",
                               len(value) - len(items), name)
            return items
        if value is not None:
            logger.warning("collection %s has unexpected shape %s; treating as empty",
                           name, type(value).__name__)
        return []

    def save_collection(self, name: str, items: list[dict[str, Any]]) -> StorageResult:
        return self.save_data(name, list(items))

    def find_item(self, name: str, item_id: str) -> dict[str, Any] | None:
        for item in self.get_collection(name):
            if item.get("id") == item_id:
                return item
        return None

    def add_item(self, name: str, item: dict[str, Any]) -> StorageResult:
        """Append *item* to the collection, replacing any entry with the same id."""
        items = [i for i in self.get_collection(name) if i.get("id") != item.get("id")]
        items.append(item)
        return self.save_collection(name, items)

    def update_item(self, name: str, item_id: str, partial: dict[str, Any],
                    touch_field: str | None = None) -> StorageResult:
        """Shallow-merge *partial* into the item with *item_id*.

        A missing item is a no-op, not an error. When *touch_field* is given
        it is set to a fresh timestamp that never precedes its old value.
        """
        items = self.get_collection(name)
        for index, item in enumerate(items):
            if item.get("id") == item_id:
                merged = {**item, **partial, "id": item_id}
                if touch_field:
                    merged[touch_field] = touch_timestamp(item.get(touch_field))
                items[index] = merged
                return self.save_collection(name, items)
        logger.debug("update of %s/%s skipped: no such item", name, item_id)
        return StorageResult.noop()

    def delete_item(self, name: str, item_id: str) -> StorageResult:
        items = self.get_collection(name)
        remaining = [i for i in items if i.get("id") != item_id]
        if len(remaining) == len(items):
            return StorageResult.noop()
        return self.save_collection(name, remaining)

    # ── Cache control ───────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        """Forget every cached value; the next read goes to the store."""
        self._cache.clear()

    def cache_stats(self) -> dict[str, int]:
        return self._cache.stats()
