"""Key-value store adapters.

A ``KeyValueStore`` is a persistent, synchronous, string-keyed medium with
string values, the contract a browser's local storage offers. Two
implementations are provided:

  - ``MemoryKeyValueStore``: a dict with an optional byte quota, used for
    tests and for sessions that must not touch disk.
  - ``SqliteKeyValueStore``: a single ``kv`` table in a SQLite file.

``StorageHandler`` wraps one key with JSON get/set/remove/update helpers.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from storage.errors import StorageAccessError, StorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract string-keyed storage medium.

    Implementations raise ``StorageError`` subclasses on failure and never
    interpret the stored strings.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for *key*, or ``None`` if absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key* (no-op if absent)."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over the stored keys."""

    def clear(self) -> None:
        for key in list(self.keys()):
            self.remove_item(key)

    def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process store with an optional quota on total key+value size.

    Args:
        quota_bytes: Maximum UTF-8 size of all keys and values combined.
            ``None`` means unlimited.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = 0
        for k, v in self._data.items():
            if k == key:
                continue
            total += len(k.encode("utf-8")) + len(v.encode("utf-8"))
        return total + len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"value for {key!r} must be str, got {type(value).__name__}")
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageQuotaExceededError(
                f"writing {key!r} would exceed the {self.quota_bytes}-byte quota", key=key
            )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


class SqliteKeyValueStore(KeyValueStore):
    """Key-value store persisted in a SQLite file.

    One connection is opened for the life of the store; every write commits
    immediately so a crash never loses an acknowledged write.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            init_pragmas(self._conn)
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                " key TEXT PRIMARY KEY,"
                " value TEXT NOT NULL)"
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageAccessError(f"cannot open {self.db_path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM kv WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageAccessError(f"read of {key!r} failed: {e}", key=key) from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        except sqlite3.OperationalError as e:
            if "full" in str(e).lower():
                raise StorageQuotaExceededError(str(e), key=key) from e
            raise StorageAccessError(f"write of {key!r} failed: {e}", key=key) from e
        except sqlite3.Error as e:
            raise StorageAccessError(f"write of {key!r} failed: {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageAccessError(f"delete of {key!r} failed: {e}", key=key) from e

    def keys(self) -> Iterator[str]:
        try:
            with self._lock:
                rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise StorageAccessError(f"key listing failed: {e}") from e
        return iter([r[0] for r in rows])

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Initialize SQLite pragmas for a small, write-often key-value file.

    - WAL mode so readers never block the writer
    - NORMAL synchronous mode for speed without corruption risk
    - Memory temp store
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA temp_store=MEMORY")


class StorageHandler:
    """JSON accessor bound to a single key.

    ``get`` swallows unparsable data (returns ``None``); ``set`` logs and
    re-raises medium failures; ``remove`` logs and swallows them.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key

    def get(self) -> Any | None:
        try:
            raw = self.store.get_item(self.key)
        except StorageError as e:
            logger.warning("read of %s failed: %s", self.key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("stored data for %s is not valid JSON: %s", self.key, e)
            return None

    def set(self, data: Any) -> None:
        try:
            self.store.set_item(self.key, json.dumps(data, default=str))
        except StorageError as e:
            logger.error("failed to store data for %s: %s", self.key, e)
            raise

    def remove(self) -> None:
        try:
            self.store.remove_item(self.key)
        except StorageError as e:
            logger.error("failed to remove data for %s: %s", self.key, e)

    def update(self, mutator: Callable[[Any | None], Any]) -> Any:
        """Apply *mutator* to the current value and store the result."""
        updated = mutator(self.get())
        self.set(updated)
        return updated
