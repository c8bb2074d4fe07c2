"""Persistence layer: key-value adapters and Unified Storage."""

from storage.errors import StorageError, StorageQuotaExceededError, StorageAccessError
from storage.adapter import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    StorageHandler,
    init_pragmas,
)
from storage.unified import StorageResult, UnifiedStorage

__all__ = [
    "StorageError",
    "StorageQuotaExceededError",
    "StorageAccessError",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "StorageHandler",
    "init_pragmas",
    "StorageResult",
    "UnifiedStorage",
]
