"""Exceptions raised by key-value store adapters."""


class StorageError(Exception):
    """Base class for failures of the underlying storage medium."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class StorageQuotaExceededError(StorageError):
    """The medium refused a write because it is full."""


class StorageAccessError(StorageError):
    """The medium could not be read or written (locked, closed, denied)."""
