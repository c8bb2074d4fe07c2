"""
Pytest fixtures for the trip widget engine tests.

Provides in-memory and SQLite key-value stores, a Unified Storage over the
memory store, a fully wired ``PlannerEngine`` with a short auto-save delay,
and a ``FailingStore`` whose writes can be switched off to exercise the
storage-failure paths.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from engine import PlannerEngine  # noqa: E402
from storage.adapter import MemoryKeyValueStore, SqliteKeyValueStore  # noqa: E402
from storage.errors import StorageAccessError  # noqa: E402
from storage.unified import UnifiedStorage  # noqa: E402
from utils.access import AccessTier, TierAccessPolicy  # noqa: E402
from utils.config import AutoSaveConfig  # noqa: E402

# Short debounce so timer-driven tests finish quickly
TEST_DELAY_SECONDS = 0.05


class FailingStore(MemoryKeyValueStore):
    """Memory store whose writes raise while ``fail_writes`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.write_count = 0

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageAccessError(f"write to {key} refused", key=key)
        self.write_count += 1
        super().set_item(key, value)


def make_autosave_config(delay: float = TEST_DELAY_SECONDS) -> AutoSaveConfig:
    config = AutoSaveConfig()
    config.delay_seconds = delay
    return config


@pytest.fixture()
def memory_store():
    return MemoryKeyValueStore()


@pytest.fixture()
def failing_store():
    return FailingStore()


@pytest.fixture()
def sqlite_store(tmp_path):
    store = SqliteKeyValueStore(tmp_path / "kv.sqlite")
    yield store
    store.close()


@pytest.fixture()
def storage(memory_store):
    return UnifiedStorage(memory_store)


@pytest.fixture()
def engine(memory_store):
    """Engine for a premium user, so every item type and save is allowed."""
    return PlannerEngine(
        memory_store,
        can_access=TierAccessPolicy(AccessTier.PREMIUM),
        autosave_config=make_autosave_config(),
    )


@pytest.fixture()
def anonymous_engine(memory_store):
    return PlannerEngine(
        memory_store,
        can_access=TierAccessPolicy(AccessTier.ANONYMOUS),
        autosave_config=make_autosave_config(),
    )
