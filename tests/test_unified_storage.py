"""
Tests for storage/unified.py

Covers read-through caching, corruption recovery, legacy unwrapping,
failed writes leaving the cache untouched, and persistence gating.
"""
import json

from plugins import CountdownPlugin
from storage.adapter import MemoryKeyValueStore
from storage.unified import StorageResult, UnifiedStorage


class TestCollections:
    def test_absent_collection_is_empty(self, storage):
        assert storage.get_collection("widget-configs") == []

    def test_save_and_read(self, storage, memory_store):
        result = storage.save_collection("budget-items", [{"id": "b1"}])
        assert result.ok and result.persisted
        assert storage.get_collection("budget-items") == [{"id": "b1"}]
        assert json.loads(memory_store.get_item("budget-items")) == [{"id": "b1"}]

    def test_returned_list_is_a_copy(self, storage):
        storage.save_collection("budget-items", [{"id": "b1"}])
        items = storage.get_collection("budget-items")
        items.append({"id": "b2"})
        items[0]["id"] = "changed"
        assert storage.get_collection("budget-items") == [{"id": "b1"}]

    def test_reads_are_cached(self, storage, memory_store):
        storage.save_collection("packing-items", [{"id": "p1"}])
        memory_store.set_item("packing-items", "[]")
        # Cache still serves the last written value
        assert storage.get_collection("packing-items") == [{"id": "p1"}]
        storage.clear_cache()
        assert storage.get_collection("packing-items") == []

    def test_key_prefix(self, memory_store):
        storage = UnifiedStorage(memory_store, key_prefix="trip-")
        storage.save_collection("widget-configs", [])
        assert memory_store.get_item("trip-widget-configs") == "[]"
        assert memory_store.get_item("widget-configs") is None


class TestCorruptionRecovery:
    def test_garbage_reads_as_empty(self, storage, memory_store):
        memory_store.set_item("countdown-items", "}}not json{{")
        assert storage.get_collection("countdown-items") == []

    def test_non_list_reads_as_empty(self, storage, memory_store):
        memory_store.set_item("countdown-items", '"just a string"')
        assert storage.get_collection("countdown-items") == []

    def test_write_after_corruption_recovers(self, storage, memory_store):
        memory_store.set_item("countdown-items", "garbage")
        storage.add_item("countdown-items", {"id": "c1"})
        assert storage.get_collection("countdown-items") == [{"id": "c1"}]

    def test_non_object_entries_are_dropped(self, storage, memory_store):
        memory_store.set_item("countdown-items", '[1, "x", {"id": "c1"}, null]')
        assert storage.get_collection("countdown-items") == [{"id": "c1"}]
        assert storage.find_item("countdown-items", "abc") is None
        storage.add_item("countdown-items", {"id": "c2"})
        storage.delete_item("countdown-items", "c1")
        assert json.loads(memory_store.get_item("countdown-items")) == [{"id": "c2"}]

    def test_plugin_reads_survive_non_object_entries(self, storage, memory_store):
        memory_store.set_item("countdown-items", '[1, "x"]')
        plugin = CountdownPlugin(storage)
        assert plugin.get_item("abc") is None
        assert plugin.list_items() == []

    def test_legacy_wrapped_collection_is_unwrapped(self, storage, memory_store):
        memory_store.set_item("countdown-items", json.dumps({"countdowns": [{"id": "c1"}]}))
        assert storage.get_collection("countdown-items") == [{"id": "c1"}]


class TestItemOperations:
    def test_add_replaces_same_id(self, storage):
        storage.add_item("budget-items", {"id": "b1", "name": "A"})
        storage.add_item("budget-items", {"id": "b1", "name": "B"})
        assert storage.get_collection("budget-items") == [{"id": "b1", "name": "B"}]

    def test_update_merges(self, storage):
        storage.add_item("budget-items", {"id": "b1", "name": "A", "total_budget": 10})
        storage.update_item("budget-items", "b1", {"total_budget": 20})
        assert storage.find_item("budget-items", "b1") == {"id": "b1", "name": "A", "total_budget": 20}

    def test_update_cannot_change_id(self, storage):
        storage.add_item("budget-items", {"id": "b1"})
        storage.update_item("budget-items", "b1", {"id": "b2"})
        assert storage.find_item("budget-items", "b1") is not None

    def test_update_missing_is_noop(self, storage, memory_store):
        result = storage.update_item("budget-items", "nope", {"name": "x"})
        assert result.ok
        assert not result.persisted
        assert memory_store.get_item("budget-items") is None

    def test_update_touches_timestamp(self, storage):
        storage.add_item("budget-items", {"id": "b1", "updated_at": "2001-01-01T00:00:00+00:00"})
        storage.update_item("budget-items", "b1", {"name": "x"}, touch_field="updated_at")
        assert storage.find_item("budget-items", "b1")["updated_at"] > "2001-01-01T00:00:00+00:00"

    def test_delete(self, storage):
        storage.add_item("budget-items", {"id": "b1"})
        storage.add_item("budget-items", {"id": "b2"})
        storage.delete_item("budget-items", "b1")
        assert storage.get_collection("budget-items") == [{"id": "b2"}]

    def test_delete_missing_is_noop(self, storage):
        assert storage.delete_item("budget-items", "nope") == StorageResult.noop()


class TestFailedWrites:
    def test_failure_is_returned_not_raised(self, failing_store):
        storage = UnifiedStorage(failing_store)
        failing_store.fail_writes = True
        result = storage.save_collection("widget-configs", [{"id": "w1"}])
        assert not result.ok
        assert "refused" in result.error
        assert not result

    def test_failure_leaves_cache_at_previous_value(self, failing_store):
        storage = UnifiedStorage(failing_store)
        storage.save_collection("widget-configs", [{"id": "w1"}])
        failing_store.fail_writes = True
        storage.save_collection("widget-configs", [{"id": "w2"}])
        assert storage.get_collection("widget-configs") == [{"id": "w1"}]

    def test_quota_failure_flagged(self):
        storage = UnifiedStorage(MemoryKeyValueStore(quota_bytes=30))
        result = storage.save_collection("budget-items", [{"id": "x" * 40}])
        assert not result.ok
        assert result.quota_exceeded


class TestPersistenceGate:
    def test_disabled_persistence_stays_in_memory(self, memory_store):
        storage = UnifiedStorage(memory_store, can_persist=lambda: False)
        result = storage.save_collection("countdown-items", [{"id": "c1"}])
        assert result.ok
        assert not result.persisted
        assert storage.get_collection("countdown-items") == [{"id": "c1"}]
        assert memory_store.get_item("countdown-items") is None

    def test_gate_is_checked_per_write(self, memory_store):
        allowed = {"value": False}
        storage = UnifiedStorage(memory_store, can_persist=lambda: allowed["value"])
        storage.save_collection("countdown-items", [{"id": "c1"}])
        allowed["value"] = True
        storage.save_collection("countdown-items", [{"id": "c1"}, {"id": "c2"}])
        assert len(json.loads(memory_store.get_item("countdown-items"))) == 2


class TestRawData:
    def test_get_data_default(self, storage):
        assert storage.get_data("pending-widget-links", default={}) == {}

    def test_save_and_get_dict(self, storage):
        storage.save_data("current-budget", {"w1": {"total_budget": 5}})
        assert storage.get_data("current-budget") == {"w1": {"total_budget": 5}}

    def test_remove_data(self, storage, memory_store):
        storage.save_data("current-budget", {"w1": {}})
        storage.remove_data("current-budget")
        assert storage.get_data("current-budget") is None
        assert memory_store.get_item("current-budget") is None
