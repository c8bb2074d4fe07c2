"""
Tests for widgets/config_manager.py

Order density, reordering, reference integrity sweeps, pending links,
create-and-link, and no-op behaviour when storage writes fail.
"""
import random

import pytest

from engine import PlannerEngine
from storage.unified import UnifiedStorage
from utils.access import ItemTypeId
from widgets.config_manager import InvalidReorderError, WidgetConfigManager
from widgets.models import WidgetInstance, WidgetSize


def _widget(widget_id, item_type="countdown", **fields):
    return WidgetInstance(id=widget_id, type=item_type, **fields)


def _orders(manager):
    return [c.order for c in manager.get_configs()]


@pytest.fixture()
def manager(storage):
    return WidgetConfigManager(storage)


class TestOrdering:
    def test_add_appends_and_ignores_caller_order(self, manager):
        manager.add_config(_widget("a", order=7))
        manager.add_config(_widget("b", order=0))
        assert [(c.id, c.order) for c in manager.get_configs()] == [("a", 0), ("b", 1)]

    def test_add_accepts_dict(self, manager):
        added = manager.add_config({"id": "a", "type": "budget", "size": "small"})
        assert added.size is WidgetSize.SMALL

    def test_duplicate_id_rejected(self, manager):
        manager.add_config(_widget("a"))
        with pytest.raises(ValueError):
            manager.add_config(_widget("a"))

    def test_remove_middle_redensifies(self, manager):
        for wid in ("a", "b", "c"):
            manager.add_config(_widget(wid))
        assert manager.remove_config("b") is True
        assert [(c.id, c.order) for c in manager.get_configs()] == [("a", 0), ("c", 1)]

    def test_remove_unknown(self, manager):
        assert manager.remove_config("ghost") is False

    def test_order_stays_dense_under_random_operations(self, manager):
        rng = random.Random(1234)
        live = []
        for step in range(60):
            if live and rng.random() < 0.4:
                victim = rng.choice(live)
                manager.remove_config(victim)
                live.remove(victim)
            else:
                wid = f"w{step}"
                manager.add_config(_widget(wid))
                live.append(wid)
            assert _orders(manager) == list(range(len(live)))

    def test_reorder(self, manager):
        for wid in ("a", "b", "c"):
            manager.add_config(_widget(wid))
        result = manager.reorder_widgets(["c", "a", "b"])
        assert [c.id for c in result] == ["c", "a", "b"]
        assert [(c.id, c.order) for c in manager.get_configs()] == [("c", 0), ("a", 1), ("b", 2)]

    @pytest.mark.parametrize("bad_order", [
        ["a", "b"],            # missing c
        ["a", "b", "c", "d"],  # unknown d
        ["a", "a", "b", "c"],  # duplicate a
    ])
    def test_reorder_rejects_non_permutation(self, manager, bad_order):
        for wid in ("a", "b", "c"):
            manager.add_config(_widget(wid))
        with pytest.raises(InvalidReorderError):
            manager.reorder_widgets(bad_order)
        assert [c.id for c in manager.get_configs()] == ["a", "b", "c"]

    def test_invalid_reorder_is_value_error(self):
        assert issubclass(InvalidReorderError, ValueError)


class TestUpdate:
    def test_update_merges(self, manager):
        manager.add_config(_widget("a"))
        updated = manager.update_config("a", {"size": "large", "settings": {"theme": "dark"}})
        assert updated.size is WidgetSize.LARGE
        assert manager.get_config("a").settings == {"theme": "dark"}

    def test_update_unknown_is_noop(self, manager):
        assert manager.update_config("ghost", {"size": "large"}) is None
        assert manager.get_configs() == []

    def test_update_cannot_move_or_rename(self, manager):
        manager.add_config(_widget("a"))
        manager.add_config(_widget("b"))
        manager.update_config("a", {"order": 5, "id": "z"})
        assert [(c.id, c.order) for c in manager.get_configs()] == [("a", 0), ("b", 1)]

    def test_update_invalid_size_rejected(self, manager):
        manager.add_config(_widget("a"))
        with pytest.raises(ValueError):
            manager.update_config("a", {"size": "gigantic"})


class TestFailureSemantics:
    def test_failed_add_is_noop(self, failing_store):
        manager = WidgetConfigManager(UnifiedStorage(failing_store))
        manager.add_config(_widget("a"))
        failing_store.fail_writes = True
        assert manager.add_config(_widget("b")) is None
        assert [c.id for c in manager.get_configs()] == ["a"]

    def test_failed_remove_is_noop(self, failing_store):
        manager = WidgetConfigManager(UnifiedStorage(failing_store))
        manager.add_config(_widget("a"))
        failing_store.fail_writes = True
        assert manager.remove_config("a") is False
        assert manager.get_config("a") is not None

    def test_failed_reorder_keeps_previous_order(self, failing_store):
        manager = WidgetConfigManager(UnifiedStorage(failing_store))
        manager.add_config(_widget("a"))
        manager.add_config(_widget("b"))
        failing_store.fail_writes = True
        manager.reorder_widgets(["b", "a"])
        assert [c.id for c in manager.get_configs()] == ["a", "b"]

    def test_malformed_stored_widget_is_dropped(self, storage, manager):
        storage.save_collection("widget-configs", [
            {"id": "a", "type": "countdown", "order": 0},
            {"id": "b", "type": "weather", "order": 1},
        ])
        assert [c.id for c in manager.get_configs()] == ["a"]


class TestReferenceIntegrity:
    def test_trip_scenario(self, engine):
        countdown = engine.registry.get_plugin("countdown")
        item_id = countdown.create_default_item("Trip")
        widget = engine.widgets.create_widget("countdown")
        engine.widgets.update_config(widget.id, {"selected_item_id": item_id})
        assert engine.widgets.get_config(widget.id).selected_item_id == item_id

        countdown.delete_item(item_id)
        engine.widgets.cleanup_deleted_item_references(item_id, "countdown")
        assert engine.widgets.get_config(widget.id).selected_item_id is None

    def test_delete_sweeps_only_matching_widgets(self, engine):
        budget = engine.registry.get_plugin("budget")
        keep_id = budget.create_default_item("Keep")
        drop_id = budget.create_default_item("Drop")
        w1 = engine.widgets.create_widget("budget")
        w2 = engine.widgets.create_widget("budget")
        engine.widgets.update_config(w1.id, {"selected_item_id": drop_id})
        engine.widgets.update_config(w2.id, {"selected_item_id": keep_id})

        budget.delete_item(drop_id)
        assert engine.widgets.get_config(w1.id).selected_item_id is None
        assert engine.widgets.get_config(w2.id).selected_item_id == keep_id
        for config in engine.widgets.get_configs():
            assert not (config.type is ItemTypeId.BUDGET and config.selected_item_id == drop_id)

    def test_sweep_ignores_other_types(self, storage, manager):
        storage.save_collection("widget-configs", [
            {"id": "a", "type": "countdown", "order": 0, "selected_item_id": "x"},
            {"id": "b", "type": "budget", "order": 1, "selected_item_id": "x"},
        ])
        assert manager.cleanup_deleted_item_references("x", "countdown") == 1
        assert manager.get_config("a").selected_item_id is None
        assert manager.get_config("b").selected_item_id == "x"

    def test_clear_collection_sweeps_all(self, engine):
        packing = engine.registry.get_plugin("packing")
        w1 = engine.widgets.create_widget("packing")
        w2 = engine.widgets.create_widget("packing")
        engine.widgets.update_config(w1.id, {"selected_item_id": packing.create_default_item()})
        engine.widgets.update_config(w2.id, {"selected_item_id": packing.create_default_item()})
        packing.clear_items()
        assert all(c.selected_item_id is None for c in engine.widgets.get_configs())

    def test_binding_missing_item_rejected(self, engine):
        widget = engine.widgets.create_widget("budget")
        with pytest.raises(ValueError):
            engine.widgets.update_config(widget.id, {"selected_item_id": "no-such-item"})

    def test_binding_item_of_other_type_rejected(self, engine):
        countdown_id = engine.registry.get_plugin("countdown").create_default_item()
        widget = engine.widgets.create_widget("budget")
        with pytest.raises(ValueError):
            engine.widgets.update_config(widget.id, {"selected_item_id": countdown_id})

    def test_validate_and_cleanup_dangling(self, engine):
        storage = engine.storage
        widget = engine.widgets.create_widget("itinerary")
        # Simulate a reference written behind the manager's back
        records = storage.get_collection("widget-configs")
        records[0]["selected_item_id"] = "vanished"
        storage.save_collection("widget-configs", records)

        assert engine.widgets.validate_and_cleanup_item_reference(widget.id) is False
        assert engine.widgets.get_config(widget.id).selected_item_id is None
        assert engine.widgets.validate_and_cleanup_item_reference(widget.id) is True

    def test_selected_item_data(self, engine):
        budget = engine.registry.get_plugin("budget")
        item_id = budget.create_default_item("Spring")
        widget = engine.widgets.create_widget("budget")
        assert engine.widgets.get_selected_item_data(widget.id) is None
        engine.widgets.update_config(widget.id, {"selected_item_id": item_id})
        assert engine.widgets.get_selected_item_data(widget.id)["name"] == "Spring"


class TestLinking:
    def test_create_widget_uses_plugin_defaults(self, engine):
        widget = engine.widgets.create_widget("packing")
        assert widget.type is ItemTypeId.PACKING
        assert widget.size is WidgetSize.SMALL
        assert widget.order == 0

    def test_create_and_link(self, engine):
        widget = engine.widgets.create_widget("countdown")
        item_id = engine.widgets.create_and_link_item(widget.id, "Trip")
        assert engine.widgets.get_config(widget.id).selected_item_id == item_id
        assert engine.registry.get_plugin("countdown").get_item(item_id).name == "Trip"

    def test_create_and_link_unknown_widget(self, engine):
        assert engine.widgets.create_and_link_item("ghost") is None

    def test_pending_link_applied_to_oldest_waiting_widget(self, engine):
        first = engine.widgets.create_widget("budget")
        second = engine.widgets.create_widget("budget")
        engine.widgets.set_pending_link(first.id, "budget")
        engine.widgets.set_pending_link(second.id, "budget")

        item_id = engine.registry.get_plugin("budget").create_default_item()
        linked = engine.widgets.check_and_apply_pending_links(item_id, "budget")
        assert linked in (first.id, second.id)
        assert engine.widgets.get_config(linked).selected_item_id == item_id
        assert linked not in engine.widgets.get_pending_links()
        assert len(engine.widgets.get_pending_links()) == 1

    def test_pending_link_type_must_match(self, engine):
        widget = engine.widgets.create_widget("budget")
        engine.widgets.set_pending_link(widget.id, "budget")
        packing_id = engine.registry.get_plugin("packing").create_default_item()
        assert engine.widgets.check_and_apply_pending_links(packing_id, "packing") is None
        assert widget.id in engine.widgets.get_pending_links()

    def test_pending_link_for_removed_widget_is_dropped(self, engine):
        widget = engine.widgets.create_widget("budget")
        engine.widgets.set_pending_link(widget.id, "budget")
        engine.widgets.remove_config(widget.id)
        assert engine.widgets.get_pending_links() == {}

    def test_remove_widget_discards_live_state(self, engine):
        widget = engine.widgets.create_widget("budget")
        budget = engine.registry.get_plugin("budget")
        budget.apply_draft_to_live_state(widget.id, {"total_budget": 5})
        engine.widgets.remove_config(widget.id)
        assert budget.get_live_state(widget.id) is None

    def test_item_operations_need_registry(self, manager):
        manager.add_config(_widget("a"))
        with pytest.raises(RuntimeError):
            manager.create_and_link_item("a")


class TestPersistence:
    def test_layout_survives_restart(self, tmp_path):
        from storage.adapter import SqliteKeyValueStore

        path = tmp_path / "kv.sqlite"
        store = SqliteKeyValueStore(path)
        first = PlannerEngine(store)
        for item_type in ("countdown", "budget", "packing"):
            first.widgets.create_widget(item_type)
        store.close()

        store = SqliteKeyValueStore(path)
        try:
            second = PlannerEngine(store)
            assert [c.type.value for c in second.widgets.get_configs()] == ["countdown", "budget", "packing"]
            assert [c.order for c in second.widgets.get_configs()] == [0, 1, 2]
        finally:
            store.close()
