"""Widget Configuration Manager.

Owns the ordered widget layout stored in the ``widget-configs`` collection
and keeps it consistent:

  - ``order`` values are always ``0..n-1`` with no gaps or duplicates
  - a widget's ``selected_item_id`` is ``None`` or an existing item of the
    widget's own type
  - pending links (a widget waiting for its first saved item) are tracked
    in ``pending-widget-links``

Storage failures are logged and turn the operation into a no-op; the
in-memory layout is never ahead of the stored one.
"""

import logging
from typing import Any

from pydantic import ValidationError

from plugins.registry import PluginRegistry
from storage.errors import StorageError
from storage.unified import UnifiedStorage
from utils.access import ItemTypeId
from utils.common import generate_id, now_iso
from utils.config import PENDING_WIDGET_LINKS, WIDGET_CONFIGS
from utils.validation import check_reorder_permutation
from widgets.models import WidgetInstance, WidgetSize

logger = logging.getLogger(__name__)


class InvalidReorderError(ValueError):
    """The requested order is not a permutation of the current widget ids."""


class WidgetConfigManager:
    """CRUD and integrity maintenance for the widget layout.

    Args:
        storage: Unified Storage holding the layout.
        registry: Plugin registry used to resolve widget types. Optional for
            pure layout work; required for item binding operations.
    """

    def __init__(self, storage: UnifiedStorage, registry: PluginRegistry | None = None,
                 collection: str = WIDGET_CONFIGS):
        self.storage = storage
        self.registry = registry
        self.collection = collection

    # ── Persistence ─────────────────────────────────────────────────────────

    def _load(self) -> list[WidgetInstance]:
        configs = []
        for record in self.storage.get_collection(self.collection):
            try:
                configs.append(WidgetInstance.model_validate(record))
            except ValidationError as e:
                logger.warning("dropping malformed widget config %s: %d errors",
                               record.get("id") if isinstance(record, dict) else record,
                               e.error_count())
        configs.sort(key=lambda c: c.order)
        return configs

    def _save(self, configs: list[WidgetInstance], action: str) -> bool:
        result = self.storage.save_collection(self.collection, [c.to_record() for c in configs])
        if not result.ok:
            logger.error("widget layout not saved (%s): %s", action, result.error)
        return result.ok

    @staticmethod
    def _densify(configs: list[WidgetInstance]) -> list[WidgetInstance]:
        return [c.model_copy(update={"order": i}) for i, c in enumerate(configs)]

    # ── Queries ─────────────────────────────────────────────────────────────

    def get_configs(self) -> list[WidgetInstance]:
        """All widgets sorted by order."""
        return self._load()

    def get_config(self, widget_id: str) -> WidgetInstance | None:
        for config in self._load():
            if config.id == widget_id:
                return config
        return None

    # ── Mutations ───────────────────────────────────────────────────────────

    def add_config(self, instance: WidgetInstance | dict[str, Any]) -> WidgetInstance | None:
        """Append a widget at the end of the layout.

        The caller's ``order`` is ignored; the widget gets the next free
        position. Returns the stored widget, or ``None`` if the write failed.
        """
        if isinstance(instance, dict):
            instance = WidgetInstance.model_validate(instance)
        configs = self._load()
        if any(c.id == instance.id for c in configs):
            raise ValueError(f"widget {instance.id} already exists")
        if instance.selected_item_id is not None:
            self._check_item_reference(instance.type, instance.selected_item_id)
        added = instance.model_copy(update={"order": len(configs)})
        configs.append(added)
        if not self._save(configs, "add"):
            return None
        logger.info("added %s widget %s at position %d",
                    added.type.value, added.id, added.order)
        return added

    def create_widget(self, item_type: ItemTypeId | str, size: WidgetSize | None = None,
                      settings: dict[str, Any] | None = None) -> WidgetInstance | None:
        """Build a default widget through the type's plugin and append it."""
        plugin = self._require_registry().require(item_type)
        instance = plugin.create_widget(generate_id("widget"), size=size, settings=settings)
        return self.add_config(instance)

    def update_config(self, widget_id: str, partial: dict[str, Any]) -> WidgetInstance | None:
        """Merge *partial* into a widget.

        ``id`` and ``order`` are managed here and cannot be changed this way;
        use ``reorder_widgets`` to move widgets. Unknown ids are a no-op.

        Raises:
            ValueError: the merged widget is invalid or binds a missing item.
        """
        changes = {k: v for k, v in partial.items() if k not in ("id", "order")}
        configs = self._load()
        for index, config in enumerate(configs):
            if config.id != widget_id:
                continue
            merged = WidgetInstance.model_validate({**config.to_record(), **changes})
            if merged.type != config.type and "selected_item_id" not in changes:
                merged = merged.model_copy(update={"selected_item_id": None})
            if "selected_item_id" in changes and merged.selected_item_id is not None:
                self._check_item_reference(merged.type, merged.selected_item_id)
            configs[index] = merged
            if not self._save(configs, "update"):
                return None
            return merged
        logger.debug("update of unknown widget %s ignored", widget_id)
        return None

    def remove_config(self, widget_id: str) -> bool:
        """Remove a widget and close the gap it leaves in the ordering."""
        configs = self._load()
        removed = next((c for c in configs if c.id == widget_id), None)
        if removed is None:
            return False
        remaining = self._densify([c for c in configs if c.id != widget_id])
        if not self._save(remaining, "remove"):
            return False
        self.clear_pending_link(widget_id)
        if self.registry is not None:
            plugin = self.registry.get_plugin(removed.type)
            if plugin is not None:
                plugin.discard_live_state(widget_id)
        logger.info("removed widget %s", widget_id)
        return True

    def reorder_widgets(self, new_order: list[str]) -> list[WidgetInstance]:
        """Reassign order to match *new_order*, which must list every widget once.

        Raises:
            InvalidReorderError: *new_order* has duplicates, unknown ids, or
                omits an existing widget.
        """
        configs = self._load()
        check = check_reorder_permutation([c.id for c in configs], new_order)
        if not check.is_valid():
            raise InvalidReorderError(check.summary_text())
        by_id = {c.id: c for c in configs}
        reordered = self._densify([by_id[wid] for wid in new_order])
        if not self._save(reordered, "reorder"):
            return configs
        return reordered

    # ── Reference integrity ─────────────────────────────────────────────────

    def cleanup_deleted_item_references(self, item_id: str, item_type: ItemTypeId | str) -> int:
        """Unbind every widget of *item_type* that shows *item_id*.

        Returns the number of widgets changed.
        """
        item_type = ItemTypeId(item_type)
        configs = self._load()
        changed = 0
        for index, config in enumerate(configs):
            if config.type == item_type and config.selected_item_id == item_id:
                configs[index] = config.model_copy(update={"selected_item_id": None})
                changed += 1
        if changed and not self._save(configs, "cleanup"):
            return 0
        if changed:
            logger.info("cleared %d widget reference(s) to deleted %s item %s",
                        changed, item_type.value, item_id)
        return changed

    def cleanup_all_item_references(self, item_type: ItemTypeId | str) -> int:
        """Unbind every widget of *item_type*; used after a collection is cleared."""
        item_type = ItemTypeId(item_type)
        configs = self._load()
        changed = 0
        for index, config in enumerate(configs):
            if config.type == item_type and config.selected_item_id is not None:
                configs[index] = config.model_copy(update={"selected_item_id": None})
                changed += 1
        if changed and not self._save(configs, "cleanup-all"):
            return 0
        return changed

    def validate_and_cleanup_item_reference(self, widget_id: str) -> bool:
        """Clear a dangling ``selected_item_id``.

        Returns True if the widget's reference is valid (or it has none),
        False if it was dangling and has been cleared.
        """
        config = self.get_config(widget_id)
        if config is None or config.selected_item_id is None:
            return True
        plugin = self._require_registry().get_plugin(config.type)
        if plugin is not None and plugin.item_exists(config.selected_item_id):
            return True
        logger.warning("widget %s referenced missing %s item %s; clearing",
                       widget_id, config.type.value, config.selected_item_id)
        self.cleanup_deleted_item_references(config.selected_item_id, config.type)
        return False

    def get_selected_item_data(self, widget_id: str) -> dict[str, Any] | None:
        """Render data for the item a widget shows, or ``None``."""
        config = self.get_config(widget_id)
        if config is None:
            return None
        plugin = self._require_registry().get_plugin(config.type)
        if plugin is None:
            return None
        return plugin.get_widget_data_for_binding(widget_id, config.selected_item_id)

    # ── Pending links ───────────────────────────────────────────────────────

    def get_pending_links(self) -> dict[str, dict[str, Any]]:
        links = self.storage.get_data(PENDING_WIDGET_LINKS, default={})
        return links if isinstance(links, dict) else {}

    def set_pending_link(self, widget_id: str, item_type: ItemTypeId | str) -> bool:
        """Mark *widget_id* as waiting for the next saved item of *item_type*."""
        links = self.get_pending_links()
        links[widget_id] = {"widget_type": ItemTypeId(item_type).value, "created_at": now_iso()}
        result = self.storage.save_data(PENDING_WIDGET_LINKS, links)
        if not result.ok:
            logger.error("pending link for %s not saved: %s", widget_id, result.error)
        return result.ok

    def clear_pending_link(self, widget_id: str) -> None:
        links = self.get_pending_links()
        if links.pop(widget_id, None) is not None:
            result = self.storage.save_data(PENDING_WIDGET_LINKS, links)
            if not result.ok:
                logger.error("pending link for %s not cleared: %s", widget_id, result.error)

    def check_and_apply_pending_links(self, item_id: str,
                                      item_type: ItemTypeId | str) -> str | None:
        """Bind *item_id* to the oldest widget waiting for an item of its type.

        Returns the linked widget id, or ``None`` if no widget was waiting.
        """
        item_type = ItemTypeId(item_type)
        waiting = sorted(
            (link.get("created_at", ""), widget_id)
            for widget_id, link in self.get_pending_links().items()
            if link.get("widget_type") == item_type.value
        )
        for _, widget_id in waiting:
            config = self.get_config(widget_id)
            if config is None:
                self.clear_pending_link(widget_id)
                continue
            if self.update_config(widget_id, {"selected_item_id": item_id}) is None:
                return None
            self.clear_pending_link(widget_id)
            logger.info("linked %s item %s to waiting widget %s",
                        item_type.value, item_id, widget_id)
            return widget_id
        return None

    def create_and_link_item(self, widget_id: str, name: str | None = None) -> str | None:
        """Create a default item of the widget's type and bind it to the widget."""
        config = self.get_config(widget_id)
        if config is None:
            return None
        plugin = self._require_registry().require(config.type)
        try:
            item_id = plugin.create_default_item(name)
        except StorageError as e:
            logger.error("could not create item for widget %s: %s", widget_id, e)
            return None
        if self.update_config(widget_id, {"selected_item_id": item_id}) is None:
            return None
        self.clear_pending_link(widget_id)
        return item_id

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _require_registry(self) -> PluginRegistry:
        if self.registry is None:
            raise RuntimeError("WidgetConfigManager needs a PluginRegistry for item operations")
        return self.registry

    def _check_item_reference(self, item_type: ItemTypeId, item_id: str) -> None:
        if self.registry is None:
            return
        plugin = self.registry.require(item_type)
        if not plugin.item_exists(item_id):
            raise ValueError(f"no {item_type.value} item with id {item_id}")
