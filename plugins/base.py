"""Abstract item plugin.

An ``ItemPlugin`` knows how to create, read, update and delete the saved
items of one ``ItemTypeId`` and how to turn an item into the data a widget
renders. Every call site that needs type-specific behaviour looks the
plugin up in the ``PluginRegistry`` instead of switching on the type.

Delete and clear hooks let other layers (the widget manager, the auto-save
engine) react to item removal without the plugin importing them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar

from pydantic import ValidationError

from plugins.models import ItemBase
from storage.errors import StorageError
from storage.unified import StorageResult, UnifiedStorage
from utils.access import AccessTier, ItemTypeId
from utils.common import deep_clone, generate_id, now_iso
from utils.config import draft_slot, items_collection
from utils.validation import is_valid_item_name
from widgets.models import WidgetInstance, WidgetSize

logger = logging.getLogger(__name__)

DeleteHook = Callable[[str, ItemTypeId], Any]
ClearHook = Callable[[ItemTypeId], Any]

# Fields a caller may never overwrite through update_item
_IMMUTABLE_FIELDS = ("id", "created_at", "updated_at")


class ItemPlugin(ABC):
    """Descriptor and accessor set for one item type."""

    id: ClassVar[ItemTypeId]
    display_name: ClassVar[str]
    description: ClassVar[str] = ""
    required_tier: ClassVar[AccessTier] = AccessTier.ANONYMOUS
    capability: ClassVar[str] = ""
    item_model: ClassVar[type[ItemBase]] = ItemBase
    default_name: ClassVar[str] = "Untitled"
    default_widget_size: ClassVar[WidgetSize] = WidgetSize.MEDIUM
    widget_component: ClassVar[str] = ""

    def __init__(self, storage: UnifiedStorage, widget_component: Any = None):
        self.storage = storage
        self._component = widget_component if widget_component is not None else self.widget_component
        self._delete_hooks: list[DeleteHook] = []
        self._clear_hooks: list[ClearHook] = []

    @property
    def collection(self) -> str:
        return items_collection(self.id)

    # ── Hooks ───────────────────────────────────────────────────────────────

    def on_delete(self, hook: DeleteHook) -> None:
        """Call ``hook(item_id, item_type)`` after an item is deleted."""
        self._delete_hooks.append(hook)

    def on_clear(self, hook: ClearHook) -> None:
        """Call ``hook(item_type)`` after the whole collection is cleared."""
        self._clear_hooks.append(hook)

    # ── Items ───────────────────────────────────────────────────────────────

    @abstractmethod
    def default_payload(self) -> dict[str, Any]:
        """Type-specific fields of a freshly created item."""

    def _parse(self, record: dict[str, Any]) -> ItemBase | None:
        try:
            return self.item_model.model_validate(record)
        except ValidationError as e:
            logger.warning("skipping malformed %s item %s: %s",
                           self.id.value, record.get("id"), e.error_count())
            return None

    def list_items(self) -> list[ItemBase]:
        items = []
        for record in self.storage.get_collection(self.collection):
            parsed = self._parse(record)
            if parsed is not None:
                items.append(parsed)
        return items

    def get_item(self, item_id: str) -> ItemBase | None:
        record = self.storage.find_item(self.collection, item_id)
        if record is None:
            return None
        return self._parse(record)

    def item_exists(self, item_id: str) -> bool:
        return self.storage.find_item(self.collection, item_id) is not None

    def create_default_item(self, name: str | None = None) -> str:
        """Persist a new item with default content and return its id.

        Raises:
            ValueError: *name* is given but blank.
            StorageError: the item could not be written.
        """
        if name is not None and not is_valid_item_name(name):
            raise ValueError("item name must not be blank")
        timestamp = now_iso()
        item = self.item_model.model_validate({
            "id": generate_id(self.id.value),
            "name": name.strip() if name else self.default_name,
            "created_at": timestamp,
            "updated_at": timestamp,
            **self.default_payload(),
        })
        result = self.storage.add_item(self.collection, item.model_dump(mode="json"))
        if not result.ok:
            raise StorageError(f"could not create {self.id.value} item: {result.error}")
        logger.info("created %s item %s", self.id.value, item.id)
        return item.id

    def update_item(self, item_id: str, partial: dict[str, Any]) -> StorageResult:
        """Merge *partial* into the item and bump ``updated_at``.

        Raises:
            ValueError: the merge would produce an invalid item.
        """
        changes = {k: v for k, v in partial.items() if k not in _IMMUTABLE_FIELDS}
        if "name" in changes and not is_valid_item_name(changes["name"]):
            raise ValueError("item name must not be blank")
        current = self.storage.find_item(self.collection, item_id)
        if current is None:
            return StorageResult.noop()
        merged = self.item_model.model_validate({**current, **changes})
        changes = {k: v for k, v in merged.model_dump(mode="json").items() if k in changes}
        return self.storage.update_item(self.collection, item_id, changes, touch_field="updated_at")

    def delete_item(self, item_id: str) -> StorageResult:
        result = self.storage.delete_item(self.collection, item_id)
        if result.ok:
            for hook in self._delete_hooks:
                hook(item_id, self.id)
        return result

    def clear_items(self) -> StorageResult:
        """Delete every item of this type."""
        result = self.storage.save_collection(self.collection, [])
        if result.ok:
            for hook in self._clear_hooks:
                hook(self.id)
        return result

    # ── Widget binding ──────────────────────────────────────────────────────

    def render_data(self, item: ItemBase) -> dict[str, Any]:
        """Data a widget needs to draw *item*; subclasses add derived values."""
        return item.model_dump(mode="json")

    def get_widget_data_for_binding(self, widget_id: str,
                                    item_id: str | None = None) -> dict[str, Any] | None:
        """Render data for the bound item, or ``None`` when it cannot be shown."""
        if not item_id:
            return None
        item = self.get_item(item_id)
        if item is None:
            logger.debug("widget %s references missing %s item %s",
                         widget_id, self.id.value, item_id)
            return None
        try:
            return self.render_data(item)
        except ValueError as e:
            logger.warning("cannot render %s item %s for widget %s: %s",
                           self.id.value, item_id, widget_id, e)
            return None

    def apply_draft_to_live_state(self, widget_id: str, draft: dict[str, Any]) -> StorageResult:
        """Store an unbound widget's in-progress edits in the type's draft slot."""
        slot = self.storage.get_data(draft_slot(self.id), default={})
        if not isinstance(slot, dict):
            slot = {}
        slot[widget_id] = {**deep_clone(draft), "updated_at": now_iso()}
        return self.storage.save_data(draft_slot(self.id), slot)

    def get_live_state(self, widget_id: str) -> dict[str, Any] | None:
        slot = self.storage.get_data(draft_slot(self.id), default={})
        if not isinstance(slot, dict):
            return None
        return slot.get(widget_id)

    def discard_live_state(self, widget_id: str) -> StorageResult:
        slot = self.storage.get_data(draft_slot(self.id), default={})
        if not isinstance(slot, dict) or widget_id not in slot:
            return StorageResult.noop()
        del slot[widget_id]
        return self.storage.save_data(draft_slot(self.id), slot)

    def create_widget(self, widget_id: str, size: WidgetSize | None = None,
                      settings: dict[str, Any] | None = None) -> WidgetInstance:
        """A new widget of this type; its order is assigned when it is added."""
        return WidgetInstance(
            id=widget_id,
            type=self.id,
            size=size or self.default_widget_size,
            settings=settings or {},
        )

    def get_widget_component(self) -> Any:
        return self._component

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id.value,
            "display_name": self.display_name,
            "description": self.description,
            "required_tier": self.required_tier.value,
            "capability": self.capability,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id.value})"
