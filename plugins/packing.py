"""Packing plugin: weather-aware packing checklists."""

from typing import Any

from plugins.base import ItemPlugin
from plugins.models import ItemBase, PackingItem
from utils.access import AccessTier, ItemTypeId
from widgets.models import WidgetSize

PACKING_CATEGORIES = ("clothing", "toiletries", "electronics", "documents", "other")


class PackingPlugin(ItemPlugin):
    id = ItemTypeId.PACKING
    display_name = "Packing List"
    description = "Create and manage your packing checklist"
    required_tier = AccessTier.ANONYMOUS
    capability = "packing"
    item_model = PackingItem
    default_name = "My Packing List"
    default_widget_size = WidgetSize.SMALL
    widget_component = "PackingWidget"

    def default_payload(self) -> dict[str, Any]:
        return {"items": [], "selected_weather": []}

    def render_data(self, item: ItemBase) -> dict[str, Any]:
        data = super().render_data(item)
        total = len(item.items)
        checked = sum(1 for entry in item.items if entry.is_checked)
        data["progress"] = {
            "total": total,
            "checked": checked,
            "percent": round(100 * checked / total) if total else 0,
            "essentials_remaining": sum(
                1 for entry in item.items if entry.is_essential and not entry.is_checked
            ),
        }
        return data
