"""Itinerary plugin: day-by-day trip plans."""

from typing import Any

from plugins.base import ItemPlugin
from plugins.models import ItemBase, ItineraryItem
from utils.access import AccessTier, ItemTypeId
from widgets.models import WidgetSize


class ItineraryPlugin(ItemPlugin):
    id = ItemTypeId.ITINERARY
    display_name = "Trip Planner"
    description = "Plan your daily itinerary"
    required_tier = AccessTier.PREMIUM
    capability = "tripPlanner"
    item_model = ItineraryItem
    default_name = "My Trip Plan"
    default_widget_size = WidgetSize.LARGE
    widget_component = "PlannerWidget"

    def default_payload(self) -> dict[str, Any]:
        return {"days": []}

    def render_data(self, item: ItemBase) -> dict[str, Any]:
        data = super().render_data(item)
        dates = sorted(day.date for day in item.days)
        data["overview"] = {
            "day_count": len(item.days),
            "activity_count": sum(len(day.activities) for day in item.days),
            "first_date": dates[0] if dates else None,
            "last_date": dates[-1] if dates else None,
        }
        return data
