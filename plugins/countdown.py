"""Countdown plugin: trip start dates rendered as a live countdown."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from plugins.base import ItemPlugin
from plugins.models import CountdownItem, ItemBase
from storage.unified import UnifiedStorage
from utils.access import AccessTier, ItemTypeId
from utils.countdown import countdown_diff
from widgets.models import WidgetSize

DEFAULT_PARK = {"name": "Disney World"}
DEFAULT_LEAD_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CountdownPlugin(ItemPlugin):
    id = ItemTypeId.COUNTDOWN
    display_name = "Trip Countdown"
    description = "Track the days until your trip"
    required_tier = AccessTier.ANONYMOUS
    capability = "countdown"
    item_model = CountdownItem
    default_name = "My Trip"
    default_widget_size = WidgetSize.MEDIUM
    widget_component = "CountdownWidget"

    def __init__(self, storage: UnifiedStorage, widget_component: Any = None,
                 clock: Callable[[], datetime] = _utcnow):
        super().__init__(storage, widget_component)
        self.clock = clock

    def default_payload(self) -> dict[str, Any]:
        target = self.clock() + timedelta(days=DEFAULT_LEAD_DAYS)
        return {
            "target_date": target.isoformat(timespec="milliseconds"),
            "park": dict(DEFAULT_PARK),
            "settings": {},
            "theme": None,
        }

    def _parse(self, record: dict[str, Any]) -> ItemBase | None:
        # Records from older releases carry trip_date or date instead
        if "target_date" not in record:
            legacy = record.get("trip_date") or record.get("date")
            if legacy:
                record = {**record, "target_date": legacy}
        if not record.get("park"):
            record = {**record, "park": dict(DEFAULT_PARK)}
        return super()._parse(record)

    def render_data(self, item: ItemBase) -> dict[str, Any]:
        data = super().render_data(item)
        data["countdown"] = countdown_diff(item.target_date, self.clock()).to_dict()
        return data
