"""Dashboard widget layout."""

from widgets.models import WidgetInstance, WidgetSize
from widgets.config_manager import InvalidReorderError, WidgetConfigManager

__all__ = [
    "WidgetInstance",
    "WidgetSize",
    "InvalidReorderError",
    "WidgetConfigManager",
]
