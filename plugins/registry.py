"""Plugin registry: one ``ItemPlugin`` per ``ItemTypeId``."""

import logging
from typing import TYPE_CHECKING

from utils.access import ItemTypeId

if TYPE_CHECKING:
    from plugins.base import ItemPlugin

logger = logging.getLogger(__name__)


class UnknownItemTypeError(KeyError):
    """No plugin is registered for the requested item type."""


class PluginRegistry:
    """Registration-ordered map from item type to plugin.

    Registering a second plugin for the same type replaces the first and
    keeps its original position. There is no removal.
    """

    def __init__(self) -> None:
        self._plugins: dict[ItemTypeId, "ItemPlugin"] = {}

    def register(self, plugin: "ItemPlugin") -> None:
        if plugin.id in self._plugins:
            logger.info("replacing plugin for %s", plugin.id.value)
        self._plugins[plugin.id] = plugin

    def get_plugin(self, item_type: ItemTypeId | str) -> "ItemPlugin | None":
        try:
            return self._plugins.get(ItemTypeId(item_type))
        except ValueError:
            return None

    def require(self, item_type: ItemTypeId | str) -> "ItemPlugin":
        """Like ``get_plugin`` but raises ``UnknownItemTypeError`` when absent."""
        plugin = self.get_plugin(item_type)
        if plugin is None:
            raise UnknownItemTypeError(f"no plugin registered for item type {item_type!r}")
        return plugin

    def get_all_plugins(self) -> list["ItemPlugin"]:
        return list(self._plugins.values())

    def __contains__(self, item_type: object) -> bool:
        return self.get_plugin(item_type) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._plugins)
