"""Item plugins and the registry that selects one per item type."""

from plugins.base import ItemPlugin
from plugins.registry import PluginRegistry, UnknownItemTypeError
from plugins.countdown import CountdownPlugin
from plugins.budget import BudgetPlugin
from plugins.packing import PackingPlugin
from plugins.itinerary import ItineraryPlugin
from storage.unified import UnifiedStorage

DEFAULT_PLUGINS: tuple[type[ItemPlugin], ...] = (
    CountdownPlugin,
    BudgetPlugin,
    PackingPlugin,
    ItineraryPlugin,
)


def register_default_plugins(registry: PluginRegistry,
                             storage: UnifiedStorage) -> list[ItemPlugin]:
    """Instantiate and register one plugin per built-in item type."""
    plugins = [cls(storage) for cls in DEFAULT_PLUGINS]
    for plugin in plugins:
        registry.register(plugin)
    return plugins


__all__ = [
    "ItemPlugin",
    "PluginRegistry",
    "UnknownItemTypeError",
    "CountdownPlugin",
    "BudgetPlugin",
    "PackingPlugin",
    "ItineraryPlugin",
    "DEFAULT_PLUGINS",
    "register_default_plugins",
]
