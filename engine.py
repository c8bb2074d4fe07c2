"""
PlannerEngine: constructs and wires the storage, plugin, widget and
auto-save layers once.

Construction order matters only in one place: item-deletion hooks are
installed on every plugin so that deleting an item sweeps widget references
and abandons pending auto-saves for it.

Usage::

    engine = PlannerEngine.from_config(AppConfig.from_env())
    widget = engine.widgets.create_widget("budget")
    item_id = engine.widgets.create_and_link_item(widget.id)
"""

from __future__ import annotations

import logging

from autosave.engine import AutoSaveEngine
from autosave.ledger import AutoSaveLedger
from plugins import DEFAULT_PLUGINS, ItemPlugin, PluginRegistry
from storage.adapter import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from storage.unified import UnifiedStorage
from utils.access import CanAccess, TierAccessPolicy, allow_all
from utils.config import AppConfig, AutoSaveConfig, StorageConfig
from widgets.config_manager import WidgetConfigManager

logger = logging.getLogger(__name__)


def open_store(config: StorageConfig) -> KeyValueStore:
    """Create the key-value medium named by ``config.backend``."""
    if config.backend == "memory":
        return MemoryKeyValueStore(quota_bytes=config.quota_bytes)
    if config.backend == "sqlite":
        return SqliteKeyValueStore(config.db_path)
    raise ValueError(f"unknown storage backend {config.backend!r} (expected memory or sqlite)")


class PlannerEngine:
    """All engine components for one user session.

    Args:
        store: Key-value medium.
        can_access: Capability predicate; also decides whether writes reach
            the medium at all (``saveData``).
        key_prefix: Prepended to every stored key.
        autosave_config: Debounce and ledger settings.
    """

    def __init__(self, store: KeyValueStore, can_access: CanAccess = allow_all,
                 key_prefix: str = "", autosave_config: AutoSaveConfig | None = None):
        self.autosave_config = autosave_config or AutoSaveConfig()
        self.can_access = can_access
        self.store = store
        self.storage = UnifiedStorage(
            store,
            key_prefix=key_prefix,
            can_persist=lambda: can_access(self.autosave_config.capability),
        )
        self.registry = PluginRegistry()
        self.widgets = WidgetConfigManager(self.storage, self.registry)
        self.ledger = AutoSaveLedger(self.storage, limit=self.autosave_config.metadata_limit)
        self.autosave = AutoSaveEngine(can_access, self.autosave_config,
                                       registry=self.registry, ledger=self.ledger)
        for plugin_cls in DEFAULT_PLUGINS:
            self.attach(plugin_cls(self.storage))

    @classmethod
    def from_config(cls, config: AppConfig) -> "PlannerEngine":
        store = open_store(config.storage_config())
        policy = TierAccessPolicy(config.user_tier)
        logger.info("engine ready: backend=%s tier=%s", config.storage_backend, policy.tier.value)
        return cls(store, can_access=policy, key_prefix=config.key_prefix,
                   autosave_config=config.autosave_config())

    def attach(self, plugin: ItemPlugin) -> None:
        """Register *plugin* (replacing any for its type) and install its hooks."""
        self.registry.register(plugin)
        plugin.on_delete(self.widgets.cleanup_deleted_item_references)
        plugin.on_delete(self.autosave.discard_item)
        plugin.on_clear(self.widgets.cleanup_all_item_references)
        plugin.on_clear(self.autosave.discard_item_type)

    async def shutdown(self) -> None:
        """Flush dirty drafts, stop all timers and close the medium."""
        await self.autosave.flush_all()
        await self.autosave.wait_idle()
        self.autosave.close_all()
        self.store.close()
