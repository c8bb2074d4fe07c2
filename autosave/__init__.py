"""Debounced auto-save of item and widget drafts."""

from autosave.engine import (
    AutoSaveEngine,
    AutoSaveError,
    AutoSaveTask,
    ItemMissingError,
    SaveOutcome,
    SaveStatus,
    TaskState,
    item_entity_key,
    widget_entity_key,
)
from autosave.ledger import AutoSaveLedger

__all__ = [
    "AutoSaveEngine",
    "AutoSaveError",
    "AutoSaveTask",
    "ItemMissingError",
    "SaveOutcome",
    "SaveStatus",
    "TaskState",
    "item_entity_key",
    "widget_entity_key",
    "AutoSaveLedger",
]
