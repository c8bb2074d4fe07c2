"""
Auto-save ledger: bounded history of recent automatic saves.

Each successful auto-save of a saved item appends one record to the
``auto-save-metadata`` collection so a UI can offer "recently edited"
recovery after a reload::

    {"id": "budget-3f2a...", "name": "Spring Break", "type": "budget",
     "entity_key": "budget:budget-3f2a...", "updated_at": "2027-..."}

A later save of the same item replaces its earlier record; only the newest
``limit`` records are kept.
"""

from __future__ import annotations

import logging
from typing import Any

from storage.unified import StorageResult, UnifiedStorage
from utils.common import now_iso
from utils.config import AUTO_SAVE_METADATA

logger = logging.getLogger(__name__)


class AutoSaveLedger:
    def __init__(self, storage: UnifiedStorage, limit: int = 40):
        self.storage = storage
        self.limit = limit

    def record(self, entity_key: str, item_type: str | None = None,
               item_id: str | None = None, name: str | None = None) -> StorageResult:
        """Append a record for *entity_key*, dropping its previous one."""
        entries = [e for e in self.entries() if e.get("entity_key") != entity_key]
        entries.append({
            "entity_key": entity_key,
            "id": item_id,
            "name": name,
            "type": item_type,
            "updated_at": now_iso(),
        })
        result = self.storage.save_collection(AUTO_SAVE_METADATA, entries[-self.limit:])
        if not result.ok:
            logger.warning("auto-save metadata not recorded for %s: %s", entity_key, result.error)
        return result

    def entries(self) -> list[dict[str, Any]]:
        """Records oldest first."""
        return self.storage.get_collection(AUTO_SAVE_METADATA)

    def forget(self, entity_key: str) -> None:
        entries = self.entries()
        remaining = [e for e in entries if e.get("entity_key") != entity_key]
        if len(remaining) != len(entries):
            self.storage.save_collection(AUTO_SAVE_METADATA, remaining)

    def forget_type(self, item_type: str) -> None:
        entries = self.entries()
        remaining = [e for e in entries if e.get("type") != item_type]
        if len(remaining) != len(entries):
            self.storage.save_collection(AUTO_SAVE_METADATA, remaining)

    def clear(self) -> StorageResult:
        return self.storage.save_collection(AUTO_SAVE_METADATA, [])
