"""
Auto-Save Engine: debounced, serialized write-back of edits.

Each edited entity (a saved item, or an unbound widget's scratch state) has
one ``AutoSaveTask``. ``update()`` records the latest draft and (re)starts a
debounce timer on the running asyncio loop; when the timer fires the task
saves whatever draft is newest at that moment, so a burst of edits produces
one write and an older draft is never written after a newer one.

Saves for one task run under that task's ``asyncio.Lock``. A draft equal to
the last persisted snapshot is never written by the timer path;
``force_save`` writes regardless.

Before every write the engine asks ``can_access(capability)``. A denial is
not an error: the draft stays in memory, the task stays dirty, and an INFO
line is logged.

Save callables may be plain functions or coroutines. A return value of
``StorageResult(ok=False)`` or a raised exception counts as a failure: the
error is recorded on the task, ``on_error`` is called, and the task stays
dirty so the next edit or ``force_save`` retries.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from autosave.ledger import AutoSaveLedger
from plugins.registry import PluginRegistry
from storage.unified import StorageResult
from utils.access import CanAccess, ItemTypeId, allow_all
from utils.common import deep_clone, now_iso, serialize
from utils.config import AutoSaveConfig

logger = logging.getLogger(__name__)

SaveCallable = Callable[[Any], Any]
SaveCallback = Callable[[Any], Any]
ErrorCallback = Callable[[Exception], Any]

# Fields of a saved item that a draft never carries
_ITEM_METADATA_FIELDS = ("id", "created_at", "updated_at")


class AutoSaveError(Exception):
    """A save callable reported failure through its return value."""


class ItemMissingError(AutoSaveError):
    """The item a task writes to has been deleted."""


class TaskState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class SaveOutcome:
    status: SaveStatus
    error: Optional[str] = None
    saved_at: Optional[str] = None


def item_entity_key(item_type: ItemTypeId | str, item_id: str) -> str:
    return f"{ItemTypeId(item_type).value}:{item_id}"


def widget_entity_key(item_type: ItemTypeId | str, widget_id: str) -> str:
    return f"{ItemTypeId(item_type).value}:widget:{widget_id}"


class AutoSaveTask:
    """Debounce and persistence state for one entity."""

    def __init__(self, entity_key: str, save_fn: SaveCallable,
                 initial: Any = None,
                 on_save: SaveCallback | None = None,
                 on_error: ErrorCallback | None = None,
                 item_type: ItemTypeId | None = None,
                 item_id: str | None = None):
        self.entity_key = entity_key
        self.save_fn = save_fn
        self.on_save = on_save
        self.on_error = on_error
        self.item_type = item_type
        self.item_id = item_id

        self.latest_draft: Any = None
        self.pending_timer: asyncio.TimerHandle | None = None
        self.last_persisted_snapshot: Any = deep_clone(initial)
        self._persisted_serialized: str | None = (
            serialize(initial) if initial is not None else None
        )
        self.in_flight = False
        self.last_error: str | None = None
        self.last_saved_at: str | None = None
        self.save_count = 0
        self.closed = False
        self.lock = asyncio.Lock()

    @property
    def is_dirty(self) -> bool:
        if self.latest_draft is None:
            return False
        return serialize(self.latest_draft) != self._persisted_serialized

    @property
    def state(self) -> TaskState:
        if self.in_flight:
            return TaskState.SAVING
        if self.pending_timer is not None:
            return TaskState.PENDING
        return TaskState.IDLE

    def mark_persisted(self, snapshot: Any) -> None:
        self.last_persisted_snapshot = deep_clone(snapshot)
        self._persisted_serialized = serialize(snapshot)
        self.last_error = None
        self.last_saved_at = now_iso()
        self.save_count += 1

    def status(self) -> dict[str, Any]:
        return {
            "entity_key": self.entity_key,
            "state": self.state.value,
            "dirty": self.is_dirty,
            "last_error": self.last_error,
            "last_saved_at": self.last_saved_at,
            "save_count": self.save_count,
        }

    def __repr__(self) -> str:
        return f"AutoSaveTask({self.entity_key!r}, state={self.state.value}, dirty={self.is_dirty})"


class AutoSaveEngine:
    """Owns every ``AutoSaveTask`` and the timers that drive them.

    ``update`` schedules work on the running event loop and must be called
    from inside it.

    Args:
        can_access: Capability predicate consulted before every write.
        config: Debounce delay, gating capability and ledger size.
        registry: Needed by ``bind_item`` and ``bind_widget_draft``.
        ledger: Optional record of successful item saves.
    """

    def __init__(self, can_access: CanAccess = allow_all,
                 config: AutoSaveConfig | None = None,
                 registry: PluginRegistry | None = None,
                 ledger: AutoSaveLedger | None = None):
        self.config = config or AutoSaveConfig()
        self.can_access = can_access
        self.registry = registry
        self.ledger = ledger
        self._tasks: dict[str, AutoSaveTask] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self.config.delay_seconds

    # ── Task lifecycle ──────────────────────────────────────────────────────

    def open(self, entity_key: str, save_fn: SaveCallable, *, initial: Any = None,
             on_save: SaveCallback | None = None, on_error: ErrorCallback | None = None,
             item_type: ItemTypeId | None = None, item_id: str | None = None) -> AutoSaveTask:
        """Create the task for *entity_key*, or return the existing one.

        Callbacks passed for an existing task replace its current ones.
        """
        task = self._tasks.get(entity_key)
        if task is not None:
            if on_save is not None:
                task.on_save = on_save
            if on_error is not None:
                task.on_error = on_error
            return task
        task = AutoSaveTask(entity_key, save_fn, initial=initial, on_save=on_save,
                            on_error=on_error, item_type=item_type, item_id=item_id)
        self._tasks[entity_key] = task
        logger.debug("opened auto-save task %s", entity_key)
        return task

    def bind_item(self, item_type: ItemTypeId | str, item_id: str, *,
                  on_save: SaveCallback | None = None,
                  on_error: ErrorCallback | None = None) -> AutoSaveTask:
        """Auto-save drafts of a saved item through its plugin's ``update_item``.

        The draft is the item's editable payload (everything except ``id``,
        ``created_at`` and ``updated_at``).

        Raises:
            KeyError: no plugin for *item_type* or no such item.
        """
        plugin = self._require_registry().require(item_type)
        key = item_entity_key(plugin.id, item_id)
        if key in self._tasks:
            return self.open(key, self._tasks[key].save_fn, on_save=on_save, on_error=on_error)
        item = plugin.get_item(item_id)
        if item is None:
            raise KeyError(f"no {plugin.id.value} item with id {item_id}")
        initial = {k: v for k, v in item.model_dump(mode="json").items()
                   if k not in _ITEM_METADATA_FIELDS}
        def save_item(draft: dict[str, Any]) -> StorageResult:
            if not plugin.item_exists(item_id):
                raise ItemMissingError(f"{plugin.id.value} item {item_id} no longer exists")
            return plugin.update_item(item_id, draft)

        return self.open(key, save_item,
                         initial=initial, on_save=on_save, on_error=on_error,
                         item_type=plugin.id, item_id=item_id)

    def bind_widget_draft(self, item_type: ItemTypeId | str, widget_id: str, *,
                          on_save: SaveCallback | None = None,
                          on_error: ErrorCallback | None = None) -> AutoSaveTask:
        """Auto-save an unbound widget's edits into the type's draft slot."""
        plugin = self._require_registry().require(item_type)
        key = widget_entity_key(plugin.id, widget_id)
        return self.open(key, lambda draft: plugin.apply_draft_to_live_state(widget_id, draft),
                         initial=plugin.get_live_state(widget_id),
                         on_save=on_save, on_error=on_error, item_type=plugin.id)

    def get_task(self, entity_key: str) -> AutoSaveTask | None:
        return self._tasks.get(entity_key)

    def tasks(self) -> list[AutoSaveTask]:
        return list(self._tasks.values())

    def close(self, entity_key: str) -> bool:
        """Cancel the pending timer and drop the task.

        A save already in flight is allowed to finish.
        """
        task = self._tasks.pop(entity_key, None)
        if task is None:
            return False
        self._cancel_timer(task)
        task.closed = True
        logger.debug("closed auto-save task %s", entity_key)
        return True

    def discard_item(self, item_id: str, item_type: ItemTypeId | str) -> None:
        """Item-deletion hook: abandon pending edits of a deleted item."""
        key = item_entity_key(item_type, item_id)
        if self.close(key):
            logger.info("dropped pending auto-save for deleted item %s", key)
        if self.ledger is not None:
            self.ledger.forget(key)

    def discard_item_type(self, item_type: ItemTypeId | str) -> int:
        """Clear hook: abandon pending edits of every saved item of *item_type*.

        Widget draft tasks of that type are kept.
        """
        item_type = ItemTypeId(item_type)
        keys = [t.entity_key for t in self._tasks.values()
                if t.item_type is item_type and t.item_id is not None]
        for key in keys:
            self.close(key)
        if self.ledger is not None:
            self.ledger.forget_type(item_type.value)
        if keys:
            logger.info("dropped %d pending auto-saves for cleared %s items",
                        len(keys), item_type.value)
        return len(keys)

    def close_all(self) -> int:
        keys = list(self._tasks)
        for key in keys:
            self.close(key)
        return len(keys)

    # ── Edits ───────────────────────────────────────────────────────────────

    def update(self, entity_key: str, draft: Any) -> TaskState:
        """Record *draft* and restart the debounce timer if it differs from
        what was last persisted.

        Raises:
            KeyError: no task is open for *entity_key*.
            RuntimeError: called outside a running event loop.
        """
        task = self._require_task(entity_key)
        loop = asyncio.get_running_loop()
        task.latest_draft = deep_clone(draft)
        self._cancel_timer(task)
        if not task.is_dirty:
            logger.debug("draft for %s matches persisted state; nothing scheduled", entity_key)
            return task.state
        task.pending_timer = loop.call_later(self.delay, self._on_timer, task)
        return task.state

    async def force_save(self, entity_key: str) -> SaveOutcome:
        """Cancel the timer and save the latest draft now, even if clean."""
        task = self._require_task(entity_key)
        self._cancel_timer(task)
        return await self._save(task, force=True)

    def clear_error(self, entity_key: str) -> None:
        task = self._require_task(entity_key)
        task.last_error = None

    async def flush_all(self) -> dict[str, SaveOutcome]:
        """Save every dirty task now; used before shutdown."""
        outcomes = {}
        for task in list(self._tasks.values()):
            self._cancel_timer(task)
            if task.is_dirty:
                outcomes[task.entity_key] = await self._save(task, force=False)
        return outcomes

    async def wait_idle(self) -> None:
        """Wait until no timer-started save is running."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── Internals ───────────────────────────────────────────────────────────

    def _on_timer(self, task: AutoSaveTask) -> None:
        task.pending_timer = None
        if task.closed:
            return
        job = asyncio.ensure_future(self._save(task, force=False))
        self._background.add(job)
        job.add_done_callback(self._background.discard)

    async def _save(self, task: AutoSaveTask, force: bool) -> SaveOutcome:
        async with task.lock:
            outcome = await self._save_locked(task, force)
        if outcome.status is SaveStatus.SAVED and task.is_dirty \
                and task.pending_timer is None and not task.closed:
            # The draft moved on while this save was in flight
            loop = asyncio.get_running_loop()
            task.pending_timer = loop.call_later(self.delay, self._on_timer, task)
        return outcome

    async def _save_locked(self, task: AutoSaveTask, force: bool) -> SaveOutcome:
        if task.closed:
            return SaveOutcome(SaveStatus.CLOSED)
        if task.latest_draft is None or (not force and not task.is_dirty):
            return SaveOutcome(SaveStatus.UNCHANGED)
        if not self.can_access(self.config.capability):
            logger.info("auto-save of %s skipped: %s not permitted",
                        task.entity_key, self.config.capability)
            return SaveOutcome(SaveStatus.SKIPPED)

        payload = deep_clone(task.latest_draft)
        task.in_flight = True
        logger.debug("saving %s", task.entity_key)
        try:
            result = task.save_fn(payload)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, StorageResult) and not result.ok:
                raise AutoSaveError(result.error or "storage write failed")
        except ItemMissingError as exc:
            logger.info("auto-save of %s abandoned: %s", task.entity_key, exc)
            if self._tasks.get(task.entity_key) is task:
                self.discard_item(task.item_id, task.item_type)
            return SaveOutcome(SaveStatus.CLOSED, error=str(exc))
        except Exception as exc:
            task.last_error = str(exc)
            logger.error("auto-save of %s failed: %s", task.entity_key, exc)
            await self._notify(task.on_error, exc, task)
            return SaveOutcome(SaveStatus.FAILED, error=str(exc))
        finally:
            task.in_flight = False

        task.mark_persisted(payload)
        if self.ledger is not None and task.item_id is not None:
            self.ledger.record(task.entity_key, task.item_type.value if task.item_type else None,
                               task.item_id, payload.get("name") if isinstance(payload, dict) else None)
        await self._notify(task.on_save, deep_clone(payload), task)
        return SaveOutcome(SaveStatus.SAVED, saved_at=task.last_saved_at)

    @staticmethod
    async def _notify(callback: Callable[[Any], Any] | None, arg: Any,
                      task: AutoSaveTask) -> None:
        if callback is None:
            return
        try:
            result = callback(arg)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("auto-save callback for %s raised", task.entity_key)

    @staticmethod
    def _cancel_timer(task: AutoSaveTask) -> None:
        if task.pending_timer is not None:
            task.pending_timer.cancel()
            task.pending_timer = None

    def _require_task(self, entity_key: str) -> AutoSaveTask:
        task = self._tasks.get(entity_key)
        if task is None:
            raise KeyError(f"no auto-save task for {entity_key!r}")
        return task

    def _require_registry(self) -> PluginRegistry:
        if self.registry is None:
            raise RuntimeError("AutoSaveEngine needs a PluginRegistry to bind items")
        return self.registry
