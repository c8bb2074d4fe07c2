"""
Pydantic request/response models for the API.

Saved items are returned as plain dicts (their shape depends on the item
type); everything else has a model here so the OpenAPI docs describe it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from utils.access import ItemTypeId
from widgets.models import WidgetInstance, WidgetSize


# ── Widgets ───────────────────────────────────────────────────────────────────

class WidgetCreate(BaseModel):
    """Request body for adding a widget to the dashboard."""
    type: ItemTypeId = Field(..., description="Item type the widget displays", examples=["countdown"])
    size: WidgetSize | None = Field(None, description="small | medium | large; the plugin default when omitted")
    settings: dict[str, Any] | None = Field(None, description="Widget-specific settings")


class WidgetUpdate(BaseModel):
    """Partial widget update; only fields that are sent are changed."""
    size: WidgetSize | None = None
    width: str | None = Field(None, description="Column-span override", examples=["2"])
    selected_item_id: str | None = Field(None, description="Item to show, or null to unbind")
    settings: dict[str, Any] | None = None


class WidgetOrder(BaseModel):
    """New dashboard order; must list every widget exactly once."""
    widget_ids: list[str] = Field(..., description="Widget ids, first to last", examples=[["widget-a", "widget-b"]])


class WidgetLinkRequest(BaseModel):
    """Bind a widget to an item.

    With ``item_id`` the existing item is bound. Without it a default item is
    created and bound, unless ``pending`` is set, in which case the widget
    waits for the next item of its type to be created.
    """
    item_id: str | None = Field(None, description="Existing item to bind")
    name: str | None = Field(None, description="Name for a newly created item", examples=["Spring Break"])
    pending: bool = Field(False, description="Wait for the next created item instead")


class WidgetDataOut(BaseModel):
    """A widget plus the render data of the item it shows."""
    widget: WidgetInstance
    data: dict[str, Any] | None = Field(None, description="Render data, or null when no valid item is bound")


class WidgetLinkOut(BaseModel):
    widget: WidgetInstance | None
    item_id: str | None = Field(None, description="Bound item id, or null while pending")
    pending: bool = False


# ── Plugins and items ─────────────────────────────────────────────────────────

class PluginOut(BaseModel):
    """An item type the dashboard can show."""
    id: ItemTypeId = Field(..., examples=["budget"])
    display_name: str = Field(..., examples=["Budget Tracker"])
    description: str = ""
    required_tier: str = Field(..., description="anonymous | standard | premium", examples=["standard"])
    capability: str = Field(..., description="Capability checked before use", examples=["budgetTracker"])
    available: bool = Field(..., description="Whether the current user may use this type")


class ItemCreate(BaseModel):
    name: str | None = Field(None, description="Display name; the type default when omitted", examples=["Spring Break 2027"])


class ItemCreated(BaseModel):
    id: str = Field(..., description="Id of the new item")
    item: dict[str, Any]
    linked_widget_id: str | None = Field(None, description="Widget that was waiting for this item, if any")


# ── Drafts / auto-save ────────────────────────────────────────────────────────

class DraftUpdate(BaseModel):
    """The full editable payload of an item as currently shown in the editor."""
    draft: dict[str, Any] = Field(..., examples=[{"name": "Spring Break", "total_budget": 4500}])


class DraftStatus(BaseModel):
    entity_key: str = Field(..., examples=["budget:budget-3f2a9c1e0b7d4e5f8a6b"])
    state: str = Field(..., description="idle | pending | saving")
    dirty: bool
    last_error: str | None = None
    last_saved_at: str | None = None
    save_count: int = 0


class SaveOutcomeOut(BaseModel):
    status: str = Field(..., description="saved | unchanged | skipped | failed | closed")
    error: str | None = None
    saved_at: str | None = None
    task: DraftStatus


class AutoSaveEntryOut(BaseModel):
    entity_key: str
    id: str | None = None
    name: str | None = None
    type: str | None = None
    updated_at: str


# ── Meta ──────────────────────────────────────────────────────────────────────

class HealthOut(BaseModel):
    status: str = Field(..., examples=["ok"])
    storage: str = Field(..., description="Key-value backend class", examples=["SqliteKeyValueStore"])
    plugins: int
    widgets: int
    autosave_tasks: int
