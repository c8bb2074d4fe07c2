"""
Pydantic model for a widget placed on the dashboard.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from utils.access import ItemTypeId


class WidgetSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class WidgetInstance(BaseModel):
    """One configured widget on the dashboard."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Opaque unique widget id", examples=["widget-9c1e0b7d4e5f8a6b3f2a"])
    type: ItemTypeId = Field(..., description="Item type this widget displays", examples=["budget"])
    order: int = Field(0, ge=0, description="Zero-based dashboard position; dense and unique across widgets")
    size: WidgetSize = Field(WidgetSize.MEDIUM, description="small | medium | large")
    width: str | None = Field(None, description="Optional column-span override", examples=["2"])
    selected_item_id: str | None = Field(None, description="Bound item of the same type, or null")
    settings: dict[str, Any] = Field(default_factory=dict, description="Widget-specific settings (opaque)")

    def to_record(self) -> dict[str, Any]:
        """JSON-ready dict as stored in the widget-configs collection."""
        return self.model_dump(mode="json")
