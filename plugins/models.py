"""
Pydantic models for saved items.

Each item type shares the ``ItemBase`` fields and adds its own payload.
Unknown keys written by older releases are kept (``extra="allow"``) so a
round trip through the models never drops data.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.common import parse_iso


class ItemBase(BaseModel):
    """Fields common to every saved item."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Opaque unique id, never reused", examples=["budget-3f2a9c1e0b7d4e5f8a6b"])
    name: str = Field(..., min_length=1, description="Display name", examples=["Spring Break 2027"])
    created_at: str = Field(..., description="ISO-8601 UTC creation instant")
    updated_at: str = Field(..., description="ISO-8601 UTC instant of the last save; never decreases")


# ── Countdown ─────────────────────────────────────────────────────────────────

class CountdownItem(ItemBase):
    """A countdown to a trip start date."""
    target_date: str = Field(..., description="ISO-8601 instant the countdown runs to", examples=["2027-03-14T09:00:00Z"])
    park: dict[str, Any] = Field(default_factory=dict, description="Destination park record (opaque)")
    settings: dict[str, Any] = Field(default_factory=dict, description="Display toggles (digital clock, milliseconds, ...)")
    theme: dict[str, Any] | None = Field(None, description="Colour theme (opaque)")

    @field_validator("target_date")
    @classmethod
    def _target_date_is_iso(cls, value: str) -> str:
        try:
            parse_iso(value)
        except ValueError:
            raise ValueError(f"target_date is not an ISO-8601 instant: {value!r}") from None
        return value


# ── Budget ────────────────────────────────────────────────────────────────────

class BudgetCategory(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    budget: float = Field(0.0, ge=0, description="Amount allotted to this category")
    color: str | None = None
    icon: str | None = None


class Expense(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    category: str = Field(..., description="Id of the BudgetCategory this expense counts against")
    description: str = ""
    amount: float = Field(0.0, ge=0)
    date: str | None = None
    is_estimate: bool = False


class BudgetItem(ItemBase):
    """A trip budget split into categories with recorded expenses."""
    total_budget: float = Field(0.0, ge=0, description="Overall budget", examples=[4500.0])
    categories: list[BudgetCategory] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)


# ── Packing ───────────────────────────────────────────────────────────────────

class PackingEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    category: str = "other"
    is_checked: bool = False
    is_essential: bool = False


class PackingItem(ItemBase):
    """A packing checklist."""
    items: list[PackingEntry] = Field(default_factory=list)
    selected_weather: list[str] = Field(default_factory=list, description="Weather conditions the list was built for", examples=[["sunny", "rainy"]])


# ── Itinerary ─────────────────────────────────────────────────────────────────

class Activity(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    time: str | None = Field(None, description="Local start time, HH:MM", examples=["09:30"])
    location: str | None = None
    type: str = "attraction"
    priority: str = "medium"
    notes: str | None = None


class DayPlan(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    date: str = Field(..., description="Calendar date, YYYY-MM-DD", examples=["2027-03-15"])
    park: dict[str, Any] | None = None
    activities: list[Activity] = Field(default_factory=list)


class ItineraryItem(ItemBase):
    """A day-by-day trip plan."""
    days: list[DayPlan] = Field(default_factory=list)
