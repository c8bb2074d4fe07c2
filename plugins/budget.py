"""Budget plugin: categorised trip budgets and their expenses."""

from typing import Any

from plugins.base import ItemPlugin
from plugins.models import BudgetItem, ItemBase
from utils.access import AccessTier, ItemTypeId
from widgets.models import WidgetSize

DEFAULT_CATEGORIES = [
    {"id": "tickets", "name": "Park Tickets", "budget": 0, "color": "blue", "icon": "ticket"},
    {"id": "hotel", "name": "Accommodation", "budget": 0, "color": "green", "icon": "hotel"},
    {"id": "dining", "name": "Dining & Food", "budget": 0, "color": "red", "icon": "utensils"},
    {"id": "transport", "name": "Transportation", "budget": 0, "color": "yellow", "icon": "plane"},
    {"id": "shopping", "name": "Shopping & Souvenirs", "budget": 0, "color": "purple", "icon": "bag"},
    {"id": "extras", "name": "Extras & Activities", "budget": 0, "color": "pink", "icon": "star"},
]


class BudgetPlugin(ItemPlugin):
    id = ItemTypeId.BUDGET
    display_name = "Budget Tracker"
    description = "Track your trip expenses"
    required_tier = AccessTier.STANDARD
    capability = "budgetTracker"
    item_model = BudgetItem
    default_name = "My Trip Budget"
    default_widget_size = WidgetSize.MEDIUM
    widget_component = "BudgetWidget"

    def default_payload(self) -> dict[str, Any]:
        return {
            "total_budget": 0,
            "categories": [dict(c) for c in DEFAULT_CATEGORIES],
            "expenses": [],
        }

    def render_data(self, item: ItemBase) -> dict[str, Any]:
        """Adds spent, estimated and remaining totals plus a per-category breakdown."""
        data = super().render_data(item)
        spent_by_category: dict[str, float] = {}
        spent = 0.0
        estimated = 0.0
        for expense in item.expenses:
            spent += expense.amount
            if expense.is_estimate:
                estimated += expense.amount
            spent_by_category[expense.category] = (
                spent_by_category.get(expense.category, 0.0) + expense.amount
            )

        data["summary"] = {
            "spent": round(spent, 2),
            "estimated": round(estimated, 2),
            "remaining": round(item.total_budget - spent, 2),
            "over_budget": spent > item.total_budget,
            "by_category": [
                {
                    "id": c.id,
                    "name": c.name,
                    "budget": c.budget,
                    "spent": round(spent_by_category.get(c.id, 0.0), 2),
                }
                for c in item.categories
            ],
        }
        return data
