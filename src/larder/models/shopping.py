"""Shopping list models."""

from __future__ import annotations

from pydantic import Field

from larder.models.base import WireModel


class ShoppingItem(WireModel):
    """Purchase gap derived from meal-plan demand and current inventory."""

    id: str
    inventory_item_id: str
    ingredient_name: str
    required_quantity: float
    available_quantity: float
    missing_quantity: float = Field(gt=0)
    unit: str
    store_section: str
    source_meal_plan_entry_ids: list[str] = Field(default_factory=list)


__all__ = ["ShoppingItem"]
