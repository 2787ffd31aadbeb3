"""Pantry state data models: inventory, recipes, and meal-plan entries."""

from __future__ import annotations

from datetime import date as DateType
from typing import Literal, Optional

from pydantic import Field

from larder.models.base import WireModel

MealSlot = Literal["breakfast", "lunch", "dinner", "snack"]

MEAL_SLOTS: tuple[str, ...] = ("breakfast", "lunch", "dinner", "snack")


class InventoryItem(WireModel):
    """Item currently on hand in the household pantry."""

    id: str
    name: str = Field(default="")
    quantity: float = Field(ge=0)
    unit: str
    expiry_date: Optional[DateType] = Field(default=None)
    category: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    archived_at: Optional[str] = Field(
        default=None, description="UTC timestamp stamped when the item is archived."
    )


class RecipeIngredient(WireModel):
    """Ingredient row referencing an inventory item."""

    inventory_item_id: str
    quantity: float
    unit: str


class Recipe(WireModel):
    """Recipe with an ordered ingredient list."""

    id: str
    name: str = Field(default="")
    servings: Optional[int] = Field(default=None, ge=1)
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    preparation_notes: Optional[str] = Field(default=None)


class MealPlanEntry(WireModel):
    """Recipe assigned to a date and meal slot, scaled by a portion multiplier."""

    id: str
    date: DateType
    slot: MealSlot
    recipe_id: str
    portion_multiplier: float = Field(default=1.0, gt=0)


class PantrySnapshot(WireModel):
    """Whole-application state handed over by the browser client."""

    inventory: list[InventoryItem] = Field(default_factory=list)
    recipes: list[Recipe] = Field(default_factory=list)
    meal_plans: list[MealPlanEntry] = Field(default_factory=list)
