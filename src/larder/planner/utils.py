"""Shared helpers for planner modules."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from larder.models.pantry import InventoryItem, MealPlanEntry, Recipe

PLANNED_QUANTITY_PLACES = 3

RecordT = TypeVar("RecordT", InventoryItem, Recipe, MealPlanEntry)


def round_planned_quantity(value: float) -> float:
    """Round a planning/shopping quantity to output precision (3 decimals)."""
    return round(value, PLANNED_QUANTITY_PLACES)


def build_inventory_index(inventory: Iterable[InventoryItem]) -> Dict[str, InventoryItem]:
    """Create a lookup table of inventory items by id."""
    return {item.id: item for item in inventory}


def build_recipe_index(recipes: Iterable[Recipe]) -> Dict[str, Recipe]:
    """Create a lookup table of recipes by id."""
    return {recipe.id: recipe for recipe in recipes}


def resolve_inventory_item(
    item_id: str, index: Mapping[str, InventoryItem]
) -> Optional[InventoryItem]:
    """Locate an inventory item by id; absence is an expected outcome."""
    return index.get(item_id)


def upsert_by_id(records: Sequence[RecordT], record: RecordT) -> List[RecordT]:
    """Return a new list with the record sharing ``record.id`` replaced in place, or appended."""

    updated = list(records)
    for index, existing in enumerate(updated):
        if existing.id == record.id:
            updated[index] = record
            return updated
    updated.append(record)
    return updated
