"""Shopping list generation from aggregated meal-plan demand."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from larder import metrics
from larder.models.pantry import InventoryItem
from larder.models.plan import DemandRow
from larder.models.shopping import ShoppingItem

from .utils import build_inventory_index, resolve_inventory_item, round_planned_quantity

logger = logging.getLogger(__name__)

OTHER_SECTION = "other"

STORE_SECTIONS: Tuple[str, ...] = (
    "produce",
    "dairy-and-fridge",
    "meat-and-seafood",
    "bakery",
    "pantry",
    "frozen",
    "beverages",
    "household",
    OTHER_SECTION,
)

_CATEGORY_SECTIONS: Dict[str, str] = {
    "fruit": "produce",
    "vegetable": "produce",
    "produce": "produce",
    "dairy": "dairy-and-fridge",
    "fridge": "dairy-and-fridge",
    "meat": "meat-and-seafood",
    "seafood": "meat-and-seafood",
    "bakery": "bakery",
    "bread": "bakery",
    "baking": "pantry",
    "grain": "pantry",
    "canned": "pantry",
    "spice": "pantry",
    "oil": "pantry",
    "frozen": "frozen",
    "beverage": "beverages",
    "drinks": "beverages",
    "cleaning": "household",
    "household": "household",
}


def resolve_store_section(category: Optional[str]) -> str:
    """Map an inventory category to its store section; unknown or missing is ``other``."""
    if not category:
        return OTHER_SECTION
    return _CATEGORY_SECTIONS.get(category.strip().lower(), OTHER_SECTION)


def compute_missing_quantity(required_quantity: float, available_quantity: float) -> float:
    return max(required_quantity - available_quantity, 0.0)


def _build_shopping_item(
    row: DemandRow, item: Optional[InventoryItem]
) -> Optional[ShoppingItem]:
    # Stock only counts when the unit token matches exactly; no conversion here.
    available = item.quantity if item is not None and item.unit == row.unit else 0.0

    required = round_planned_quantity(row.required_quantity)
    available = round_planned_quantity(available)
    missing = round_planned_quantity(compute_missing_quantity(required, available))
    if missing <= 0:
        return None

    return ShoppingItem(
        id=f"shop_{row.inventory_item_id}_{row.unit}",
        inventory_item_id=row.inventory_item_id,
        ingredient_name=item.name if item is not None and item.name else row.inventory_item_id,
        required_quantity=required,
        available_quantity=available,
        missing_quantity=missing,
        unit=row.unit,
        store_section=resolve_store_section(item.category if item is not None else None),
        source_meal_plan_entry_ids=list(row.source_meal_plan_entry_ids),
    )


def generate_shopping_items(
    demand_rows: Iterable[DemandRow], inventory_items: Iterable[InventoryItem]
) -> List[ShoppingItem]:
    """Turn demand rows into purchase gaps, dropping rows that stock already covers."""

    inventory_by_id = build_inventory_index(inventory_items)
    items: List[ShoppingItem] = []
    for row in demand_rows:
        item = resolve_inventory_item(row.inventory_item_id, inventory_by_id)
        shopping_item = _build_shopping_item(row, item)
        if shopping_item is None:
            continue
        items.append(shopping_item)

    metrics.SHOPPING_ITEMS.inc(len(items))
    logger.debug("Generated %d shopping items", len(items))
    return items


def group_shopping_items_by_store_section(
    items: Iterable[ShoppingItem],
) -> "OrderedDict[str, List[ShoppingItem]]":
    """Group items by store section, sections in first-seen order, items in input order."""

    grouped: "OrderedDict[str, List[ShoppingItem]]" = OrderedDict()
    for item in items:
        grouped.setdefault(item.store_section, []).append(item)
    return grouped


__all__ = [
    "OTHER_SECTION",
    "STORE_SECTIONS",
    "compute_missing_quantity",
    "generate_shopping_items",
    "group_shopping_items_by_store_section",
    "resolve_store_section",
]
