"""Meal-plan operations: slot bookkeeping, weekly drafting, and ingredient demand."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from larder.models.pantry import MealPlanEntry, Recipe
from larder.models.plan import DemandRow, RankedRecommendations, RecommendationRecord

from .utils import build_recipe_index, round_planned_quantity, upsert_by_id

logger = logging.getLogger(__name__)

DRAFT_SLOT_SEQUENCE: Tuple[str, ...] = ("dinner", "lunch", "breakfast", "snack")
DEFAULT_DRAFT_LIMIT = 7


class DuplicateMealSlotError(ValueError):
    """Raised when a meal-plan entry targets a date and slot that is already taken."""

    def __init__(self, entry_date: date, slot: str):
        super().__init__(f"meal plan already contains an entry for {entry_date.isoformat()} {slot}")
        self.date = entry_date
        self.slot = slot


def add_meal_plan_entry(
    entries: Sequence[MealPlanEntry], entry: MealPlanEntry
) -> List[MealPlanEntry]:
    """Append ``entry`` unless its date+slot pair is already assigned."""

    if any(existing.date == entry.date and existing.slot == entry.slot for existing in entries):
        raise DuplicateMealSlotError(entry.date, entry.slot)
    return [*entries, entry]


def upsert_meal_plan_entry(
    entries: Sequence[MealPlanEntry], entry: MealPlanEntry
) -> List[MealPlanEntry]:
    """Replace the entry with the same id in place, or append it."""
    return upsert_by_id(entries, entry)


def select_meal_plan_entries_for_week(
    entries: Iterable[MealPlanEntry], week_start: date, week_end: date
) -> List[MealPlanEntry]:
    """Entries whose date falls inside the inclusive ``[week_start, week_end]`` window."""
    return [entry for entry in entries if week_start <= entry.date <= week_end]


def draft_weekly_meal_plan(
    ranked: Union[RankedRecommendations, Sequence[RecommendationRecord]],
    week_start: date,
    limit: int = DEFAULT_DRAFT_LIMIT,
) -> List[MealPlanEntry]:
    """
    Lay the top ranked recipes out one per day starting at ``week_start``.

    Slots rotate through dinner, lunch, breakfast, snack. Every drafted entry uses a
    portion multiplier of 1 and an id of the form ``meal_<yyyymmdd>_<slot>_<nnn>``.
    Entries that would collide with an existing date+slot are skipped.
    """

    records = ranked.all_ranked if isinstance(ranked, RankedRecommendations) else list(ranked)
    drafted: List[MealPlanEntry] = []

    for index, record in enumerate(records[: max(limit, 0)]):
        entry_date = week_start + timedelta(days=index)
        slot = DRAFT_SLOT_SEQUENCE[index % len(DRAFT_SLOT_SEQUENCE)]
        entry = MealPlanEntry(
            id=f"meal_{entry_date.strftime('%Y%m%d')}_{slot}_{index + 1:03d}",
            date=entry_date,
            slot=slot,
            recipe_id=record.recipe.id,
            portion_multiplier=1.0,
        )
        try:
            drafted = add_meal_plan_entry(drafted, entry)
        except DuplicateMealSlotError:
            logger.debug("Skipping drafted entry %s; slot already assigned", entry.id)

    return drafted


@dataclass
class _DemandAccumulator:
    inventory_item_id: str
    unit: str
    required_quantity: float = 0.0
    source_meal_plan_entry_ids: List[str] = field(default_factory=list)


def aggregate_ingredient_demand(
    entries: Iterable[MealPlanEntry], recipes: Iterable[Recipe]
) -> List[DemandRow]:
    """
    Sum scaled ingredient quantities per (inventory item, unit) pair.

    Units are part of the key and never converted here. Totals accumulate at full
    precision and are rounded once on output.
    """

    recipe_by_id = build_recipe_index(recipes)
    rows: Dict[Tuple[str, str], _DemandAccumulator] = {}

    for entry in entries:
        recipe = recipe_by_id.get(entry.recipe_id)
        if recipe is None:
            logger.debug("Meal plan entry %s references unknown recipe %s", entry.id, entry.recipe_id)
            continue

        for ingredient in recipe.ingredients:
            key = (ingredient.inventory_item_id, ingredient.unit)
            row = rows.get(key)
            if row is None:
                row = rows[key] = _DemandAccumulator(ingredient.inventory_item_id, ingredient.unit)
            row.required_quantity += ingredient.quantity * entry.portion_multiplier
            row.source_meal_plan_entry_ids.append(entry.id)

    return [
        DemandRow(
            inventory_item_id=row.inventory_item_id,
            unit=row.unit,
            required_quantity=round_planned_quantity(row.required_quantity),
            source_meal_plan_entry_ids=row.source_meal_plan_entry_ids,
        )
        for row in rows.values()
    ]


__all__ = [
    "DEFAULT_DRAFT_LIMIT",
    "DRAFT_SLOT_SEQUENCE",
    "DuplicateMealSlotError",
    "add_meal_plan_entry",
    "aggregate_ingredient_demand",
    "draft_weekly_meal_plan",
    "select_meal_plan_entries_for_week",
    "upsert_meal_plan_entry",
]
