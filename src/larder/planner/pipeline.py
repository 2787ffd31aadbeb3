"""Helpers that run the planning pipeline over a whole pantry snapshot."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from larder.models.pantry import MealPlanEntry, PantrySnapshot
from larder.models.plan import DemandRow
from larder.models.shopping import ShoppingItem

from .meal_plan import aggregate_ingredient_demand, select_meal_plan_entries_for_week
from .shopping import generate_shopping_items


def plan_entries_in_window(
    snapshot: PantrySnapshot,
    week_start: Optional[date] = None,
    week_end: Optional[date] = None,
) -> List[MealPlanEntry]:
    """Meal-plan entries in ``[week_start, week_end]``; an open bound is unbounded."""

    if week_start is None and week_end is None:
        return list(snapshot.meal_plans)
    return select_meal_plan_entries_for_week(
        snapshot.meal_plans,
        week_start or date.min,
        week_end or date.max,
    )


def demand_for_snapshot(
    snapshot: PantrySnapshot,
    *,
    week_start: Optional[date] = None,
    week_end: Optional[date] = None,
) -> List[DemandRow]:
    entries = plan_entries_in_window(snapshot, week_start, week_end)
    return aggregate_ingredient_demand(entries, snapshot.recipes)


def shopping_list_for_snapshot(
    snapshot: PantrySnapshot,
    *,
    week_start: Optional[date] = None,
    week_end: Optional[date] = None,
) -> List[ShoppingItem]:
    """Aggregate demand for the selected window and derive purchase gaps from it."""

    demand = demand_for_snapshot(snapshot, week_start=week_start, week_end=week_end)
    return generate_shopping_items(demand, snapshot.inventory)


__all__ = ["demand_for_snapshot", "plan_entries_in_window", "shopping_list_for_snapshot"]
