"""Meal-plan bookkeeping, drafting, and demand aggregation tests."""

from __future__ import annotations

from datetime import date

import pytest

from larder.models.pantry import InventoryItem, MealPlanEntry, Recipe
from larder.planner.meal_plan import (
    DuplicateMealSlotError,
    add_meal_plan_entry,
    aggregate_ingredient_demand,
    draft_weekly_meal_plan,
    select_meal_plan_entries_for_week,
    upsert_meal_plan_entry,
)
from larder.planner.recommendations import rank_recipe_recommendations


def _entry(entry_id: str, day: date, slot: str = "dinner", recipe_id: str = "r1", multiplier: float = 1.0):
    return MealPlanEntry(id=entry_id, date=day, slot=slot, recipe_id=recipe_id, portion_multiplier=multiplier)


def test_demand_scales_by_portion_multiplier(planner_snapshot):
    rows = aggregate_ingredient_demand(planner_snapshot.meal_plans, planner_snapshot.recipes)

    assert [row.model_dump() for row in rows] == [
        {
            "inventory_item_id": "item_carrot_001",
            "unit": "kg",
            "required_quantity": 1.0,
            "source_meal_plan_entry_ids": ["plan_monday_001", "plan_tuesday_001"],
        },
        {
            "inventory_item_id": "item_stock_001",
            "unit": "l",
            "required_quantity": 1.5,
            "source_meal_plan_entry_ids": ["plan_monday_001", "plan_tuesday_001"],
        },
        {
            "inventory_item_id": "item_bread_001",
            "unit": "count",
            "required_quantity": 4.0,
            "source_meal_plan_entry_ids": ["plan_wednesday_001"],
        },
    ]


def test_demand_keeps_units_separate_and_skips_unknown_recipes():
    recipes = [
        Recipe(
            id="r1",
            ingredients=[
                {"inventory_item_id": "rice", "quantity": 200, "unit": "g"},
                {"inventory_item_id": "rice", "quantity": 1, "unit": "cup"},
                {"inventory_item_id": "rice", "quantity": 100, "unit": "g"},
            ],
        )
    ]
    entries = [_entry("e1", date(2026, 1, 5)), _entry("e2", date(2026, 1, 6), recipe_id="deleted")]

    rows = aggregate_ingredient_demand(entries, recipes)

    assert [(row.unit, row.required_quantity) for row in rows] == [("g", 300.0), ("cup", 1.0)]
    assert rows[0].source_meal_plan_entry_ids == ["e1", "e1"]


def test_demand_rounds_only_on_output():
    recipes = [Recipe(id="r1", ingredients=[{"inventory_item_id": "salt", "quantity": 0.1, "unit": "g"}])]
    entries = [_entry(f"e{index}", date(2026, 1, index + 1), multiplier=1 / 3) for index in range(3)]

    rows = aggregate_ingredient_demand(entries, recipes)

    assert rows[0].required_quantity == 0.1


def test_add_meal_plan_entry_rejects_taken_slot():
    entries = add_meal_plan_entry([], _entry("e1", date(2026, 1, 5)))

    with pytest.raises(DuplicateMealSlotError):
        add_meal_plan_entry(entries, _entry("e2", date(2026, 1, 5)))

    entries = add_meal_plan_entry(entries, _entry("e3", date(2026, 1, 5), slot="lunch"))
    assert [entry.id for entry in entries] == ["e1", "e3"]


def test_duplicate_slot_error_is_a_value_error():
    assert issubclass(DuplicateMealSlotError, ValueError)


def test_upsert_replaces_by_id_in_place():
    entries = [_entry("e1", date(2026, 1, 5)), _entry("e2", date(2026, 1, 6))]

    replaced = upsert_meal_plan_entry(entries, _entry("e1", date(2026, 1, 7), slot="snack"))
    appended = upsert_meal_plan_entry(entries, _entry("e3", date(2026, 1, 8)))

    assert [(entry.id, entry.slot) for entry in replaced] == [("e1", "snack"), ("e2", "dinner")]
    assert [entry.id for entry in appended] == ["e1", "e2", "e3"]
    assert len(entries) == 2


def test_select_entries_for_week_is_inclusive(planner_snapshot):
    selected = select_meal_plan_entries_for_week(
        planner_snapshot.meal_plans, date(2026, 1, 12), date(2026, 1, 13)
    )

    assert [entry.id for entry in selected] == ["plan_monday_001", "plan_tuesday_001"]


def test_draft_weekly_plan_rotates_slots_one_per_day(recommendation_snapshot, fixture_now):
    ranked = rank_recipe_recommendations(
        recommendation_snapshot.recipes, recommendation_snapshot.inventory, now=fixture_now
    )

    entries = draft_weekly_meal_plan(ranked, date(2026, 1, 12))

    assert [(entry.id, entry.date, entry.slot, entry.recipe_id) for entry in entries] == [
        ("meal_20260112_dinner_001", date(2026, 1, 12), "dinner", "recipe_urgent_001"),
        ("meal_20260113_lunch_002", date(2026, 1, 13), "lunch", "recipe_later_001"),
        ("meal_20260114_breakfast_003", date(2026, 1, 14), "breakfast", "recipe_partial_001"),
    ]
    assert all(entry.portion_multiplier == 1.0 for entry in entries)


def test_draft_weekly_plan_honours_limit():
    inventory = [InventoryItem(id="rice", quantity=10, unit="kg")]
    recipes = [
        Recipe(id=f"r{index}", name=f"Rice {index}", ingredients=[{"inventory_item_id": "rice", "quantity": 1, "unit": "g"}])
        for index in range(10)
    ]
    ranked = rank_recipe_recommendations(recipes, inventory)

    assert len(draft_weekly_meal_plan(ranked, date(2026, 2, 1))) == 7
    drafted = draft_weekly_meal_plan(ranked.all_ranked, date(2026, 2, 1), limit=5)
    assert [entry.slot for entry in drafted] == ["dinner", "lunch", "breakfast", "snack", "dinner"]
    assert drafted[-1].date == date(2026, 2, 5)


def test_demand_sums_multipliers_in_entry_order():
    recipes = [Recipe(id="omelette", ingredients=[{"inventory_item_id": "eggs", "quantity": 2, "unit": "count"}])]
    entries = [
        _entry("late", date(2026, 1, 6), recipe_id="omelette", multiplier=1.5),
        _entry("early", date(2026, 1, 5), recipe_id="omelette"),
    ]

    rows = aggregate_ingredient_demand(entries, recipes)

    assert rows[0].required_quantity == 5
    assert rows[0].source_meal_plan_entry_ids == ["late", "early"]
