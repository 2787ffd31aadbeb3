"""Retention job tests for general records and pricing history."""

from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import REGISTRY

from larder.retention import apply_general_retention, apply_pricing_retention, run_retention_jobs

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)
NOW_STAMP = "2026-05-01T00:00:00.000Z"


def test_general_retention_classifies_records():
    records = [
        {"id": "stale", "updatedAt": "2026-03-10T09:00:00.000Z"},
        {"id": "fresh", "updatedAt": "2026-04-15"},
        {"id": "expired", "archivedAt": "2026-03-20T00:00:00.000Z"},
        {"id": "resting", "archivedAt": "2026-04-20T00:00:00.000Z"},
        {"id": "created-only", "createdAt": "2026-01-01"},
        {"id": "unreadable", "updatedAt": "sometime last spring"},
        {"id": "unreadable-archive", "archivedAt": "soon"},
    ]

    result = apply_general_retention(records, now=NOW)

    assert [record["id"] for record in result.active] == ["fresh", "unreadable"]
    assert [record["id"] for record in result.archived] == [
        "stale",
        "resting",
        "created-only",
        "unreadable-archive",
    ]
    assert [record["id"] for record in result.deleted] == ["expired"]
    assert result.archived[0]["archivedAt"] == NOW_STAMP
    assert result.archived[1]["archivedAt"] == "2026-04-20T00:00:00.000Z"


def test_updated_at_takes_precedence_over_created_at():
    records = [{"id": "touched", "createdAt": "2025-01-01", "updatedAt": "2026-04-30"}]

    result = apply_general_retention(records, now=NOW)

    assert [record["id"] for record in result.active] == ["touched"]


def test_windows_are_inclusive_and_configurable():
    records = [
        {"id": "exactly-ten", "updatedAt": "2026-04-21"},
        {"id": "nine", "updatedAt": "2026-04-22"},
    ]

    result = apply_general_retention(records, now=NOW, archive_after_days=10)

    assert [record["id"] for record in result.archived] == ["exactly-ten"]
    assert [record["id"] for record in result.active] == ["nine"]


def test_general_retention_does_not_mutate_input():
    record = {"id": "stale", "updatedAt": "2026-01-01"}

    apply_general_retention([record], now=NOW)

    assert "archivedAt" not in record


def test_pricing_retention_uses_calendar_months():
    history = [
        {"id": "old", "recordedAt": "2025-04-30T23:59:59.000Z"},
        {"id": "edge", "recordedAt": "2025-05-01"},
        {"id": "recent", "recordedAt": "2026-03-10T12:00:00.000Z"},
        {"id": "fallback", "createdAt": "2024-12-31"},
        {"id": "unknown", "recordedAt": "n/a"},
    ]

    result = apply_pricing_retention(history, now=NOW)

    assert [point["id"] for point in result.deleted] == ["old", "fallback"]
    assert [point["id"] for point in result.retained] == ["edge", "recent", "unknown"]


def test_pricing_threshold_clamps_to_month_end():
    history = [
        {"id": "before", "recordedAt": "2026-02-27"},
        {"id": "on", "recordedAt": "2026-02-28"},
    ]

    result = apply_pricing_retention(history, now=datetime(2026, 3, 31, tzinfo=timezone.utc), retain_months=1)

    assert [point["id"] for point in result.deleted] == ["before"]
    assert [point["id"] for point in result.retained] == ["on"]


def test_run_retention_jobs_updates_state_and_report():
    state = {
        "inventory": [
            {"id": "item_old", "updatedAt": "2026-03-10"},
            {"id": "item_new", "updatedAt": "2026-04-30"},
        ],
        "archivedInventory": [{"id": "item_gone", "archivedAt": "2026-03-01"}],
        "recipes": [{"id": "recipe_new", "createdAt": "2026-04-28"}],
        "mealPlans": "not-a-list",
        "pricingHistory": [
            {"id": "price_old", "recordedAt": "2024-12-31"},
            {"id": "price_new", "recordedAt": "2026-04-01"},
        ],
        "settings": {"theme": "dark"},
    }

    outcome = run_retention_jobs(state, now=NOW)

    assert [record["id"] for record in outcome.state["inventory"]] == ["item_new"]
    assert [record["id"] for record in outcome.state["archivedInventory"]] == ["item_old"]
    assert [record["id"] for record in outcome.state["recipes"]] == ["recipe_new"]
    assert outcome.state["archivedRecipes"] == []
    assert outcome.state["mealPlans"] == []
    assert outcome.state["shoppingLists"] == []
    assert [point["id"] for point in outcome.state["pricingHistory"]] == ["price_new"]
    assert outcome.state["settings"] == {"theme": "dark"}
    assert outcome.report.model_dump(by_alias=True) == {
        "inventoryDeleted": 1,
        "recipeDeleted": 0,
        "mealPlanDeleted": 0,
        "shoppingListDeleted": 0,
        "pricingDeleted": 1,
    }


def test_archived_records_age_into_deletion_across_runs():
    first = run_retention_jobs({"recipes": [{"id": "r1", "updatedAt": "2026-03-01"}]}, now=NOW)
    assert [record["id"] for record in first.state["archivedRecipes"]] == ["r1"]

    second = run_retention_jobs(first.state, now=datetime(2026, 5, 31, tzinfo=timezone.utc))

    assert second.state["recipes"] == []
    assert second.state["archivedRecipes"] == []
    assert second.report.recipe_deleted == 1


def test_run_retention_jobs_counts_deletions_in_metrics():
    labels = {"collection": "shoppingLists"}
    before = REGISTRY.get_sample_value("larder_retention_deleted_records_total", labels) or 0.0

    run_retention_jobs(
        {"archivedShoppingLists": [{"id": "s1", "archivedAt": "2026-01-01"}, {"id": "s2", "archivedAt": "2026-02-01"}]},
        now=NOW,
    )

    assert REGISTRY.get_sample_value("larder_retention_deleted_records_total", labels) == before + 2
