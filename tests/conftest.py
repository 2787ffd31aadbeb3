"""Shared pytest fixtures for the Larder test suite."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from larder.config import get_settings
from larder.models.pantry import PantrySnapshot
from larder.server.app import create_app

FIXTURE_NOW = datetime(2026, 1, 10, tzinfo=timezone.utc)


@pytest.fixture()
def fixture_now() -> datetime:
    """Reference instant used by the recommendation fixtures."""

    return FIXTURE_NOW


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep host LARDER_* variables and stray .env files out of every test."""

    for key in [name for name in os.environ if name.startswith("LARDER_")]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def recommendation_payload() -> Dict[str, Any]:
    """Three recipes whose ranking exercises urgency, coverage, and shortages."""

    return {
        "inventory": [
            {
                "id": "item_tomato_001",
                "name": "Tomato",
                "quantity": 6,
                "unit": "count",
                "expiryDate": "2026-01-11",
                "category": "produce",
            },
            {
                "id": "item_pasta_001",
                "name": "Pasta",
                "quantity": 500,
                "unit": "g",
                "expiryDate": "2026-03-01",
                "category": "grain",
            },
            {
                "id": "item_milk_001",
                "name": "Milk",
                "quantity": 1,
                "unit": "l",
                "expiryDate": "2026-01-20",
                "category": "dairy",
            },
        ],
        "recipes": [
            {
                "id": "recipe_urgent_001",
                "name": "Urgent Tomato Salad",
                "ingredients": [{"inventoryItemId": "item_tomato_001", "quantity": 2, "unit": "count"}],
            },
            {
                "id": "recipe_later_001",
                "name": "Creamy Pasta",
                "ingredients": [
                    {"inventoryItemId": "item_pasta_001", "quantity": 300, "unit": "g"},
                    {"inventoryItemId": "item_milk_001", "quantity": 0.2, "unit": "l"},
                ],
            },
            {
                "id": "recipe_partial_001",
                "name": "Big Pasta Pot",
                "ingredients": [{"inventoryItemId": "item_pasta_001", "quantity": 700, "unit": "g"}],
            },
        ],
    }


@pytest.fixture()
def planner_payload() -> Dict[str, Any]:
    """Stew and sandwich plan over three days with fractional portions."""

    return {
        "inventory": [
            {"id": "item_carrot_001", "name": "Carrot", "quantity": 0.5, "unit": "kg", "category": "vegetable"},
            {"id": "item_stock_001", "name": "Stock", "quantity": 0.2, "unit": "l", "category": "canned"},
            {"id": "item_bread_001", "name": "Bread", "quantity": 3, "unit": "pcs", "category": "bakery"},
        ],
        "recipes": [
            {
                "id": "recipe_stew_001",
                "name": "Stew",
                "ingredients": [
                    {"inventoryItemId": "item_carrot_001", "quantity": 0.4, "unit": "kg"},
                    {"inventoryItemId": "item_stock_001", "quantity": 0.6, "unit": "l"},
                ],
            },
            {
                "id": "recipe_sandwich_001",
                "name": "Sandwich",
                "ingredients": [{"inventoryItemId": "item_bread_001", "quantity": 2, "unit": "count"}],
            },
        ],
        "mealPlans": [
            {
                "id": "plan_monday_001",
                "recipeId": "recipe_stew_001",
                "portionMultiplier": 1,
                "date": "2026-01-12",
                "slot": "dinner",
            },
            {
                "id": "plan_tuesday_001",
                "recipeId": "recipe_stew_001",
                "portionMultiplier": 1.5,
                "date": "2026-01-13",
                "slot": "dinner",
            },
            {
                "id": "plan_wednesday_001",
                "recipeId": "recipe_sandwich_001",
                "portionMultiplier": 2,
                "date": "2026-01-14",
                "slot": "lunch",
            },
        ],
    }


@pytest.fixture()
def recommendation_snapshot(recommendation_payload) -> PantrySnapshot:
    return PantrySnapshot.model_validate(recommendation_payload)


@pytest.fixture()
def planner_snapshot(planner_payload) -> PantrySnapshot:
    return PantrySnapshot.model_validate(planner_payload)
