"""Retention job report model."""

from __future__ import annotations

from pydantic import Field

from larder.models.base import WireModel


class RetentionReport(WireModel):
    """Per-collection deletion counts produced by a retention run."""

    inventory_deleted: int = Field(default=0, ge=0)
    recipe_deleted: int = Field(default=0, ge=0)
    meal_plan_deleted: int = Field(default=0, ge=0)
    shopping_list_deleted: int = Field(default=0, ge=0)
    pricing_deleted: int = Field(default=0, ge=0)
