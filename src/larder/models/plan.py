"""Recommendation and demand output models."""

from __future__ import annotations

import math
from typing import Literal, Optional

from pydantic import Field, field_serializer

from larder.models.base import WireModel
from larder.models.pantry import Recipe

MatchStatus = Literal["fully_satisfiable", "partially_satisfiable"]

FULLY_SATISFIABLE: MatchStatus = "fully_satisfiable"
PARTIALLY_SATISFIABLE: MatchStatus = "partially_satisfiable"


class Shortage(WireModel):
    """Why, and by how much, one recipe ingredient cannot be covered."""

    inventory_item_id: str
    required_quantity: float
    required_unit: str
    available_quantity: Optional[float] = Field(default=None)
    available_unit: Optional[str] = Field(default=None)
    missing_quantity: float
    missing_unit: str
    reason: str


class Coverage(WireModel):
    matched: int = Field(ge=0)
    total: int = Field(ge=0)
    ratio: float = Field(ge=0, le=1)


class RankingFactors(WireModel):
    """Signals used to order recommendations; infinite urgency means no expiry signal."""

    days_until_most_urgent_expiry: float
    has_expiring_signal: bool
    coverage_ratio: float
    shortage_count: int = Field(ge=0)

    @field_serializer("days_until_most_urgent_expiry", when_used="json")
    def _serialize_days(self, value: float) -> Optional[float]:
        return value if math.isfinite(value) else None


class RecommendationRecord(WireModel):
    """Explainable evaluation of one recipe against current inventory."""

    recipe: Recipe
    match_status: MatchStatus
    coverage: Coverage
    shortages: list[Shortage] = Field(default_factory=list)
    ranking_factors: RankingFactors


class RankedRecommendations(WireModel):
    fully_satisfiable: list[RecommendationRecord] = Field(default_factory=list)
    partially_satisfiable: list[RecommendationRecord] = Field(default_factory=list)
    all_ranked: list[RecommendationRecord] = Field(default_factory=list)


class DemandRow(WireModel):
    """Aggregated ingredient demand for one (inventory item, unit) pair."""

    inventory_item_id: str
    unit: str
    required_quantity: float
    source_meal_plan_entry_ids: list[str] = Field(default_factory=list)
