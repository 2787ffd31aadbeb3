"""
Recipe recommendation engine.

Evaluates how well current inventory covers each recipe using unit-family conversion,
then ranks the results with expiry urgency as the primary signal.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Mapping, Optional, Tuple

from larder import metrics
from larder.clock import DAY, ensure_utc
from larder.models.pantry import InventoryItem, Recipe, RecipeIngredient
from larder.models.plan import (
    FULLY_SATISFIABLE,
    PARTIALLY_SATISFIABLE,
    Coverage,
    RankedRecommendations,
    RankingFactors,
    RecommendationRecord,
    Shortage,
)

from .units import UNIT_TABLE, normalize_to_base
from .utils import build_inventory_index, resolve_inventory_item

logger = logging.getLogger(__name__)

NOT_AVAILABLE_REASON = "Inventory item is not available."
INSUFFICIENT_REASON = "Insufficient quantity available after unit normalization."


def compute_days_until_expiry(expiry_date: Optional[date], now: datetime) -> float:
    """Whole days from ``now`` until UTC midnight of ``expiry_date`` (floored, may be negative)."""
    if expiry_date is None:
        return math.inf
    expiry_at = datetime.combine(expiry_date, time.min, tzinfo=timezone.utc)
    return (expiry_at - now) // DAY


def _shortage(
    ingredient: RecipeIngredient,
    reason: str,
    item: Optional[InventoryItem] = None,
    missing_quantity: Optional[float] = None,
) -> Shortage:
    return Shortage(
        inventory_item_id=ingredient.inventory_item_id,
        required_quantity=ingredient.quantity,
        required_unit=ingredient.unit,
        available_quantity=item.quantity if item is not None else None,
        available_unit=item.unit if item is not None else None,
        missing_quantity=ingredient.quantity if missing_quantity is None else missing_quantity,
        missing_unit=ingredient.unit,
        reason=reason,
    )


def _check_ingredient(
    ingredient: RecipeIngredient, item: Optional[InventoryItem]
) -> Optional[Shortage]:
    """Return the shortage for one ingredient, or ``None`` when stock covers it."""
    if item is None:
        return _shortage(ingredient, NOT_AVAILABLE_REASON)

    required = normalize_to_base(ingredient.quantity, ingredient.unit)
    available = normalize_to_base(item.quantity, item.unit)
    if not required.ok:
        return _shortage(ingredient, required.reason, item)
    if not available.ok:
        return _shortage(ingredient, available.reason, item)

    if required.family != available.family:
        return _shortage(
            ingredient,
            f"Unit family mismatch ({required.family} vs {available.family}).",
            item,
        )

    missing_in_base = max(required.quantity - available.quantity, 0.0)
    if missing_in_base > 0:
        # Report the gap in the unit the recipe asked for, not the base unit.
        factor = UNIT_TABLE[ingredient.unit].to_base_factor
        return _shortage(ingredient, INSUFFICIENT_REASON, item, round(missing_in_base / factor, 6))

    return None


def evaluate_recipe_recommendation(
    recipe: Recipe,
    inventory_by_id: Mapping[str, InventoryItem],
    now: Optional[datetime] = None,
) -> RecommendationRecord:
    """Evaluate a single recipe against inventory quantities and unit conversions."""

    reference = ensure_utc(now)
    shortages: List[Shortage] = []
    matched = 0
    most_urgent_days = math.inf

    for ingredient in recipe.ingredients:
        item = resolve_inventory_item(ingredient.inventory_item_id, inventory_by_id)
        shortage = _check_ingredient(ingredient, item)
        if shortage is not None:
            shortages.append(shortage)
            continue

        matched += 1
        days = compute_days_until_expiry(item.expiry_date, reference)
        if days < most_urgent_days:
            most_urgent_days = days

    total = len(recipe.ingredients)
    ratio = 0.0 if total == 0 else matched / total
    # Fully satisfiable is defined by the shortage list, not by the coverage ratio.
    status = FULLY_SATISFIABLE if not shortages else PARTIALLY_SATISFIABLE

    return RecommendationRecord(
        recipe=recipe,
        match_status=status,
        coverage=Coverage(matched=matched, total=total, ratio=ratio),
        shortages=shortages,
        ranking_factors=RankingFactors(
            days_until_most_urgent_expiry=most_urgent_days,
            has_expiring_signal=math.isfinite(most_urgent_days),
            coverage_ratio=ratio,
            shortage_count=len(shortages),
        ),
    )


def recommendation_sort_key(record: RecommendationRecord) -> Tuple[float, float, int, str, str]:
    """
    Strict tie-break order: expiry urgency, coverage ratio (descending), shortage count,
    recipe name, recipe id. Missing expiry is +inf and sorts last.
    """

    factors = record.ranking_factors
    return (
        factors.days_until_most_urgent_expiry,
        -record.coverage.ratio,
        len(record.shortages),
        record.recipe.name,
        record.recipe.id,
    )


def rank_recipe_recommendations(
    recipes: Iterable[Recipe],
    inventory_items: Iterable[InventoryItem],
    now: Optional[datetime] = None,
) -> RankedRecommendations:
    """Build recommendations grouped by satisfiability and ranked for explainability."""

    reference = ensure_utc(now)
    inventory_by_id = build_inventory_index(inventory_items)
    all_ranked = sorted(
        (evaluate_recipe_recommendation(recipe, inventory_by_id, reference) for recipe in recipes),
        key=recommendation_sort_key,
    )
    fully = [record for record in all_ranked if record.match_status == FULLY_SATISFIABLE]
    partially = [record for record in all_ranked if record.match_status == PARTIALLY_SATISFIABLE]
    metrics.RECOMMENDATION_RUNS.inc()

    logger.debug(
        "Ranked %d recipes (%d fully, %d partially satisfiable)",
        len(all_ranked),
        len(fully),
        len(partially),
    )
    return RankedRecommendations(
        fully_satisfiable=fully,
        partially_satisfiable=partially,
        all_ranked=all_ranked,
    )


__all__ = [
    "INSUFFICIENT_REASON",
    "NOT_AVAILABLE_REASON",
    "compute_days_until_expiry",
    "evaluate_recipe_recommendation",
    "rank_recipe_recommendations",
    "recommendation_sort_key",
]
