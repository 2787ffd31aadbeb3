"""Pydantic models defining shared data contracts."""

from larder.models.barcode import (
    BarcodeLookupResult,
    BarcodeResolution,
    LookupFailure,
    NutritionPer100,
    ProductDraft,
)
from larder.models.pantry import (
    MEAL_SLOTS,
    InventoryItem,
    MealPlanEntry,
    MealSlot,
    PantrySnapshot,
    Recipe,
    RecipeIngredient,
)
from larder.models.plan import (
    FULLY_SATISFIABLE,
    PARTIALLY_SATISFIABLE,
    Coverage,
    DemandRow,
    MatchStatus,
    RankedRecommendations,
    RankingFactors,
    RecommendationRecord,
    Shortage,
)
from larder.models.retention import RetentionReport
from larder.models.shopping import ShoppingItem
from larder.models.sync import SyncDecision, SyncEnvelope, SyncResolution, SyncWinner

__all__ = [
    "BarcodeLookupResult",
    "BarcodeResolution",
    "LookupFailure",
    "NutritionPer100",
    "ProductDraft",
    "MEAL_SLOTS",
    "InventoryItem",
    "MealPlanEntry",
    "MealSlot",
    "PantrySnapshot",
    "Recipe",
    "RecipeIngredient",
    "FULLY_SATISFIABLE",
    "PARTIALLY_SATISFIABLE",
    "Coverage",
    "DemandRow",
    "MatchStatus",
    "RankedRecommendations",
    "RankingFactors",
    "RecommendationRecord",
    "Shortage",
    "RetentionReport",
    "ShoppingItem",
    "SyncDecision",
    "SyncEnvelope",
    "SyncResolution",
    "SyncWinner",
]
