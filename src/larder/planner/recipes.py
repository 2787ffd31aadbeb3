"""Recipe validation and base-unit normalization against the current inventory."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from pydantic import Field

from larder.models.base import WireModel
from larder.models.pantry import Recipe

from .units import normalize_to_base, normalize_to_family_base
from .utils import build_inventory_index, resolve_inventory_item, upsert_by_id

MAX_RECIPE_NAME_LENGTH = 120


class NormalizedIngredient(WireModel):
    inventory_item_id: str
    quantity: float
    unit: str
    normalized_quantity: float
    normalized_unit: str
    unit_family: str


class RecipeNormalization(WireModel):
    """Errors block saving the recipe; warnings only describe unit rewrites."""

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    ingredients: List[NormalizedIngredient] = Field(default_factory=list)


def _validate_recipe_header(recipe: Recipe) -> List[str]:
    errors: List[str] = []
    if not recipe.name or len(recipe.name) > MAX_RECIPE_NAME_LENGTH:
        errors.append("Recipe name is required and must be between 1 and 120 characters.")
    if recipe.servings is None:
        errors.append("Servings is required and must be an integer of at least 1.")
    if not recipe.ingredients:
        errors.append("At least one ingredient row is required.")
    return errors


def validate_and_normalize_recipe(recipe: Recipe, inventory_items: Iterable) -> RecipeNormalization:
    """
    Check every ingredient row against inventory and express it in its family base unit.

    Rows are numbered from 1 in messages. A row that fails any check is left out of
    ``ingredients``; the remaining rows are still normalized.
    """

    inventory_by_id = build_inventory_index(inventory_items)
    errors = _validate_recipe_header(recipe)
    warnings: List[str] = []
    ingredients: List[NormalizedIngredient] = []

    for row_number, ingredient in enumerate(recipe.ingredients, start=1):
        item = resolve_inventory_item(ingredient.inventory_item_id, inventory_by_id)
        if item is None:
            errors.append(f"Ingredient row {row_number}: selected inventory item does not exist.")
            continue

        normalized = normalize_to_family_base(ingredient.quantity, ingredient.unit)
        if not normalized.ok:
            errors.append(f"Ingredient row {row_number}: normalization failed ({normalized.reason}).")
            continue
        stocked = normalize_to_base(item.quantity, item.unit)
        if not stocked.ok:
            errors.append(
                f"Ingredient row {row_number}: inventory unit cannot be normalized ({stocked.reason})."
            )
            continue
        if normalized.family != stocked.family:
            errors.append(
                f"Ingredient row {row_number}: cannot convert {ingredient.unit} ingredient to "
                f"{item.unit} inventory because families differ "
                f"({normalized.family} vs {stocked.family})."
            )
            continue

        ingredients.append(
            NormalizedIngredient(
                inventory_item_id=ingredient.inventory_item_id,
                quantity=ingredient.quantity,
                unit=ingredient.unit,
                normalized_quantity=normalized.quantity,
                normalized_unit=normalized.base_unit,
                unit_family=normalized.family,
            )
        )
        if ingredient.unit != normalized.base_unit:
            warnings.append(
                f"Ingredient row {row_number}: normalized {ingredient.quantity:g} {ingredient.unit} "
                f"to {normalized.quantity:g} {normalized.base_unit}."
            )

    return RecipeNormalization(errors=errors, warnings=warnings, ingredients=ingredients)


def upsert_recipe(recipes: Sequence[Recipe], recipe: Recipe) -> List[Recipe]:
    """Replace the recipe with the same id in place, or append it."""
    return upsert_by_id(recipes, recipe)


__all__ = [
    "NormalizedIngredient",
    "RecipeNormalization",
    "upsert_recipe",
    "validate_and_normalize_recipe",
]
