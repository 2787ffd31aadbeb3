"""
Unit registry and base-unit normalization.

Every registered unit belongs to exactly one family (mass, volume, count) with a fixed
base unit (g, ml, count). Conversion never crosses families: callers compare the
``family`` of two normalized quantities and treat a mismatch as a hard shortage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Literal, Optional, Union

UnitFamily = Literal["mass", "volume", "count"]
ConversionErrorKind = Literal["unsupported_unit", "invalid_quantity"]


@dataclass(frozen=True)
class UnitMeta:
    family: UnitFamily
    base_unit: str
    to_base_factor: float


UNIT_TABLE: Dict[str, UnitMeta] = {
    # mass, base g
    "g": UnitMeta("mass", "g", 1.0),
    "kg": UnitMeta("mass", "g", 1000.0),
    "oz": UnitMeta("mass", "g", 28.349523125),
    "lb": UnitMeta("mass", "g", 453.59237),
    # volume, base ml
    "ml": UnitMeta("volume", "ml", 1.0),
    "l": UnitMeta("volume", "ml", 1000.0),
    "tsp": UnitMeta("volume", "ml", 4.92892159375),
    "tbsp": UnitMeta("volume", "ml", 14.78676478125),
    "cup": UnitMeta("volume", "ml", 240.0),
    # count; legacy aliases (unit, item, pcs) are deliberately absent
    "count": UnitMeta("count", "count", 1.0),
}

ALLOWED_UNITS: FrozenSet[str] = frozenset(UNIT_TABLE)

# Units a saved recipe may use. Kitchen measures (tsp, tbsp, cup) and imperial mass are
# accepted for stock and demand but not for recipe rows.
RECIPE_UNITS: FrozenSet[str] = frozenset({"g", "kg", "ml", "l", "count"})


@dataclass(frozen=True)
class BaseQuantity:
    """Quantity expressed in its family's base unit."""

    family: UnitFamily
    base_unit: str
    quantity: float
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ConversionError:
    """Recoverable conversion failure; ``reason`` is shown to users verbatim."""

    kind: ConversionErrorKind
    reason: str
    ok: bool = field(default=False, init=False)


ConversionResult = Union[BaseQuantity, ConversionError]


def get_unit_meta(unit: Optional[str]) -> Optional[UnitMeta]:
    """Return registry metadata for ``unit`` or ``None`` when it is not registered."""
    if not unit:
        return None
    return UNIT_TABLE.get(unit)


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def normalize_to_base(quantity: float, unit: Optional[str]) -> ConversionResult:
    """
    Convert an on-hand or required amount into its family base unit.

    Used by ranking and shopping paths where zero stock is a legitimate value, so the
    lower bound is inclusive.
    """

    meta = get_unit_meta(unit)
    if meta is None:
        return ConversionError("unsupported_unit", f"Unsupported unit: {unit or '(empty)'}.")

    if not _is_finite_number(quantity) or quantity < 0:
        return ConversionError(
            "invalid_quantity",
            f"Invalid quantity: {quantity}. "
            "Quantity must be a finite number greater than or equal to 0.",
        )

    return BaseQuantity(meta.family, meta.base_unit, quantity * meta.to_base_factor)


def normalize_to_family_base(quantity: float, unit: Optional[str]) -> ConversionResult:
    """
    Convert a recipe ingredient amount into its family base unit.

    Recipe rows must ask for something, so zero is rejected here, and only units in
    ``RECIPE_UNITS`` are accepted. The result is rounded to six decimals for stable
    display of normalized recipes.
    """

    meta = get_unit_meta(unit)
    if meta is None or unit not in RECIPE_UNITS:
        return ConversionError("unsupported_unit", f"Unsupported unit: {unit or '(empty)'}.")

    if not _is_finite_number(quantity) or quantity <= 0:
        return ConversionError(
            "invalid_quantity",
            "Quantity must be a finite number greater than 0 for conversion.",
        )

    return BaseQuantity(meta.family, meta.base_unit, round(quantity * meta.to_base_factor, 6))


__all__ = [
    "ALLOWED_UNITS",
    "BaseQuantity",
    "ConversionError",
    "ConversionResult",
    "RECIPE_UNITS",
    "UNIT_TABLE",
    "UnitFamily",
    "UnitMeta",
    "get_unit_meta",
    "normalize_to_base",
    "normalize_to_family_base",
]
