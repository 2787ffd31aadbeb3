"""Barcode lookup result models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from larder.models.base import WireModel

LookupErrorKind = Literal["offline", "transient", "rate_limit", "not_found", "malformed"]


class NutritionPer100(WireModel):
    calories_per100: Optional[float] = Field(default=None, ge=0)
    protein_per100: Optional[float] = Field(default=None, ge=0)
    carbs_per100: Optional[float] = Field(default=None, ge=0)
    sugars_per100: Optional[float] = Field(default=None, ge=0)
    fats_per100: Optional[float] = Field(default=None, ge=0)


class ProductDraft(WireModel):
    """Inventory draft built from a provider product record."""

    barcode: str
    name: str = Field(min_length=1)
    brand: Optional[str] = Field(default=None)
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None)
    nutrition: NutritionPer100 = Field(default_factory=NutritionPer100)


class LookupFailure(WireModel):
    kind: LookupErrorKind
    message: str


class BarcodeLookupResult(WireModel):
    """Settled outcome of one provider lookup."""

    ok: bool
    draft: Optional[ProductDraft] = Field(default=None)
    error: Optional[LookupFailure] = Field(default=None)


class BarcodeResolution(WireModel):
    """Outcome of the local-first, retrying barcode decision flow."""

    branch: str
    ok: bool
    draft: Optional[ProductDraft] = Field(default=None)
    attempts: int = Field(default=0, ge=0)
    error: Optional[LookupFailure] = Field(default=None)
