"""Barcode lookup: Open Food Facts adapter and the local-first retry decision."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from larder.config import get_settings
from larder.models.barcode import (
    BarcodeLookupResult,
    BarcodeResolution,
    LookupFailure,
    NutritionPer100,
    ProductDraft,
)
from larder.models.pantry import InventoryItem

logger = logging.getLogger(__name__)

BarcodeLookup = Callable[[str], BarcodeLookupResult]

_QUANTITY_RE = re.compile(r"^(\d+(?:[.,]\d+)?)\s*(kg|g|l|ml|count)$")

_NUTRIMENT_KEYS = {
    "calories_per100": "energy-kcal_100g",
    "protein_per100": "proteins_100g",
    "carbs_per100": "carbohydrates_100g",
    "sugars_per100": "sugars_100g",
    "fats_per100": "fat_100g",
}

LOCAL_HIT = "local_hit"
PROVIDER_HIT = "provider_hit"
RETRY_FALLBACK = "retry_fallback"


def parse_quantity_text(raw: Any) -> Tuple[Optional[float], Optional[str]]:
    """Parse package sizes such as ``"750 g"`` or ``"1,5 l"``; anything else is ``(None, None)``."""

    text = str(raw or "").strip().lower()
    match = _QUANTITY_RE.match(text)
    if not match:
        return None, None
    quantity = float(match.group(1).replace(",", "."))
    if not math.isfinite(quantity) or quantity <= 0:
        return None, None
    return quantity, match.group(2)


def _non_negative_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) and number >= 0 else None


def _first_csv_token(value: Any) -> Optional[str]:
    for segment in str(value or "").split(","):
        if segment.strip():
            return segment.strip()
    return None


def map_product_to_draft(product: Mapping[str, Any], barcode: str) -> Optional[ProductDraft]:
    """Map an Open Food Facts product record to an inventory draft; ``None`` without a name."""

    name = str(product.get("product_name") or "").strip()
    if not name:
        return None

    quantity, unit = parse_quantity_text(product.get("quantity"))
    nutriments = product.get("nutriments") or {}
    if not isinstance(nutriments, Mapping):
        nutriments = {}

    return ProductDraft(
        barcode=barcode,
        name=name,
        brand=str(product.get("brands") or "").strip() or None,
        quantity=quantity,
        unit=unit,
        category=_first_csv_token(product.get("categories")),
        nutrition=NutritionPer100(
            **{field: _non_negative_number(nutriments.get(key)) for field, key in _NUTRIMENT_KEYS.items()}
        ),
    )


def missing_nutrition_fields(nutrition: NutritionPer100) -> list[str]:
    """camelCase names of per-100 nutrition values the draft still lacks."""
    return [
        NutritionPer100.model_fields[field].alias or field
        for field in _NUTRIMENT_KEYS
        if getattr(nutrition, field) is None
    ]


def _failure(kind: str, message: str) -> BarcodeLookupResult:
    return BarcodeLookupResult(ok=False, error=LookupFailure(kind=kind, message=message))


class OpenFoodFactsClient:
    """Thin HTTP adapter that turns every provider outcome into a settled lookup result."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.barcode_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.barcode_timeout
        self._transport = transport

    def lookup_by_barcode(self, barcode: str) -> BarcodeLookupResult:
        endpoint = f"{self._base_url}/{quote(barcode, safe='')}.json"
        try:
            with httpx.Client(transport=self._transport, timeout=self._timeout) as client:
                response = client.get(endpoint, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            logger.warning("Open Food Facts request failed for %s: %s", barcode, exc)
            return _failure("transient", "Temporary network issue while contacting Open Food Facts.")

        if response.status_code == 429:
            return _failure("rate_limit", "Open Food Facts rate limit reached. Continue with manual entry.")
        if response.status_code >= 500:
            return _failure(
                "transient",
                f"Open Food Facts temporarily unavailable (HTTP {response.status_code}).",
            )
        if response.status_code == 404:
            return _failure("not_found", "No provider match was found for this barcode.")

        try:
            payload = response.json()
        except ValueError:
            return _failure("malformed", "Provider response was malformed and could not be parsed.")

        product = payload.get("product") if isinstance(payload, dict) else None
        if not isinstance(product, dict) or payload.get("status") == 0:
            return _failure("not_found", "No provider match was found for this barcode.")

        draft = map_product_to_draft(product, barcode)
        if draft is None:
            return _failure(
                "malformed",
                "Provider response was missing required mapping fields and was discarded.",
            )
        return BarcodeLookupResult(ok=True, draft=draft)


def _draft_from_inventory(item: InventoryItem, barcode: str) -> ProductDraft:
    return ProductDraft(
        barcode=item.barcode or barcode,
        name=item.name or item.id,
        quantity=item.quantity if item.quantity > 0 else None,
        unit=item.unit,
        category=item.category,
    )


def resolve_barcode_lookup(
    barcode: str,
    local_match: Optional[InventoryItem],
    lookup: BarcodeLookup,
    max_attempts: int = 3,
) -> BarcodeResolution:
    """
    Decide where a scanned barcode's draft comes from.

    A local inventory match always wins and skips the provider. Otherwise the provider
    is asked; only ``transient`` failures are retried, up to ``max_attempts`` calls in
    total. Exhausting the retries yields the ``retry_fallback`` branch, and any other
    failure is reported under its error kind so the caller can fall back to manual entry.
    """

    if local_match is not None:
        return BarcodeResolution(branch=LOCAL_HIT, ok=True, draft=_draft_from_inventory(local_match, barcode))

    attempts = 0
    result: Optional[BarcodeLookupResult] = None
    while attempts < max(max_attempts, 1):
        attempts += 1
        result = lookup(barcode)
        if result.ok:
            return BarcodeResolution(branch=PROVIDER_HIT, ok=True, draft=result.draft, attempts=attempts)
        if result.error is None or result.error.kind != "transient":
            break
        logger.info("Transient barcode lookup failure for %s (attempt %d)", barcode, attempts)

    error = result.error if result is not None else None
    if error is None or error.kind == "transient":
        return BarcodeResolution(
            branch=RETRY_FALLBACK,
            ok=False,
            attempts=attempts,
            error=LookupFailure(
                kind="transient",
                message=f"Provider lookup failed after {attempts} attempts. Continue with manual entry.",
            ),
        )
    return BarcodeResolution(branch=error.kind, ok=False, attempts=attempts, error=error)


__all__ = [
    "BarcodeLookup",
    "LOCAL_HIT",
    "OpenFoodFactsClient",
    "PROVIDER_HIT",
    "RETRY_FALLBACK",
    "map_product_to_draft",
    "missing_nutrition_fields",
    "parse_quantity_text",
    "resolve_barcode_lookup",
]
