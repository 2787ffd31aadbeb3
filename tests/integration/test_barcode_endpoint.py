"""Integration tests for the barcode lookup endpoint."""

from __future__ import annotations

from fastapi import status

from larder.models.barcode import BarcodeLookupResult, LookupFailure, ProductDraft
from larder.server import deps
from tests.integration.utils import auth_headers


def test_barcode_endpoint_returns_provider_draft(app, client):
    calls = []

    def lookup(barcode: str) -> BarcodeLookupResult:
        calls.append(barcode)
        return BarcodeLookupResult(ok=True, draft=ProductDraft(barcode=barcode, name="Fixture Granola"))

    app.dependency_overrides[deps.get_barcode_lookup] = lambda: lookup

    response = client.get("/barcode/5012345678900", headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["branch"] == "provider_hit"
    assert body["attempts"] == 1
    assert body["draft"]["name"] == "Fixture Granola"
    assert body["draft"]["nutrition"]["caloriesPer100"] is None
    assert calls == ["5012345678900"]


def test_barcode_endpoint_reports_retry_fallback(app, client):
    failure = BarcodeLookupResult(ok=False, error=LookupFailure(kind="transient", message="HTTP 503"))
    app.dependency_overrides[deps.get_barcode_lookup] = lambda: (lambda barcode: failure)

    response = client.get("/barcode/5012345678900", headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["branch"] == "retry_fallback"
    assert body["ok"] is False
    assert body["attempts"] == 3
    assert body["error"]["kind"] == "transient"
