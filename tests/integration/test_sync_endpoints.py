"""Integration tests for sync envelope endpoints."""

from __future__ import annotations

from fastapi import status

from tests.integration.utils import auth_headers


def test_export_envelope_uses_settings_defaults(client):
    response = client.post("/sync/envelope", json={"state": {"inventory": []}}, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["schemaVersion"] == 1
    assert body["deviceId"] == "unknown-device"
    assert body["source"] == "larder-web"
    assert body["exportedAtUtc"].endswith("Z")
    assert body["state"] == {"inventory": []}


def test_export_envelope_accepts_overrides(client):
    response = client.post(
        "/sync/envelope",
        json={"state": {}, "deviceId": "kitchen-tablet", "source": "larder-cli"},
        headers=auth_headers(),
    )

    assert response.json()["deviceId"] == "kitchen-tablet"
    assert response.json()["source"] == "larder-cli"


def test_migrate_endpoint_upgrades_legacy_payload(client):
    response = client.post(
        "/sync/migrate",
        json={"exportedAt": "2025-06-01T10:00:00.000Z", "deviceId": "laptop", "state": {"recipes": []}},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "schemaVersion": 1,
        "exportedAtUtc": "2025-06-01T10:00:00.000Z",
        "deviceId": "laptop",
        "source": "larder-web",
        "state": {"recipes": []},
    }


def test_migrate_endpoint_round_trips_newer_envelope(client):
    raw = {
        "schemaVersion": 2,
        "exportedAtUtc": "2026-01-10T08:30:00.000Z",
        "deviceId": "phone",
        "source": "larder-mobile",
        "state": {"inventory": []},
        "checksum": "abc",
    }

    response = client.post("/sync/migrate", json=raw, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == raw


def test_migrate_endpoint_handles_non_objects(client):
    response = client.post("/sync/migrate", json=["not", "an", "envelope"], headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["source"] == "migration-fallback"
    assert response.json()["state"] == {}


def test_resolve_endpoint_prefers_newer_remote(client):
    payload = {
        "local": {"schemaVersion": 1, "exportedAtUtc": "2026-01-10T08:00:00.000Z", "state": {"v": 1}},
        "remote": {"exportedAt": "2026-01-10T09:00:00.000Z", "state": {"v": 2}},
    }

    response = client.post("/sync/resolve", json=payload, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "state": {"v": 2},
        "source": "remote",
        "reason": "Remote snapshot is newer than local snapshot.",
    }


def test_resolve_endpoint_with_missing_remote(client):
    payload = {"local": {"schemaVersion": 1, "exportedAtUtc": "2026-01-10T08:00:00.000Z", "state": {"v": 1}}}

    response = client.post("/sync/resolve", json=payload, headers=auth_headers())

    assert response.json()["source"] == "local"
    assert response.json()["reason"] == "Remote snapshot not found."


def test_resolve_endpoint_honours_drift_tolerance(client):
    payload = {
        "local": {"schemaVersion": 1, "exportedAtUtc": "2026-01-10T08:00:00.000Z"},
        "remote": {"schemaVersion": 1, "exportedAtUtc": "2026-01-10T08:00:30.000Z"},
        "driftToleranceMs": 1000,
    }

    response = client.post("/sync/resolve", json=payload, headers=auth_headers())

    assert response.json()["source"] == "remote"
