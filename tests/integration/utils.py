"""Shared helpers for integration tests."""

from __future__ import annotations

from larder.config import get_settings


def auth_headers(scheme: str = "bearer") -> dict[str, str]:
    """Headers carrying the configured API token, or nothing when auth is off."""

    token = get_settings().api_token
    if not token:
        return {}
    if scheme == "api-key":
        return {"X-API-Key": token}
    return {"Authorization": f"Bearer {token}"}
