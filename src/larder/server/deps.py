"""Dependency definitions for the Larder API server."""

from __future__ import annotations

import secrets
from typing import Iterator, Optional

from fastapi import Depends, HTTPException, Request, status

from larder.barcode import BarcodeLookup, OpenFoodFactsClient
from larder.config import Settings, get_settings

BEARER_PREFIX = "Bearer "


def get_barcode_lookup() -> BarcodeLookup:
    """Return the provider lookup used for barcode scans."""

    return OpenFoodFactsClient().lookup_by_barcode


def _presented_credentials(request: Request) -> Iterator[str]:
    authorization: Optional[str] = request.headers.get("Authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        yield authorization[len(BEARER_PREFIX):].strip()
    api_key = request.headers.get("X-API-Key")
    if api_key:
        yield api_key.strip()


def require_api_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured token; open when none is set."""

    expected = settings.api_token
    if not expected:
        return

    for candidate in _presented_credentials(request):
        if secrets.compare_digest(candidate.encode(), expected.encode()):
            return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
