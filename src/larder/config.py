"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for authenticated endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    device_id: str = Field(
        default="unknown-device",
        description="Identifier stamped on exported sync envelopes.",
    )
    sync_source: str = Field(
        default="larder-web",
        description="Source marker stamped on exported sync envelopes.",
    )
    sync_drift_tolerance_ms: int = Field(
        default=120_000,
        ge=0,
        description="Window in which local and remote snapshots count as simultaneous.",
    )
    retention_archive_after_days: int = Field(
        default=30,
        ge=1,
        description="Days of inactivity before a record is archived.",
    )
    retention_delete_after_archive_days: int = Field(
        default=30,
        ge=1,
        description="Days an archived record is kept before deletion.",
    )
    pricing_retain_months: int = Field(
        default=12,
        ge=1,
        description="Calendar months of pricing history to keep.",
    )
    barcode_base_url: str = Field(
        default="https://world.openfoodfacts.org/api/v2/product",
        description="Product lookup endpoint used for barcode scans.",
    )
    barcode_timeout: float = Field(
        default=10.0,
        description="Seconds before a barcode lookup request times out.",
    )
    barcode_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Lookup attempts allowed when the provider reports transient failures.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                key = key.strip().removeprefix("export ").strip()
                if not key.startswith("LARDER_"):
                    continue
                payload[key] = raw_value.strip().strip("\"'")
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


_INT_OVERRIDES = {
    "LARDER_SYNC_DRIFT_TOLERANCE_MS": "sync_drift_tolerance_ms",
    "LARDER_RETENTION_ARCHIVE_AFTER_DAYS": "retention_archive_after_days",
    "LARDER_RETENTION_DELETE_AFTER_ARCHIVE_DAYS": "retention_delete_after_archive_days",
    "LARDER_PRICING_RETAIN_MONTHS": "pricing_retain_months",
    "LARDER_BARCODE_MAX_ATTEMPTS": "barcode_max_attempts",
}


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (api_token := _env("LARDER_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("LARDER_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("LARDER_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("LARDER_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (device_id := _env("LARDER_DEVICE_ID")):
        payload["device_id"] = device_id
    if (sync_source := _env("LARDER_SYNC_SOURCE")):
        payload["sync_source"] = sync_source
    for env_key, field_name in _INT_OVERRIDES.items():
        if (raw := _env(env_key)):
            try:
                payload[field_name] = int(raw)
            except ValueError:
                pass
    if (barcode_base_url := _env("LARDER_BARCODE_BASE_URL")):
        payload["barcode_base_url"] = barcode_base_url
    if (barcode_timeout := _env("LARDER_BARCODE_TIMEOUT")):
        try:
            payload["barcode_timeout"] = float(barcode_timeout)
        except ValueError:
            pass
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
