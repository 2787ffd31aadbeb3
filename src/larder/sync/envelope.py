"""
Sync envelope export, comparison, and schema migration.

All exported timestamps are ISO-8601 UTC strings with millisecond precision and a ``Z``
suffix. Device clocks drift, so two snapshots whose timestamps differ by no more than
the drift tolerance are treated as simultaneous and the local side is kept.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from larder import metrics
from larder.clock import format_utc_timestamp, parse_utc_timestamp, utc_now
from larder.models.sync import SyncDecision, SyncEnvelope, SyncResolution

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1
DEFAULT_DRIFT_TOLERANCE_MS = 120_000
DEFAULT_DEVICE_ID = "unknown-device"
DEFAULT_SOURCE = "larder-web"
MIGRATION_FALLBACK_SOURCE = "migration-fallback"
SYNC_FILENAME = "larder-sync.json"

EnvelopeLike = Union[SyncEnvelope, Mapping[str, Any]]


def create_sync_envelope(
    state: Mapping[str, Any],
    now: Optional[datetime] = None,
    device_id: Optional[str] = None,
    source: Optional[str] = None,
) -> SyncEnvelope:
    """Wrap ``state`` in a current-schema envelope stamped with ``now``."""

    return SyncEnvelope(
        schema_version=CURRENT_SCHEMA_VERSION,
        exported_at_utc=format_utc_timestamp(now or utc_now()),
        device_id=device_id or DEFAULT_DEVICE_ID,
        source=source or DEFAULT_SOURCE,
        state=dict(state),
    )


def _exported_at(envelope: EnvelopeLike) -> Any:
    if isinstance(envelope, SyncEnvelope):
        return envelope.exported_at_utc
    return envelope.get("exportedAtUtc")


def _state_of(envelope: Optional[EnvelopeLike]) -> Optional[dict[str, Any]]:
    if envelope is None:
        return None
    if isinstance(envelope, SyncEnvelope):
        return envelope.state
    state = envelope.get("state")
    return dict(state) if isinstance(state, Mapping) else None


def compare_sync_envelopes(
    local: Optional[EnvelopeLike],
    remote: Optional[EnvelopeLike],
    drift_tolerance_ms: int = DEFAULT_DRIFT_TOLERANCE_MS,
) -> SyncDecision:
    """Pick which snapshot should win, with a human-readable reason."""

    if local is None and remote is None:
        return SyncDecision(winner="none", reason="Both sync envelopes are absent.")
    if remote is None:
        return SyncDecision(winner="local", reason="Remote snapshot not found.")
    if local is None:
        return SyncDecision(winner="remote", reason="Local snapshot not found.")

    local_at = parse_utc_timestamp(_exported_at(local))
    remote_at = parse_utc_timestamp(_exported_at(remote))
    if local_at is None or remote_at is None:
        logger.warning("Sync envelope carries a malformed exportedAtUtc; keeping local state")
        return SyncDecision(
            winner="local",
            reason="Malformed timestamp detected; local snapshot retained for safety.",
        )

    delta = remote_at - local_at
    if abs(delta) <= timedelta(milliseconds=drift_tolerance_ms):
        return SyncDecision(
            winner="local",
            reason="Snapshots are within clock drift tolerance; local state wins deterministic tie-breaker.",
        )
    if delta > timedelta(0):
        return SyncDecision(winner="remote", reason="Remote snapshot is newer than local snapshot.")
    return SyncDecision(winner="local", reason="Local snapshot is newer than remote snapshot.")


def resolve_sync_conflict(
    local: Optional[EnvelopeLike],
    remote: Optional[EnvelopeLike],
    drift_tolerance_ms: int = DEFAULT_DRIFT_TOLERANCE_MS,
) -> SyncResolution:
    """Return the winning snapshot's state; ``state`` is ``None`` when neither side exists."""

    decision = compare_sync_envelopes(local, remote, drift_tolerance_ms=drift_tolerance_ms)
    metrics.SYNC_DECISIONS.labels(winner=decision.winner).inc()

    if decision.winner == "local":
        state = _state_of(local)
    elif decision.winner == "remote":
        state = _state_of(remote)
    else:
        state = None

    logger.info("Sync resolved in favour of %s: %s", decision.winner, decision.reason)
    return SyncResolution(state=state, source=decision.winner, reason=decision.reason)


def _schema_version_of(raw: Mapping[str, Any]) -> int:
    value = raw.get("schemaVersion")
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def _text_or(value: Any, default: str) -> str:
    return str(value) if value else default


def _normalize_legacy(raw: Mapping[str, Any]) -> SyncEnvelope:
    # v0 exports used ``exportedAt`` and sometimes omitted ``deviceId``.
    exported_at = raw.get("exportedAtUtc") or raw.get("exportedAt") or format_utc_timestamp(utc_now())
    state = raw.get("state")
    return SyncEnvelope(
        schema_version=CURRENT_SCHEMA_VERSION,
        exported_at_utc=str(exported_at),
        device_id=_text_or(raw.get("deviceId"), DEFAULT_DEVICE_ID),
        source=_text_or(raw.get("source"), DEFAULT_SOURCE),
        state=dict(state) if isinstance(state, Mapping) else {},
    )


def _repair_current(raw: Mapping[str, Any], version: int) -> SyncEnvelope:
    # Keeps the payload's own version and unknown keys. A missing timestamp stays
    # empty so the envelope compares as malformed instead of looking brand new.
    exported_at = raw.get("exportedAtUtc") or raw.get("exportedAt") or ""
    state = raw.get("state")
    return SyncEnvelope.model_validate(
        {
            **raw,
            "schemaVersion": version,
            "exportedAtUtc": str(exported_at),
            "deviceId": _text_or(raw.get("deviceId"), DEFAULT_DEVICE_ID),
            "source": _text_or(raw.get("source"), DEFAULT_SOURCE),
            "state": dict(state) if isinstance(state, Mapping) else {},
        }
    )


def migrate_sync_envelope(raw: Any) -> SyncEnvelope:
    """
    Bring an imported payload up to the current schema. Never raises.

    - Non-object input yields a fresh envelope around an empty state.
    - Current or newer versions pass through unchanged, unknown keys included. One
      that fails validation is repaired field by field but keeps its version.
    - Every older version goes through the v0 normalization path.
    """

    if isinstance(raw, SyncEnvelope):
        if raw.schema_version >= CURRENT_SCHEMA_VERSION:
            return raw
        raw = raw.model_dump(by_alias=True)

    if not isinstance(raw, Mapping):
        logger.warning("Sync payload is not an object; starting from an empty envelope")
        return create_sync_envelope({}, source=MIGRATION_FALLBACK_SOURCE)

    version = _schema_version_of(raw)
    if version >= CURRENT_SCHEMA_VERSION:
        try:
            return SyncEnvelope.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Sync payload v%s failed validation; repairing: %s", version, exc.errors())
        return _repair_current(raw, version)

    logger.debug("Migrating sync payload from schema v%s", version)
    return _normalize_legacy(raw)


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_DEVICE_ID",
    "DEFAULT_DRIFT_TOLERANCE_MS",
    "DEFAULT_SOURCE",
    "MIGRATION_FALLBACK_SOURCE",
    "SYNC_FILENAME",
    "compare_sync_envelopes",
    "create_sync_envelope",
    "migrate_sync_envelope",
    "resolve_sync_conflict",
]
