"""Snapshot sync between devices: envelope export, conflict resolution, and migration."""

from larder.sync.envelope import (
    CURRENT_SCHEMA_VERSION,
    DEFAULT_DEVICE_ID,
    DEFAULT_DRIFT_TOLERANCE_MS,
    DEFAULT_SOURCE,
    MIGRATION_FALLBACK_SOURCE,
    SYNC_FILENAME,
    compare_sync_envelopes,
    create_sync_envelope,
    migrate_sync_envelope,
    resolve_sync_conflict,
)

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
