"""Sync envelope models exchanged with the cloud snapshot store."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field

from larder.models.base import WireModel

SyncWinner = Literal["local", "remote", "none"]


class SyncEnvelope(WireModel):
    """Versioned wrapper around an exported application state snapshot.

    Keys written by newer schema versions are kept as extra fields so a pass-through
    envelope serializes back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    schema_version: int
    exported_at_utc: str
    device_id: str = Field(default="unknown-device")
    source: str = Field(default="larder-web")
    state: dict[str, Any] = Field(default_factory=dict)


class SyncDecision(WireModel):
    winner: SyncWinner
    reason: str


class SyncResolution(WireModel):
    """State chosen by conflict resolution along with the side it came from."""

    state: Optional[dict[str, Any]] = Field(default=None)
    source: SyncWinner
    reason: str
