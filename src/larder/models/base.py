"""Shared pydantic configuration for wire-facing models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Immutable model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)
