"""Inventory list updates: replace-or-append and archive stamping."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence, Union

from larder.clock import format_utc_timestamp
from larder.models.pantry import InventoryItem

from .utils import upsert_by_id

logger = logging.getLogger(__name__)


def upsert_inventory_item(items: Sequence[InventoryItem], item: InventoryItem) -> List[InventoryItem]:
    """Replace the item with the same id in place, or append it."""
    return upsert_by_id(items, item)


def archive_inventory_item(
    items: Sequence[InventoryItem],
    item_id: str,
    archived_at_utc: Union[str, datetime],
) -> List[InventoryItem]:
    """
    Stamp ``archived_at`` on the item with ``item_id`` and return the new list.

    Datetimes are written as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; strings are stored as given.
    An unknown id leaves every item untouched.
    """

    stamp = (
        format_utc_timestamp(archived_at_utc)
        if isinstance(archived_at_utc, datetime)
        else archived_at_utc
    )
    updated: List[InventoryItem] = []
    for item in items:
        if item.id == item_id:
            item = item.model_copy(update={"archived_at": stamp})
            logger.debug("Archived inventory item %s at %s", item_id, stamp)
        updated.append(item)
    return updated


__all__ = ["archive_inventory_item", "upsert_inventory_item"]
