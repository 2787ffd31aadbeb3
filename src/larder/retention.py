"""
Retention jobs for exported pantry state.

General records move active -> archived -> deleted: they are archived after a period of
inactivity (``updatedAt``, falling back to ``createdAt``) and removed once they have
sat in the archive for a second window. Pricing history instead keeps a rolling window
of calendar months keyed on ``recordedAt``.

All comparisons happen in UTC. Date-only strings count as UTC midnight. Records whose
timestamps cannot be parsed stay where they are.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from larder import metrics
from larder.clock import ensure_utc, format_utc_timestamp, parse_utc_timestamp, subtract_months
from larder.models.retention import RetentionReport

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_AFTER_DAYS = 30
DEFAULT_DELETE_AFTER_ARCHIVE_DAYS = 30
DEFAULT_PRICING_RETAIN_MONTHS = 12

Record = Dict[str, Any]

# (active key, archive key, report field)
GENERAL_COLLECTIONS: Tuple[Tuple[str, str, str], ...] = (
    ("inventory", "archivedInventory", "inventory_deleted"),
    ("recipes", "archivedRecipes", "recipe_deleted"),
    ("mealPlans", "archivedMealPlans", "meal_plan_deleted"),
    ("shoppingLists", "archivedShoppingLists", "shopping_list_deleted"),
)
PRICING_COLLECTION = "pricingHistory"


@dataclass(frozen=True)
class GeneralRetentionResult:
    active: List[Record] = field(default_factory=list)
    archived: List[Record] = field(default_factory=list)
    deleted: List[Record] = field(default_factory=list)


@dataclass(frozen=True)
class PricingRetentionResult:
    retained: List[Record] = field(default_factory=list)
    deleted: List[Record] = field(default_factory=list)


@dataclass(frozen=True)
class RetentionOutcome:
    state: Dict[str, Any]
    report: RetentionReport


def _should_delete(record: Mapping[str, Any], now: datetime, window: timedelta) -> bool:
    archived_at = parse_utc_timestamp(record.get("archivedAt"))
    if archived_at is None:
        return False
    return now - archived_at >= window


def _should_archive(record: Mapping[str, Any], now: datetime, window: timedelta) -> bool:
    if record.get("archivedAt"):
        return False
    last_touched = parse_utc_timestamp(record.get("updatedAt")) or parse_utc_timestamp(
        record.get("createdAt")
    )
    if last_touched is None:
        return False
    return now - last_touched >= window


def apply_general_retention(
    records: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
    archive_after_days: int = DEFAULT_ARCHIVE_AFTER_DAYS,
    delete_after_archive_days: int = DEFAULT_DELETE_AFTER_ARCHIVE_DAYS,
) -> GeneralRetentionResult:
    """Split records into active, archived (newly stamped or already archived), and deleted."""

    reference = ensure_utc(now)
    archive_window = timedelta(days=archive_after_days)
    delete_window = timedelta(days=delete_after_archive_days)
    stamp = format_utc_timestamp(reference)

    active: List[Record] = []
    archived: List[Record] = []
    deleted: List[Record] = []

    for record in records:
        # Deletion is checked first so an expired archive never re-enters a live list.
        if _should_delete(record, reference, delete_window):
            deleted.append(dict(record))
        elif _should_archive(record, reference, archive_window):
            archived.append({**record, "archivedAt": stamp})
        elif record.get("archivedAt"):
            archived.append(dict(record))
        else:
            active.append(dict(record))

    return GeneralRetentionResult(active=active, archived=archived, deleted=deleted)


def apply_pricing_retention(
    history: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
    retain_months: int = DEFAULT_PRICING_RETAIN_MONTHS,
) -> PricingRetentionResult:
    """Drop price points recorded before ``now`` minus ``retain_months`` calendar months."""

    threshold = subtract_months(ensure_utc(now), retain_months)
    retained: List[Record] = []
    deleted: List[Record] = []

    for point in history:
        effective = parse_utc_timestamp(point.get("recordedAt")) or parse_utc_timestamp(
            point.get("createdAt")
        )
        if effective is not None and effective < threshold:
            deleted.append(dict(point))
        else:
            retained.append(dict(point))

    return PricingRetentionResult(retained=retained, deleted=deleted)


def _as_records(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def run_retention_jobs(
    state: Mapping[str, Any],
    now: Optional[datetime] = None,
    archive_after_days: int = DEFAULT_ARCHIVE_AFTER_DAYS,
    delete_after_archive_days: int = DEFAULT_DELETE_AFTER_ARCHIVE_DAYS,
    retain_months: int = DEFAULT_PRICING_RETAIN_MONTHS,
) -> RetentionOutcome:
    """
    Apply every retention policy to an exported state snapshot.

    Records already sitting in an ``archived*`` collection are fed back through the
    general policy so they age into deletion on later runs. Keys this job does not
    manage are copied through untouched.
    """

    reference = ensure_utc(now)
    next_state: Dict[str, Any] = dict(state)
    counts: Dict[str, int] = {}

    for active_key, archive_key, report_field in GENERAL_COLLECTIONS:
        records = _as_records(state.get(active_key)) + _as_records(state.get(archive_key))
        result = apply_general_retention(
            records,
            now=reference,
            archive_after_days=archive_after_days,
            delete_after_archive_days=delete_after_archive_days,
        )
        next_state[active_key] = result.active
        next_state[archive_key] = result.archived
        counts[report_field] = len(result.deleted)
        if result.deleted:
            metrics.RETENTION_DELETIONS.labels(collection=active_key).inc(len(result.deleted))

    pricing = apply_pricing_retention(
        _as_records(state.get(PRICING_COLLECTION)), now=reference, retain_months=retain_months
    )
    next_state[PRICING_COLLECTION] = pricing.retained
    counts["pricing_deleted"] = len(pricing.deleted)
    if pricing.deleted:
        metrics.RETENTION_DELETIONS.labels(collection=PRICING_COLLECTION).inc(len(pricing.deleted))

    report = RetentionReport(**counts)
    logger.info("Retention run at %s removed %s", format_utc_timestamp(reference), report.model_dump())
    return RetentionOutcome(state=next_state, report=report)


__all__ = [
    "DEFAULT_ARCHIVE_AFTER_DAYS",
    "DEFAULT_DELETE_AFTER_ARCHIVE_DAYS",
    "DEFAULT_PRICING_RETAIN_MONTHS",
    "GENERAL_COLLECTIONS",
    "GeneralRetentionResult",
    "PricingRetentionResult",
    "RetentionOutcome",
    "apply_general_retention",
    "apply_pricing_retention",
    "run_retention_jobs",
]
