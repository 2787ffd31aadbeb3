"""UTC timestamp helpers shared by the retention engine and sync resolver."""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

DAY = timedelta(days=1)

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> datetime:
    """Coerce ``value`` to an aware UTC datetime; naive values are read as UTC."""
    if value is None:
        return utc_now()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc_timestamp(raw: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Date-only strings (``YYYY-MM-DD``) are interpreted as UTC midnight so comparisons do
    not depend on the host time zone. Returns ``None`` for empty or unparseable input.
    """

    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return ensure_utc(raw)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min, tzinfo=timezone.utc)
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if _DATE_ONLY_RE.match(text):
        text = f"{text}T00:00:00+00:00"
    elif text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return ensure_utc(parsed)


def format_utc_timestamp(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def subtract_months(value: datetime, months: int) -> datetime:
    """Move ``value`` back by calendar months, clamping the day to the target month."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


__all__ = [
    "DAY",
    "ensure_utc",
    "format_utc_timestamp",
    "parse_utc_timestamp",
    "subtract_months",
    "utc_now",
]
