"""
Timezone-safe datetime helpers.

All timestamps are stored in UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC datetime with timezone info attached."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Convert any datetime to UTC.

    Naive datetimes (SQLite returns these) are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def human_duration(then: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago ``then`` was, e.g. ``"3 minutes ago"``.

    Future times read ``"in 3 minutes"``.
    """
    now = now or utc_now()
    delta = ensure_utc(now) - ensure_utc(then)
    future = delta < timedelta(0)
    seconds = int(abs(delta.total_seconds()))

    if seconds < 10:
        return "now"

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1)):
        if seconds >= size:
            count = seconds // size
            label = f"{count} {unit}{'s' if count != 1 else ''}"
            return f"in {label}" if future else f"{label} ago"

    return "now"
