"""UTC timestamp helpers shared by models and repositories."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC.

    Naive values are taken to already be UTC (SQLite hands them back that way).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_updated_at(previous: Optional[datetime], now: datetime) -> datetime:
    """Timestamp for a row update that is strictly later than `previous`.

    A clock that has not moved past `previous` still yields a later value.
    """
    now = ensure_utc(now)
    if previous is None:
        return now
    return max(now, ensure_utc(previous) + timedelta(microseconds=1))
