"""UTC time helpers shared by the simulator and the ledger."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_start(value: datetime) -> datetime:
    """Midnight (UTC) of the calendar day containing ``value``."""
    value = ensure_utc(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_of_year(value: datetime) -> int:
    return ensure_utc(value).timetuple().tm_yday


def days_ago(value: datetime, days: int) -> datetime:
    return day_start(value) - timedelta(days=days)
