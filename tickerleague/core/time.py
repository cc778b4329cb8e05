"""Day boundaries in the league's reference timezone.

A week settles at the very end of its end date in the reference timezone
(Eastern time by default), regardless of where the server runs.
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

END_OF_DAY = time(23, 59, 59, 999000)


def day_start(day: date, timezone_name: str) -> datetime:
    """Midnight at the start of ``day`` in ``timezone_name``, as aware UTC."""
    local = datetime.combine(day, time.min, tzinfo=ZoneInfo(timezone_name))
    return local.astimezone(timezone.utc)


def day_end(day: date, timezone_name: str) -> datetime:
    """23:59:59.999 of ``day`` in ``timezone_name``, as aware UTC."""
    local = datetime.combine(day, END_OF_DAY, tzinfo=ZoneInfo(timezone_name))
    return local.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
