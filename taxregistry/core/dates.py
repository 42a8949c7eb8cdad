"""UTC date helpers.

Every timestamp the registry stores or compares is timezone-aware UTC. SQLite
drops the offset on round trip, so values read back are normalized with
``as_utc`` before any comparison.
"""

from datetime import UTC, date, datetime, time


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def end_of_year(year: int) -> datetime:
    """Return the last second of December 31 of ``year`` in UTC."""
    return datetime(year, 12, 31, 23, 59, 59, tzinfo=UTC)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=UTC)
