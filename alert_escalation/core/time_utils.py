"""Time helpers.

Timestamps are persisted as naive UTC datetimes so comparisons behave the same
on PostgreSQL and SQLite.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def utc_now_naive() -> datetime:
    """Return the current UTC time as a naive datetime for storage."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC.

    Aware datetimes are converted to UTC first; naive values are assumed to
    already be UTC.
    """
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def to_aware_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime (or convert an aware one to UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
