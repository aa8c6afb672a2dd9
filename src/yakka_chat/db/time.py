"""Time utilities for database models and wire payloads."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def isoformat_utc(value: datetime) -> str:
    """Render a timestamp as ISO 8601, treating naive values as UTC.

    SQLite hands back naive datetimes, so stored rows and freshly created
    ones are normalised to the same representation before leaving the server.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
