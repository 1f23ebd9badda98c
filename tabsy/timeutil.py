"""Timestamp helpers. Everything in the database is naive UTC."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso(value: str) -> datetime | None:
    """
    Parse an ISO-8601 date or datetime string.

    Accepts "2024-05-01", "2024-05-01T10:00:00Z" and offset forms.

    Returns:
        Naive UTC datetime, or None when the value is empty or unparseable
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    return to_naive_utc(parsed)
