"""Time helpers.

All timestamps are naive UTC, matching what the database columns store.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_z(value: datetime) -> str:
    """ISO-8601 with a trailing Z, as sent in notification payloads."""
    return value.isoformat(timespec="milliseconds") + "Z"
