"""
Core Utilities.

Shared utility functions used across the backend.
All modules should import utilities from this module.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application should be timezone-naive
    and assumed to be UTC. This ensures consistent behavior across
    the codebase and simplifies database storage.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_timestamp(value: datetime | None = None) -> str:
    """
    Format a UTC datetime as ISO 8601 with millisecond precision and a Z suffix.

    Used for the ``timestamp`` fields of status responses
    (e.g. ``2024-05-01T12:00:00.000Z``).
    """
    value = value or utc_now()
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
