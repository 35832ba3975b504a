"""
UTC datetime utilities for consistent timezone handling.

Entity timestamps exchanged with the API are ISO-8601 strings in UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string (wire format)."""
    return utc_now().isoformat()
