"""
UTC datetime utilities for consistent timezone handling.

All timestamps sent to the webhook are produced here: ISO-8601 UTC for
progress activity fields, and the server's "YYYY-MM-DD HH:MM:SS" form
for completion fields.
"""

from datetime import UTC, datetime

from evalsync.core.constants import SERVER_TIMESTAMP_FORMAT


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Use this instead of datetime.now() or datetime.utcnow().

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return utc_now().isoformat()


def to_server_timestamp(dt: datetime | None = None) -> str:
    """
    Format a datetime the way the webhook stores completion times.

    Naive datetimes are assumed to be UTC; aware ones are converted.

    Args:
        dt: Datetime to format; defaults to now.

    Returns:
        String like "2024-05-01 13:45:00"
    """
    if dt is None:
        dt = utc_now()
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime(SERVER_TIMESTAMP_FORMAT)
