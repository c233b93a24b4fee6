"""Shared utilities: datetime helpers."""

from evalsync.shared.utils.datetime import to_server_timestamp, utc_now, utc_now_iso

__all__ = [
    "utc_now",
    "utc_now_iso",
    "to_server_timestamp",
]
