"""Datetime helpers.

Timestamps are stored as naive UTC in the database.
"""

from datetime import datetime, timezone


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, matching the DB column type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
