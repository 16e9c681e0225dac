"""
Datetime helpers for timezone-aware timestamps.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return the current datetime in UTC.

    Use this instead of ``datetime.now(timezone.utc)`` so tests can patch a
    single function.
    """
    return datetime.now(timezone.utc)
