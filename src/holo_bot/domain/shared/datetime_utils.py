"""Date/time helpers.

Always store and operate on timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Returns a timezone-aware datetime in UTC."""
    return datetime.now(UTC)
