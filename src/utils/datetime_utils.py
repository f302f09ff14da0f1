"""Datetime utilities for timezone-aware UTC timestamps.

SQLite stores DateTime columns without timezone information, so values read
back from the database are naive. ``as_utc`` normalizes both kinds so they
can be compared and serialized consistently.

Usage:
    from src.utils.datetime_utils import utc_now, as_utc

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)

    # Normalize a caller-supplied or database-loaded timestamp
    effective_date = as_utc(effective_date)
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes are assumed to already be in UTC (that is how they are
    written). Aware datetimes are converted.

    Args:
        value: Datetime to normalize, or None

    Returns:
        Aware UTC datetime, or None if value is None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
