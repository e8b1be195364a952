"""
Timestamp normalisation.

Stored timestamps are naive UTC. Aware values are converted on the way in so
they can be compared with the stored ones.
"""
from datetime import datetime, timezone
from typing import Optional


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values and None pass through."""
    if value is None or value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now(now: Optional[datetime] = None) -> datetime:
    """`now` as naive UTC, defaulting to the current time."""
    return to_naive_utc(now) if now is not None else datetime.utcnow()
