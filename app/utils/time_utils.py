"""Time helpers

All timestamps are stored as naive UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def epoch_millis(value: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch"""
    value = to_naive_utc(value or utc_now())
    return int((value - EPOCH).total_seconds() * 1000)
