from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC, the form stored in the database.
    Naive inputs are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def window_around(center: datetime, minutes: int) -> Tuple[datetime, datetime]:
    delta = timedelta(minutes=minutes)
    return center - delta, center + delta


def to_zoom_timestamp(value: datetime) -> str:
    return as_utc_naive(value).strftime("%Y-%m-%dT%H:%M:%SZ")
