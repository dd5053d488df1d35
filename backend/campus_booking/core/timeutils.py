"""UTC helpers.

Timestamps are aware UTC everywhere in Python and stored as naive UTC by
``models.types.UTCDateTime``. Local time zones are never interpreted here.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware_utc(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive input is taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
