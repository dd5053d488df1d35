from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import field_validator

from campus_booking.schemas.base import CamelModel, utc


class NotificationRead(CamelModel):
    id: UUID
    holder_id: str
    reservation_id: UUID | None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    read_at: datetime | None

    @field_validator("created_at", "read_at")
    @classmethod
    def as_utc(cls, value: datetime | None) -> datetime | None:
        return utc(value)
