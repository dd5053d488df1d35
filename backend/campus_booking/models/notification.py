from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from campus_booking.core.timeutils import utcnow

from .types import UTCDateTime


class Notification(SQLModel, table=True):
    """Alert surfaced to a reservation holder on their next poll."""

    __tablename__ = "notifications"
    __table_args__ = (
        # one alert of each type per reservation
        UniqueConstraint("reservation_id", "type", name="uq_notifications_reservation_type"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    holder_id: str = Field(max_length=64, nullable=False, index=True)
    reservation_id: UUID | None = Field(
        default=None, foreign_key="reservations.id", nullable=True, index=True
    )
    type: str = Field(max_length=50)  # reservation_expiring
    title: str = Field(max_length=255)
    message: str = Field(max_length=1000)
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, nullable=False, index=True
    )
    read_at: datetime | None = Field(default=None, sa_type=UTCDateTime, nullable=True)
