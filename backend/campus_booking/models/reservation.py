from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Index, text
from sqlmodel import Field, SQLModel

from campus_booking.core.timeutils import utcnow

from .types import UTCDateTime


class ReservationStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not ReservationStatus.ACTIVE


ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.ACTIVE: frozenset(
        {
            ReservationStatus.CANCELLED,
            ReservationStatus.COMPLETED,
            ReservationStatus.EXPIRED,
        }
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.EXPIRED: frozenset(),
}

_ACTIVE_LAB_STATION = text("status = 'active' AND resource_kind = 'lab_station'")


class Reservation(SQLModel, table=True):
    """One resource allocated to one holder over [start_time, end_time)."""

    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_reservations_interval"),
        Index(
            "ix_reservations_resource_window",
            "resource_id",
            "status",
            "start_time",
            "end_time",
        ),
        # Storage-level backstop for the single-active lab-station rule
        Index(
            "uq_reservations_active_lab_station_holder",
            "holder_id",
            unique=True,
            sqlite_where=_ACTIVE_LAB_STATION,
            postgresql_where=_ACTIVE_LAB_STATION,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    resource_id: str = Field(foreign_key="resources.id", nullable=False, index=True)
    resource_kind: str = Field(max_length=32, nullable=False)
    holder_id: str = Field(max_length=64, nullable=False, index=True)
    start_time: datetime = Field(sa_type=UTCDateTime, nullable=False, index=True)
    end_time: datetime = Field(sa_type=UTCDateTime, nullable=False, index=True)
    status: str = Field(
        default=ReservationStatus.ACTIVE.value, max_length=20, index=True
    )
    title: Optional[str] = Field(default=None, max_length=255)
    purpose: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, nullable=False
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, nullable=False
    )
    ended_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    def touch(self) -> None:
        self.updated_at = utcnow()
