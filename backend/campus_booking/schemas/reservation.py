from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from campus_booking.schemas.base import CamelModel, utc


class ReservationCreate(CamelModel):
    resource_id: str = Field(min_length=1, max_length=64)
    holder_id: str = Field(min_length=1, max_length=64)
    start_time: datetime
    end_time: datetime
    title: Optional[str] = Field(default=None, max_length=255)
    purpose: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)


class ReservationUpdate(CamelModel):
    """Partial change; omitted fields stay as they are."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    title: Optional[str] = Field(default=None, max_length=255)
    purpose: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)


class ReservationRead(CamelModel):
    id: UUID
    resource_id: str
    resource_kind: str
    holder_id: str
    start_time: datetime
    end_time: datetime
    status: str
    title: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    ended_at: Optional[datetime] = None

    @field_validator(
        "start_time", "end_time", "created_at", "updated_at", "ended_at"
    )
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return utc(value)


class ActiveReservationResponse(CamelModel):
    has_active_reservation: bool
    reservation: Optional[ReservationRead] = None


class ExpiringReservationResponse(CamelModel):
    has_expiring_reservation: bool
    reservation: Optional[ReservationRead] = None
    notification_id: Optional[UUID] = None
    message: Optional[str] = None


class AvailabilityCheck(CamelModel):
    start_time: datetime
    end_time: datetime


class AvailabilityResult(CamelModel):
    available: bool
    conflicting_reservation: Optional[ReservationRead] = None
