from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from campus_booking.schemas.base import CamelModel, utc
from campus_booking.schemas.reservation import ReservationRead


class ResourceRead(CamelModel):
    id: str
    kind: str
    name: str
    description: Optional[str] = None
    capacity: int
    building: Optional[str] = None
    floor: Optional[int] = None
    room_type: Optional[str] = None
    equipment: Optional[List[str]] = None
    parent_id: Optional[str] = None
    station_number: Optional[str] = None
    is_active: bool
    is_available: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return utc(value)


class ResourceStatusRead(ResourceRead):
    status: str
    current_reservation: Optional[ReservationRead] = None


class LabStationsRead(CamelModel):
    lab: ResourceRead
    stations: List[ResourceStatusRead]
