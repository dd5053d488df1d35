from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from campus_booking.core.timeutils import utcnow

from .types import UTCDateTime


class ResourceKind(str, Enum):
    ROOM = "room"
    LAB_STATION = "lab_station"


class RoomType(str, Enum):
    CLASSROOM = "classroom"
    LAB = "lab"
    LECTURE_HALL = "lecture_hall"
    CONFERENCE_ROOM = "conference_room"


class ResourceStatus(str, Enum):
    """Operational status, always derived on read."""

    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    OUT_OF_SERVICE = "out_of_service"


def _new_resource_id() -> str:
    return str(uuid4())


class Resource(SQLModel, table=True):
    """Rooms and lab workstations available for reservation."""

    __tablename__ = "resources"

    id: str = Field(
        default_factory=_new_resource_id, primary_key=True, index=True, max_length=64
    )
    kind: str = Field(max_length=32, index=True)  # ResourceKind
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    capacity: int = Field(default=1, ge=1)
    building: Optional[str] = Field(default=None, max_length=255)
    floor: Optional[int] = Field(default=None)
    room_type: Optional[str] = Field(default=None, max_length=32)  # RoomType, rooms only
    equipment: Optional[list[str]] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    # Lab stations belong to a room of type "lab"
    parent_id: Optional[str] = Field(
        default=None, foreign_key="resources.id", nullable=True, index=True
    )
    station_number: Optional[str] = Field(default=None, max_length=32)
    # Administrative override; only "out_of_service" is honoured
    status_override: Optional[str] = Field(default=None, max_length=32)
    is_active: bool = Field(default=True)
    is_available: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, nullable=False
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime, nullable=False
    )

    @property
    def is_bookable(self) -> bool:
        return (
            self.is_active
            and self.is_available
            and self.status_override != ResourceStatus.OUT_OF_SERVICE
        )

    def touch(self) -> None:
        self.updated_at = utcnow()
