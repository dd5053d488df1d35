"""Catalog of bookable resources. Knows nothing about reservations."""

from __future__ import annotations

from typing import List, Optional

from sqlmodel import Session, select

from campus_booking.core.errors import NotFound
from campus_booking.models import Resource, ResourceKind, RoomType


class ResourceRegistry:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, resource_id: str) -> Resource:
        resource = self.session.get(Resource, resource_id)
        if resource is None:
            raise NotFound("Resource not found", resource_id=resource_id)
        return resource

    def list_by_kind(
        self,
        kind: ResourceKind | str,
        *,
        parent_id: Optional[str] = None,
        room_type: Optional[RoomType | str] = None,
        active_only: bool = True,
        available_only: bool = False,
    ) -> List[Resource]:
        statement = select(Resource).where(Resource.kind == ResourceKind(kind).value)
        if parent_id is not None:
            statement = statement.where(Resource.parent_id == parent_id)
        if room_type is not None:
            statement = statement.where(Resource.room_type == RoomType(room_type).value)
        if active_only:
            statement = statement.where(Resource.is_active == True)  # noqa: E712
        if available_only:
            statement = statement.where(Resource.is_available == True)  # noqa: E712
        statement = statement.order_by(
            Resource.building, Resource.name, Resource.station_number
        )
        return list(self.session.exec(statement).all())

    def list_labs(self) -> List[Resource]:
        return self.list_by_kind(
            ResourceKind.ROOM, room_type=RoomType.LAB, available_only=True
        )

    def get_lab(self, lab_id: str) -> Resource:
        lab = self.get(lab_id)
        if lab.kind != ResourceKind.ROOM or lab.room_type != RoomType.LAB:
            raise NotFound("Lab not found", resource_id=lab_id)
        return lab

    def is_bookable(self, resource_id: str) -> bool:
        resource = self.session.get(Resource, resource_id)
        return resource is not None and resource.is_bookable
