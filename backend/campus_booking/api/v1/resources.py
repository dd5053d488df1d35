from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query

from campus_booking.api.deps import ServiceDep
from campus_booking.models import (
    Reservation,
    ReservationStatus,
    Resource,
    ResourceKind,
    RoomType,
)
from campus_booking.schemas import (
    AvailabilityCheck,
    AvailabilityResult,
    LabStationsRead,
    ReservationRead,
    ResourceRead,
    ResourceStatusRead,
)
from campus_booking.services.availability import AvailabilityView, ResourceView

router = APIRouter()


def _status_read(view: ResourceView) -> ResourceStatusRead:
    current = view.current_reservation
    return ResourceStatusRead(
        **ResourceRead.model_validate(view.resource).model_dump(),
        status=view.status.value,
        current_reservation=ReservationRead.model_validate(current) if current else None,
    )


@router.get("/", response_model=List[ResourceRead], summary="List resources")
def list_resources(
    service: ServiceDep,
    kind: Optional[ResourceKind] = None,
    parent_id: Optional[str] = Query(default=None, alias="parentId"),
    room_type: Optional[RoomType] = Query(default=None, alias="roomType"),
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> List[Resource]:
    kinds = [kind] if kind else list(ResourceKind)
    resources: List[Resource] = []
    for item in kinds:
        resources.extend(
            service.registry.list_by_kind(
                item,
                parent_id=parent_id,
                room_type=room_type,
                active_only=not include_inactive,
            )
        )
    return resources


@router.get("/labs", response_model=List[ResourceRead], summary="List labs")
def list_labs(service: ServiceDep) -> List[Resource]:
    return service.registry.list_labs()


@router.get(
    "/labs/{lab_id}/stations",
    response_model=LabStationsRead,
    summary="List a lab's stations with their current status",
)
def list_lab_stations(lab_id: str, service: ServiceDep) -> LabStationsRead:
    lab, views = AvailabilityView(service).describe_lab(lab_id)
    return LabStationsRead(
        lab=ResourceRead.model_validate(lab),
        stations=[_status_read(view) for view in views],
    )


@router.get(
    "/{resource_id}",
    response_model=ResourceStatusRead,
    summary="Get resource with derived status",
)
def get_resource(resource_id: str, service: ServiceDep) -> ResourceStatusRead:
    resource = service.registry.get(resource_id)
    return _status_read(AvailabilityView(service).describe(resource))


@router.get(
    "/{resource_id}/reservations",
    response_model=List[ReservationRead],
    summary="Reservations overlapping a display window",
)
def list_resource_reservations(
    resource_id: str,
    service: ServiceDep,
    range_start: Optional[datetime] = Query(default=None, alias="rangeStart"),
    range_end: Optional[datetime] = Query(default=None, alias="rangeEnd"),
    include_cancelled: bool = Query(default=False, alias="includeCancelled"),
) -> List[Reservation]:
    statuses = None
    if include_cancelled:
        statuses = [item.value for item in ReservationStatus]
    return service.list_for_resource(
        resource_id, range_start=range_start, range_end=range_end, statuses=statuses
    )


@router.post(
    "/{resource_id}/availability",
    response_model=AvailabilityResult,
    summary="Check whether an interval is free",
)
def check_availability(
    resource_id: str, payload: AvailabilityCheck, service: ServiceDep
) -> AvailabilityResult:
    conflict = service.check_availability(
        resource_id, payload.start_time, payload.end_time
    )
    return AvailabilityResult(
        available=conflict is None,
        conflicting_reservation=ReservationRead.model_validate(conflict) if conflict else None,
    )
