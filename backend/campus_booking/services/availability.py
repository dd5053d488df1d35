"""Read-side view joining the static catalog with the reservation ledger.

A resource's operational status is never stored; it is computed here from
its active reservations and the administrative override each time it is
rendered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from campus_booking.models import (
    Reservation,
    ReservationStatus,
    Resource,
    ResourceKind,
    ResourceStatus,
)
from campus_booking.services.lifecycle import ReservationService


@dataclass
class ResourceView:
    resource: Resource
    status: ResourceStatus
    current_reservation: Optional[Reservation] = None


def derive_status(
    resource: Resource, reservations: Iterable[Reservation], now: datetime
) -> tuple[ResourceStatus, Optional[Reservation]]:
    if not resource.is_bookable:
        return ResourceStatus.OUT_OF_SERVICE, None
    upcoming = False
    for reservation in reservations:
        if reservation.status != ReservationStatus.ACTIVE or reservation.end_time <= now:
            continue
        if reservation.start_time <= now:
            return ResourceStatus.OCCUPIED, reservation
        upcoming = True
    if upcoming:
        return ResourceStatus.RESERVED, None
    return ResourceStatus.AVAILABLE, None


class AvailabilityView:
    def __init__(self, service: ReservationService) -> None:
        self.service = service

    def describe(self, resource: Resource) -> ResourceView:
        active = self.service.list_for_resource(
            resource.id, statuses=[ReservationStatus.ACTIVE.value]
        )
        status, current = derive_status(resource, active, self.service.clock())
        return ResourceView(resource=resource, status=status, current_reservation=current)

    def describe_many(self, resources: Iterable[Resource]) -> List[ResourceView]:
        return [self.describe(resource) for resource in resources]

    def describe_lab(self, lab_id: str) -> tuple[Resource, List[ResourceView]]:
        registry = self.service.registry
        lab = registry.get_lab(lab_id)
        stations = registry.list_by_kind(ResourceKind.LAB_STATION, parent_id=lab.id)
        return lab, self.describe_many(stations)
