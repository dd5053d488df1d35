from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from campus_booking.api.deps import RequesterDep, ServiceDep, WatcherDep
from campus_booking.core.errors import Forbidden
from campus_booking.models import Reservation, ReservationStatus, ResourceKind
from campus_booking.schemas import (
    ActiveReservationResponse,
    ExpiringReservationResponse,
    ReservationCreate,
    ReservationRead,
    ReservationUpdate,
)
from campus_booking.services.lifecycle import ReservationRequest

router = APIRouter()


@router.post(
    "/",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create reservation",
)
def create_reservation(
    payload: ReservationCreate,
    service: ServiceDep,
    requester: RequesterDep,
) -> Reservation:
    if payload.holder_id != requester.user_id and not requester.is_admin:
        raise Forbidden(
            "You can only reserve on your own behalf", holder_id=payload.holder_id
        )
    return service.submit(ReservationRequest(**payload.model_dump()))


@router.get(
    "/active",
    response_model=ActiveReservationResponse,
    summary="Get holder's active reservation",
)
def get_active_reservation(
    service: ServiceDep,
    holder_id: str = Query(..., alias="holderId"),
    resource_kind: Optional[ResourceKind] = Query(default=None, alias="resourceKind"),
) -> ActiveReservationResponse:
    reservation = service.get_active_for_holder(
        holder_id, resource_kind.value if resource_kind else None
    )
    return ActiveReservationResponse(
        has_active_reservation=reservation is not None,
        reservation=ReservationRead.model_validate(reservation) if reservation else None,
    )


@router.get(
    "/expiring",
    response_model=ExpiringReservationResponse,
    summary="Check for a reservation about to end",
)
def get_expiring_reservation(
    watcher: WatcherDep,
    requester: RequesterDep,
    holder_id: str = Query(..., alias="holderId"),
) -> ExpiringReservationResponse:
    """One-shot: an alert is returned once, then considered delivered."""
    if holder_id != requester.user_id and not requester.is_admin:
        raise Forbidden("You can only poll your own expiry alerts", holder_id=holder_id)
    alert = watcher.poll(holder_id)
    return ExpiringReservationResponse(
        has_expiring_reservation=alert.has_alert,
        reservation=(
            ReservationRead.model_validate(alert.reservation) if alert.has_alert else None
        ),
        notification_id=alert.notification.id if alert.notification else None,
        message=alert.notification.message if alert.notification else None,
    )


@router.get("/", response_model=List[ReservationRead], summary="List holder's reservations")
def list_reservations(
    service: ServiceDep,
    holder_id: str = Query(..., alias="holderId"),
    status_filter: Optional[List[ReservationStatus]] = Query(default=None, alias="status"),
) -> List[Reservation]:
    statuses = [item.value for item in status_filter] if status_filter else None
    return service.list_for_holder(holder_id, statuses)


@router.get("/{reservation_id}", response_model=ReservationRead, summary="Get reservation")
def get_reservation(reservation_id: UUID, service: ServiceDep) -> Reservation:
    return service.get(reservation_id)


@router.patch(
    "/{reservation_id}",
    response_model=ReservationRead,
    summary="Reschedule or edit reservation",
)
def update_reservation(
    reservation_id: UUID,
    payload: ReservationUpdate,
    service: ServiceDep,
    requester: RequesterDep,
) -> Reservation:
    return service.update(
        reservation_id, requester, **payload.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{reservation_id}",
    response_model=ReservationRead,
    summary="Cancel reservation",
)
def cancel_reservation(
    reservation_id: UUID,
    service: ServiceDep,
    requester: RequesterDep,
) -> Reservation:
    return service.cancel(reservation_id, requester)


@router.post(
    "/{reservation_id}/complete",
    response_model=ReservationRead,
    summary="Check out of a reservation early",
)
def complete_reservation(
    reservation_id: UUID,
    service: ServiceDep,
    requester: RequesterDep,
) -> Reservation:
    return service.complete(reservation_id, requester)
