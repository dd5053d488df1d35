from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from campus_booking.core.timeutils import Clock, utcnow
from campus_booking.db import SessionDep
from campus_booking.services.lifecycle import Requester, ReservationService
from campus_booking.services.watcher import ExpiryWatcher

ADMIN_ROLES = {"admin", "staff"}


def get_clock() -> Clock:
    return utcnow


ClockDep = Annotated[Clock, Depends(get_clock)]


def get_requester(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Requester:
    """Identity forwarded by the auth gateway in front of this service."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing requester identity",
        )
    role = (x_user_role or "").strip().lower()
    return Requester(user_id=x_user_id, is_admin=role in ADMIN_ROLES)


RequesterDep = Annotated[Requester, Depends(get_requester)]


def get_reservation_service(session: SessionDep, clock: ClockDep) -> ReservationService:
    return ReservationService(session, clock=clock)


def get_expiry_watcher(
    session: SessionDep,
    clock: ClockDep,
    service: ReservationService = Depends(get_reservation_service),
) -> ExpiryWatcher:
    return ExpiryWatcher(session, store=service.store, clock=clock)


ServiceDep = Annotated[ReservationService, Depends(get_reservation_service)]
WatcherDep = Annotated[ExpiryWatcher, Depends(get_expiry_watcher)]
