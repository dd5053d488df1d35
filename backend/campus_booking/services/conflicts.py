"""Interval conflict checks over a resource's active reservations.

Intervals are half-open ``[start, end)``: touching at an endpoint is not an
overlap. Only ``active`` reservations take part; terminal ones never
conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from campus_booking.models import Reservation, ReservationStatus


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and b_start < a_end


def find_conflict(
    session: Session,
    resource_id: str,
    start: datetime,
    end: datetime,
    exclude_reservation_id: Optional[UUID] = None,
) -> Optional[Reservation]:
    """Return the earliest active reservation overlapping ``[start, end)``."""
    statement = select(Reservation).where(
        Reservation.resource_id == resource_id,
        Reservation.status == ReservationStatus.ACTIVE.value,
        Reservation.start_time < end,
        Reservation.end_time > start,
    )
    if exclude_reservation_id is not None:
        statement = statement.where(Reservation.id != exclude_reservation_id)
    statement = statement.order_by(Reservation.start_time, Reservation.id)
    for candidate in session.exec(statement):
        if intervals_overlap(start, end, candidate.start_time, candidate.end_time):
            return candidate
    return None


def has_conflict(
    session: Session,
    resource_id: str,
    start: datetime,
    end: datetime,
    exclude_reservation_id: Optional[UUID] = None,
) -> bool:
    return (
        find_conflict(session, resource_id, start, end, exclude_reservation_id)
        is not None
    )
