from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from sqlmodel import Session, select

from campus_booking.core.errors import NotFound
from campus_booking.models import Notification, Reservation, Resource

RESERVATION_EXPIRING = "reservation_expiring"


def create_notification(
    session: Session,
    holder_id: str,
    type: str,
    title: str,
    message: str,
    reservation_id: UUID | None = None,
) -> Notification:
    """Create a notification for a holder."""
    notification = Notification(
        holder_id=holder_id,
        reservation_id=reservation_id,
        type=type,
        title=title,
        message=message,
    )
    session.add(notification)
    return notification


def describe_resource(session: Session, resource_id: str) -> str:
    resource = session.get(Resource, resource_id)
    if resource is None:
        return resource_id
    if resource.station_number and resource.parent_id:
        lab = session.get(Resource, resource.parent_id)
        lab_name = lab.name if lab else resource.parent_id
        return f"{lab_name}, Station {resource.station_number}"
    return resource.name


def notify_reservation_expiring(
    session: Session,
    reservation: Reservation,
    minutes_left: int,
) -> Notification:
    """Warn a holder that their reservation ends soon."""
    place = describe_resource(session, reservation.resource_id)
    return create_notification(
        session=session,
        holder_id=reservation.holder_id,
        type=RESERVATION_EXPIRING,
        title="Reservation ending soon",
        message=f"Your reservation at {place} ends in {minutes_left} minutes",
        reservation_id=reservation.id,
    )


def has_notification(session: Session, reservation_id: UUID, type: str) -> bool:
    return (
        session.exec(
            select(Notification.id).where(
                Notification.reservation_id == reservation_id,
                Notification.type == type,
            )
        ).first()
        is not None
    )


def list_notifications(
    session: Session, holder_id: str, unread_only: bool = False, limit: int = 50
) -> List[Notification]:
    statement = select(Notification).where(Notification.holder_id == holder_id)
    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712
    statement = statement.order_by(Notification.created_at.desc()).limit(limit)
    return list(session.exec(statement).all())


def mark_read(session: Session, notification: Notification, now: datetime) -> Notification:
    notification.is_read = True
    notification.read_at = now
    session.add(notification)
    return notification


def get_notification(session: Session, notification_id: UUID) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None:
        raise NotFound("Notification not found", notification_id=str(notification_id))
    return notification
