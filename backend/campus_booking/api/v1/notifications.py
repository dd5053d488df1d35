from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Query

from campus_booking.api.deps import ClockDep, RequesterDep
from campus_booking.core.errors import Forbidden
from campus_booking.db import SessionDep
from campus_booking.models import Notification
from campus_booking.schemas import NotificationRead
from campus_booking.services.notifications import (
    get_notification,
    list_notifications,
    mark_read,
)

router = APIRouter()


@router.get("/", response_model=List[NotificationRead], summary="List notifications")
def list_holder_notifications(
    session: SessionDep,
    requester: RequesterDep,
    holder_id: str = Query(..., alias="holderId"),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=50, ge=1, le=100),
) -> List[Notification]:
    """Get a holder's notifications, newest first."""
    if holder_id != requester.user_id and not requester.is_admin:
        raise Forbidden("You can only read your own notifications", holder_id=holder_id)
    return list_notifications(session, holder_id, unread_only=unread_only, limit=limit)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark notification as read",
)
def mark_notification_read(
    notification_id: UUID,
    session: SessionDep,
    requester: RequesterDep,
    clock: ClockDep,
) -> Notification:
    notification = get_notification(session, notification_id)
    if notification.holder_id != requester.user_id and not requester.is_admin:
        raise Forbidden(
            "You can only update your own notifications",
            notification_id=str(notification_id),
        )
    if not notification.is_read:
        mark_read(session, notification, clock())
        session.commit()
        session.refresh(notification)
    return notification
