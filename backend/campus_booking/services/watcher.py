"""Expiry watcher.

Finds active reservations whose end falls inside the warning window and
leaves one ``reservation_expiring`` notification per reservation for the
holder to pick up on their next poll. It never changes reservation status.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from campus_booking.core.config import Settings, settings as default_settings
from campus_booking.core.timeutils import Clock, utcnow
from campus_booking.models import Notification, Reservation, ReservationStatus
from campus_booking.services.notifications import (
    RESERVATION_EXPIRING,
    has_notification,
    mark_read,
    notify_reservation_expiring,
)
from campus_booking.services.store import ReservationStore

logger = logging.getLogger(__name__)


@dataclass
class ExpiryAlert:
    reservation: Optional[Reservation] = None
    notification: Optional[Notification] = None

    @property
    def has_alert(self) -> bool:
        return self.reservation is not None


class ExpiryWatcher:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        store: ReservationStore | None = None,
        clock: Clock = utcnow,
    ) -> None:
        settings = settings or default_settings
        self.session = session
        self.clock = clock
        self.warning_window = timedelta(minutes=settings.WARNING_WINDOW_MINUTES)
        self.store = store or ReservationStore(session, clock=clock)

    def scan(
        self, now: Optional[datetime] = None, holder_id: Optional[str] = None
    ) -> List[Notification]:
        now = now or self.clock()
        expiring = self.store.list_active_ending_between(
            now, now + self.warning_window, holder_id=holder_id
        )
        created = []
        for reservation in expiring:
            if has_notification(self.session, reservation.id, RESERVATION_EXPIRING):
                continue
            minutes_left = max(1, math.ceil((reservation.end_time - now).total_seconds() / 60))
            notification = notify_reservation_expiring(
                self.session, reservation, minutes_left
            )
            try:
                self.session.commit()
            except IntegrityError:
                # a concurrent scan already alerted this reservation
                self.session.rollback()
                continue
            created.append(notification)
            logger.info(
                f"Expiry alert queued for holder {reservation.holder_id} "
                f"(reservation {reservation.id}, {minutes_left} min left)"
            )
        return created

    def poll(self, holder_id: str, now: Optional[datetime] = None) -> ExpiryAlert:
        """Deliver the holder's pending expiry alert once, if there is one."""
        now = now or self.clock()
        self.scan(now, holder_id=holder_id)

        pending = self.session.exec(
            select(Notification)
            .where(
                Notification.holder_id == holder_id,
                Notification.type == RESERVATION_EXPIRING,
                Notification.is_read == False,  # noqa: E712
            )
            .order_by(Notification.created_at)
        ).all()

        alert = ExpiryAlert()
        for notification in pending:
            reservation = self.session.get(Reservation, notification.reservation_id)
            mark_read(self.session, notification, now)
            still_running = (
                reservation is not None
                and reservation.status == ReservationStatus.ACTIVE
                and reservation.end_time > now
            )
            if still_running:
                alert = ExpiryAlert(reservation=reservation, notification=notification)
                break
            # ended or cancelled before the holder looked: drop it
        self.session.commit()
        if alert.reservation is not None:
            self.session.refresh(alert.reservation)
            self.session.refresh(alert.notification)
        return alert
