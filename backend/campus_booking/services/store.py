"""Reservation persistence and the invariants enforced at write time.

``create`` is the only insert path. The holder check, the conflict check and
the write (insert, or ``update`` of a window) run inside one critical section
per holder and resource. The storage-level guards (partial unique index,
PostgreSQL exclusion constraint) are translated back into the same typed
errors should they fire.
Status changes are compare-and-set updates, so a sweep racing a cancel can
never move a reservation out of a terminal state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, select

from campus_booking.core.errors import (
    ConcurrentReservationExists,
    Conflict,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
)
from campus_booking.core.locks import ReservationLocks, get_locks
from campus_booking.core.policy import PolicyTable
from campus_booking.core.timeutils import Clock, as_aware_utc, utcnow
from campus_booking.models import ALLOWED_TRANSITIONS, Reservation, ReservationStatus
from campus_booking.services.conflicts import find_conflict

logger = logging.getLogger(__name__)

SINGLE_ACTIVE_INDEX = "uq_reservations_active_lab_station_holder"
NO_OVERLAP_CONSTRAINT = "ex_reservations_active_no_overlap"


def summarize(reservation: Reservation) -> dict[str, Any]:
    """Structured reference to a reservation for error details."""
    return {
        "reservation_id": str(reservation.id),
        "resource_id": reservation.resource_id,
        "holder_id": reservation.holder_id,
        "title": reservation.title,
        "start_time": as_aware_utc(reservation.start_time).isoformat(),
        "end_time": as_aware_utc(reservation.end_time).isoformat(),
    }


class ReservationStore:
    def __init__(
        self,
        session: Session,
        *,
        policies: PolicyTable | None = None,
        locks: ReservationLocks | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.session = session
        self.policies = policies or PolicyTable()
        self.locks = locks or get_locks()
        self.clock = clock

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError) as exc:
            self.session.rollback()
            logger.error(f"Reservation store unreachable: {exc}")
            raise StoreUnavailable("Reservation store unavailable") from exc

    # -- writes --------------------------------------------------------------

    def create(self, reservation: Reservation, *, single_active: bool) -> Reservation:
        now = self.clock()
        holder_key = reservation.holder_id if single_active else None
        with self._guard(), self.locks.critical_section(
            reservation.resource_id, holder_key
        ):
            self._settle(now, resource_id=reservation.resource_id)
            if single_active:
                self._settle(now, holder_id=reservation.holder_id)
                existing = self._first_active_for_holder(
                    reservation.holder_id, reservation.resource_kind
                )
                if existing is not None:
                    raise ConcurrentReservationExists(
                        "Holder already has an active reservation",
                        existing_reservation=summarize(existing),
                    )

            conflict = find_conflict(
                self.session,
                reservation.resource_id,
                reservation.start_time,
                reservation.end_time,
            )
            if conflict is not None:
                raise Conflict(
                    "Resource is already reserved for the selected time",
                    conflicting_reservation=summarize(conflict),
                )

            self.session.add(reservation)
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                raise self._translate_integrity_error(exc, reservation) from exc
            self.session.refresh(reservation)
        return reservation

    def _translate_integrity_error(
        self,
        exc: IntegrityError,
        reservation: Reservation,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> Exception:
        message = str(exc.orig)
        if SINGLE_ACTIVE_INDEX in message or "reservations.holder_id" in message:
            existing = self._first_active_for_holder(
                reservation.holder_id,
                reservation.resource_kind,
                exclude_reservation_id=exclude_reservation_id,
            )
            detail = {"existing_reservation": summarize(existing)} if existing else {}
            return ConcurrentReservationExists(
                "Holder already has an active reservation", **detail
            )
        if NO_OVERLAP_CONSTRAINT in message:
            conflict = find_conflict(
                self.session,
                reservation.resource_id,
                reservation.start_time,
                reservation.end_time,
                exclude_reservation_id=exclude_reservation_id,
            )
            detail = {"conflicting_reservation": summarize(conflict)} if conflict else {}
            return Conflict("Resource is already reserved for the selected time", **detail)
        return exc

    def update(
        self,
        reservation_id: UUID,
        *,
        start_time: datetime,
        end_time: datetime,
        details: dict[str, Optional[str]],
        single_active: bool,
    ) -> Reservation:
        """Move an active reservation to a new window and/or change its details.

        The reservation's own row never counts as a conflict. The write is a
        compare-and-set on ``status = 'active'`` so a concurrent cancel or
        sweep wins over the change.
        """
        now = self.clock()
        with self._guard():
            reservation = self._load(reservation_id)
            holder_key = reservation.holder_id if single_active else None
            with self.locks.critical_section(reservation.resource_id, holder_key):
                self._settle_rows([reservation], now)
                self.session.commit()
                self.session.refresh(reservation)
                self._ensure_changeable(reservation)

                if single_active:
                    other = self._first_active_for_holder(
                        reservation.holder_id,
                        reservation.resource_kind,
                        exclude_reservation_id=reservation.id,
                    )
                    if other is not None:
                        raise ConcurrentReservationExists(
                            "Holder already has an active reservation",
                            existing_reservation=summarize(other),
                        )

                conflict = find_conflict(
                    self.session,
                    reservation.resource_id,
                    start_time,
                    end_time,
                    exclude_reservation_id=reservation.id,
                )
                if conflict is not None:
                    raise Conflict(
                        "Resource is already reserved for the selected time",
                        conflicting_reservation=summarize(conflict),
                    )

                result = self.session.exec(
                    update(Reservation)
                    .where(
                        Reservation.id == reservation.id,
                        Reservation.status == ReservationStatus.ACTIVE.value,
                    )
                    .values(
                        start_time=start_time,
                        end_time=end_time,
                        updated_at=utcnow(),
                        **details,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    self.session.rollback()
                    self.session.refresh(reservation)
                    self._ensure_changeable(reservation)
                try:
                    self.session.commit()
                except IntegrityError as exc:
                    self.session.rollback()
                    candidate = Reservation(
                        resource_id=reservation.resource_id,
                        resource_kind=reservation.resource_kind,
                        holder_id=reservation.holder_id,
                        start_time=start_time,
                        end_time=end_time,
                    )
                    raise self._translate_integrity_error(
                        exc, candidate, exclude_reservation_id=reservation.id
                    ) from exc
                self.session.refresh(reservation)
        logger.info(f"Reservation {reservation_id} updated")
        return reservation

    def _ensure_changeable(self, reservation: Reservation) -> None:
        if reservation.status != ReservationStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot change a {reservation.status} reservation",
                reservation_id=str(reservation.id),
                current_status=reservation.status,
                requested_status=ReservationStatus.ACTIVE.value,
            )

    def transition(
        self, reservation_id: UUID, new_status: ReservationStatus | str
    ) -> Reservation:
        now = self.clock()
        with self._guard():
            reservation = self._load(reservation_id)
            self._settle_rows([reservation], now)
            self.session.commit()
            self.session.refresh(reservation)

            target = ReservationStatus(new_status)
            current = ReservationStatus(reservation.status)
            if target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransition(
                    f"Cannot move reservation from {current.value} to {target.value}",
                    reservation_id=str(reservation_id),
                    current_status=current.value,
                    requested_status=target.value,
                )
            if not self._compare_and_set(reservation, current, target, ended_at=now):
                self.session.rollback()
                self.session.refresh(reservation)
                raise InvalidTransition(
                    f"Cannot move reservation from {reservation.status} to {target.value}",
                    reservation_id=str(reservation_id),
                    current_status=reservation.status,
                    requested_status=target.value,
                )
            self.session.commit()
            self.session.refresh(reservation)
        logger.info(f"Reservation {reservation_id} {current.value} -> {target.value}")
        return reservation

    def settle_elapsed(
        self,
        now: Optional[datetime] = None,
        *,
        resource_id: Optional[str] = None,
        holder_id: Optional[str] = None,
    ) -> List[Reservation]:
        """Move active reservations whose end has passed to their elapsed status."""
        with self._guard():
            return self._settle(
                now or self.clock(), resource_id=resource_id, holder_id=holder_id
            )

    def _settle(
        self,
        now: datetime,
        *,
        resource_id: Optional[str] = None,
        holder_id: Optional[str] = None,
    ) -> List[Reservation]:
        statement = select(Reservation).where(
            Reservation.status == ReservationStatus.ACTIVE.value,
            Reservation.end_time <= now,
        )
        if resource_id is not None:
            statement = statement.where(Reservation.resource_id == resource_id)
        if holder_id is not None:
            statement = statement.where(Reservation.holder_id == holder_id)
        settled = self._settle_rows(self.session.exec(statement).all(), now)
        self.session.commit()
        if settled:
            logger.info(f"Settled {len(settled)} elapsed reservation(s)")
        return settled

    def _settle_rows(
        self, reservations: Iterable[Reservation], now: datetime
    ) -> List[Reservation]:
        settled = []
        for reservation in reservations:
            if reservation.status != ReservationStatus.ACTIVE or reservation.end_time > now:
                continue
            target = self.policies.elapsed_status(reservation.resource_kind)
            if self._compare_and_set(
                reservation,
                ReservationStatus.ACTIVE,
                target,
                ended_at=reservation.end_time,
            ):
                settled.append(reservation)
        return settled

    def _compare_and_set(
        self,
        reservation: Reservation,
        current: ReservationStatus,
        target: ReservationStatus,
        *,
        ended_at: datetime,
    ) -> bool:
        result = self.session.exec(
            update(Reservation)
            .where(
                Reservation.id == reservation.id,
                Reservation.status == current.value,
            )
            .values(status=target.value, ended_at=ended_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(reservation, "status", target.value)
        set_committed_value(reservation, "ended_at", ended_at)
        return True

    # -- reads ---------------------------------------------------------------

    def _load(self, reservation_id: UUID) -> Reservation:
        reservation = self.session.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFound("Reservation not found", reservation_id=str(reservation_id))
        return reservation

    def get(self, reservation_id: UUID) -> Reservation:
        with self._guard():
            reservation = self._load(reservation_id)
            if self._settle_rows([reservation], self.clock()):
                self.session.commit()
                self.session.refresh(reservation)
            return reservation

    def _first_active_for_holder(
        self,
        holder_id: str,
        resource_kind: Optional[str] = None,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> Optional[Reservation]:
        statement = select(Reservation).where(
            Reservation.holder_id == holder_id,
            Reservation.status == ReservationStatus.ACTIVE.value,
        )
        if resource_kind is not None:
            statement = statement.where(Reservation.resource_kind == resource_kind)
        if exclude_reservation_id is not None:
            statement = statement.where(Reservation.id != exclude_reservation_id)
        statement = statement.order_by(Reservation.start_time)
        return self.session.exec(statement).first()

    def get_active_for_holder(
        self, holder_id: str, resource_kind: Optional[str] = None
    ) -> Optional[Reservation]:
        with self._guard():
            self._settle(self.clock(), holder_id=holder_id)
            return self._first_active_for_holder(holder_id, resource_kind)

    def list_by_resource(
        self,
        resource_id: str,
        statuses: Optional[Iterable[str]] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
    ) -> List[Reservation]:
        with self._guard():
            self._settle(self.clock(), resource_id=resource_id)
            statement = select(Reservation).where(Reservation.resource_id == resource_id)
            if statuses is not None:
                statement = statement.where(Reservation.status.in_(list(statuses)))
            # overlap with the display window, same half-open rule as conflicts
            if range_end is not None:
                statement = statement.where(Reservation.start_time < range_end)
            if range_start is not None:
                statement = statement.where(Reservation.end_time > range_start)
            statement = statement.order_by(Reservation.start_time)
            return list(self.session.exec(statement).all())

    def list_by_holder(
        self, holder_id: str, statuses: Optional[Iterable[str]] = None
    ) -> List[Reservation]:
        with self._guard():
            self._settle(self.clock(), holder_id=holder_id)
            statement = select(Reservation).where(Reservation.holder_id == holder_id)
            if statuses is not None:
                statement = statement.where(Reservation.status.in_(list(statuses)))
            statement = statement.order_by(Reservation.start_time.desc())
            return list(self.session.exec(statement).all())

    def list_active_ending_between(
        self,
        after: datetime,
        until: datetime,
        holder_id: Optional[str] = None,
    ) -> List[Reservation]:
        """Active reservations with ``after < end_time <= until``."""
        with self._guard():
            statement = select(Reservation).where(
                Reservation.status == ReservationStatus.ACTIVE.value,
                Reservation.end_time > after,
                Reservation.end_time <= until,
            )
            if holder_id is not None:
                statement = statement.where(Reservation.holder_id == holder_id)
            statement = statement.order_by(Reservation.end_time)
            return list(self.session.exec(statement).all())
