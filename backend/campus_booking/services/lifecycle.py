"""Reservation lifecycle: submit, update, cancel, check-out and time-driven endings.

States: a request is transient until it passes validation and becomes
``active``; ``active`` ends in exactly one of ``cancelled`` (holder or admin),
``completed`` (rooms elapsing, or a lab-station check-out) or ``expired``
(lab stations elapsing without check-out).

``submit`` validates in a fixed order and stops at the first failure:

1. resource exists and is bookable
2. ``start < end`` (and the start is not in the past)
3. duration within the kind's cap
4. single active reservation per holder (kinds that enforce it)
5. no overlap on the resource

Steps 4 and 5 run inside the store's critical section together with the
insert. ``update`` applies steps 1 to 5 to a new window of an active
reservation, which never conflicts with itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlmodel import Session

from campus_booking.core.config import Settings, settings as default_settings
from campus_booking.core.errors import (
    DurationExceeded,
    Forbidden,
    InvalidInterval,
    InvalidTransition,
    ReservationError,
    ResourceUnavailable,
)
from campus_booking.core.locks import ReservationLocks
from campus_booking.core.policy import KindPolicy, PolicyTable
from campus_booking.core.timeutils import Clock, as_aware_utc, utcnow
from campus_booking.models import Reservation, ReservationStatus
from campus_booking.services.conflicts import find_conflict
from campus_booking.services.registry import ResourceRegistry
from campus_booking.services.store import ReservationStore

logger = logging.getLogger(__name__)

VISIBLE_STATUSES = (
    ReservationStatus.ACTIVE.value,
    ReservationStatus.COMPLETED.value,
    ReservationStatus.EXPIRED.value,
)


@dataclass(frozen=True)
class Requester:
    """Identity resolved by the upstream auth gateway."""

    user_id: str
    is_admin: bool = False


@dataclass
class ReservationRequest:
    resource_id: str
    holder_id: str
    start_time: datetime
    end_time: datetime
    title: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


class ReservationService:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        policies: PolicyTable | None = None,
        locks: ReservationLocks | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or default_settings
        self.policies = policies or PolicyTable(self.settings)
        self.clock = clock
        self.session = session
        self.registry = ResourceRegistry(session)
        self.store = ReservationStore(
            session, policies=self.policies, locks=locks, clock=clock
        )

    def submit(self, request: ReservationRequest) -> Reservation:
        try:
            reservation = self._submit(request)
        except ReservationError as exc:
            logger.info(
                f"Reservation rejected ({exc.code}) for holder {request.holder_id} "
                f"on resource {request.resource_id}"
            )
            raise
        logger.info(
            f"Reservation {reservation.id} created for holder {reservation.holder_id} "
            f"on resource {reservation.resource_id} "
            f"[{reservation.start_time.isoformat()}, {reservation.end_time.isoformat()})"
        )
        return reservation

    def _submit(self, request: ReservationRequest) -> Reservation:
        # 1. resource exists and is bookable
        resource = self.registry.get(request.resource_id)
        if not resource.is_bookable:
            raise ResourceUnavailable(
                "Resource is not available for reservation",
                resource_id=resource.id,
                is_active=resource.is_active,
                is_available=resource.is_available,
                status_override=resource.status_override,
            )

        # 2. well-formed interval
        start = as_aware_utc(request.start_time)
        end = as_aware_utc(request.end_time)
        self._check_interval(start, end, check_past=True)

        # 3. duration cap for the kind
        policy = self.policies.for_kind(resource.kind)
        self._check_duration(policy, start, end)

        # 4 + 5 are atomic with the insert
        reservation = Reservation(
            resource_id=resource.id,
            resource_kind=policy.kind.value,
            holder_id=request.holder_id,
            start_time=start,
            end_time=end,
            title=request.title,
            purpose=request.purpose,
            notes=request.notes,
        )
        return self.store.create(reservation, single_active=policy.single_active)

    def _check_interval(self, start: datetime, end: datetime, *, check_past: bool) -> None:
        if start >= end:
            raise InvalidInterval(
                "End time must be after start time",
                reason="end_not_after_start",
                start_time=start.isoformat(),
                end_time=end.isoformat(),
            )
        tolerance = timedelta(
            seconds=self.settings.RESERVATION_PAST_START_TOLERANCE_SECONDS
        )
        if check_past and start < self.clock() - tolerance:
            raise InvalidInterval(
                "Cannot make a reservation in the past",
                reason="starts_in_past",
                start_time=start.isoformat(),
                end_time=end.isoformat(),
            )

    def _check_duration(self, policy: KindPolicy, start: datetime, end: datetime) -> None:
        if policy.exceeds_cap(end - start):
            raise DurationExceeded(
                f"Reservation duration cannot exceed "
                f"{_minutes(policy.max_duration):g} minutes",
                max_duration_minutes=_minutes(policy.max_duration),
                requested_minutes=_minutes(end - start),
            )

    def update(
        self,
        reservation_id: UUID,
        requester: Requester,
        *,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        title: Optional[str] = None,
        purpose: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Reservation:
        """Reschedule an active reservation or edit its details.

        ``None`` leaves a field as it is. A new window goes through the same
        interval, cap, single-active and overlap checks as ``submit``, with the
        reservation itself excluded from the overlap check. A start that is
        not moved is never checked against the past.
        """
        try:
            reservation = self._update(
                reservation_id,
                requester,
                start_time=start_time,
                end_time=end_time,
                details={
                    key: value
                    for key, value in (
                        ("title", title),
                        ("purpose", purpose),
                        ("notes", notes),
                    )
                    if value is not None
                },
            )
        except ReservationError as exc:
            logger.info(
                f"Reservation {reservation_id} update rejected ({exc.code}) "
                f"for {requester.user_id}"
            )
            raise
        logger.info(
            f"Reservation {reservation.id} now "
            f"[{reservation.start_time.isoformat()}, {reservation.end_time.isoformat()})"
        )
        return reservation

    def _update(
        self,
        reservation_id: UUID,
        requester: Requester,
        *,
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        details: dict[str, str],
    ) -> Reservation:
        current = self._authorize(reservation_id, requester, "change")
        if current.status != ReservationStatus.ACTIVE:
            raise InvalidTransition(
                f"Cannot change a {current.status} reservation",
                reservation_id=str(reservation_id),
                current_status=current.status,
                requested_status=ReservationStatus.ACTIVE.value,
            )

        start = as_aware_utc(start_time) if start_time else current.start_time
        end = as_aware_utc(end_time) if end_time else current.end_time
        policy = self.policies.for_kind(current.resource_kind)
        if (start, end) != (current.start_time, current.end_time):
            resource = self.registry.get(current.resource_id)
            if not resource.is_bookable:
                raise ResourceUnavailable(
                    "Resource is not available for reservation",
                    resource_id=resource.id,
                    is_active=resource.is_active,
                    is_available=resource.is_available,
                    status_override=resource.status_override,
                )
            self._check_interval(start, end, check_past=start != current.start_time)
            self._check_duration(policy, start, end)

        return self.store.update(
            reservation_id,
            start_time=start,
            end_time=end,
            details=details,
            single_active=policy.single_active,
        )

    def cancel(self, reservation_id: UUID, requester: Requester) -> Reservation:
        self._authorize(reservation_id, requester, "cancel")
        return self.store.transition(reservation_id, ReservationStatus.CANCELLED)

    def complete(self, reservation_id: UUID, requester: Requester) -> Reservation:
        """Check-out: the holder hands the resource back before the end time."""
        self._authorize(reservation_id, requester, "complete")
        return self.store.transition(reservation_id, ReservationStatus.COMPLETED)

    def _authorize(
        self, reservation_id: UUID, requester: Requester, action: str
    ) -> Reservation:
        reservation = self.store.get(reservation_id)
        if reservation.holder_id != requester.user_id and not requester.is_admin:
            raise Forbidden(
                f"You can only {action} your own reservations",
                reservation_id=str(reservation_id),
            )
        return reservation

    def get(self, reservation_id: UUID) -> Reservation:
        return self.store.get(reservation_id)

    def get_active_for_holder(
        self, holder_id: str, resource_kind: Optional[str] = None
    ) -> Optional[Reservation]:
        return self.store.get_active_for_holder(holder_id, resource_kind)

    def list_for_resource(
        self,
        resource_id: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        statuses: Optional[List[str]] = None,
    ) -> List[Reservation]:
        self.registry.get(resource_id)
        return self.store.list_by_resource(
            resource_id,
            statuses=statuses or VISIBLE_STATUSES,
            range_start=as_aware_utc(range_start) if range_start else None,
            range_end=as_aware_utc(range_end) if range_end else None,
        )

    def list_for_holder(
        self, holder_id: str, statuses: Optional[List[str]] = None
    ) -> List[Reservation]:
        return self.store.list_by_holder(holder_id, statuses)

    def check_availability(
        self, resource_id: str, start_time: datetime, end_time: datetime
    ) -> Optional[Reservation]:
        """Return the reservation blocking ``[start, end)``, if any. Read-only."""
        self.registry.get(resource_id)
        start = as_aware_utc(start_time)
        end = as_aware_utc(end_time)
        if start >= end:
            raise InvalidInterval(
                "End time must be after start time",
                reason="end_not_after_start",
                start_time=start.isoformat(),
                end_time=end.isoformat(),
            )
        self.store.settle_elapsed(resource_id=resource_id)
        return find_conflict(self.session, resource_id, start, end)

    def sweep(self, now: Optional[datetime] = None) -> List[Reservation]:
        return self.store.settle_elapsed(now)
