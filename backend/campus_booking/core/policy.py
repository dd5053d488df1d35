"""Per-kind reservation policies.

The lifecycle state machine stays kind-agnostic; everything that differs
between rooms and lab stations is looked up here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from campus_booking.core.config import Settings, settings as default_settings
from campus_booking.models.reservation import ReservationStatus
from campus_booking.models.resource import ResourceKind


@dataclass(frozen=True)
class KindPolicy:
    kind: ResourceKind
    max_duration: Optional[timedelta]
    single_active: bool
    elapsed_status: ReservationStatus

    def exceeds_cap(self, duration: timedelta) -> bool:
        return self.max_duration is not None and duration > self.max_duration


def _minutes(value: Optional[int]) -> Optional[timedelta]:
    return timedelta(minutes=value) if value is not None else None


def build_policies(settings: Settings) -> dict[ResourceKind, KindPolicy]:
    return {
        ResourceKind.ROOM: KindPolicy(
            kind=ResourceKind.ROOM,
            max_duration=_minutes(settings.ROOM_MAX_DURATION_MINUTES),
            single_active=False,
            elapsed_status=ReservationStatus.COMPLETED,
        ),
        ResourceKind.LAB_STATION: KindPolicy(
            kind=ResourceKind.LAB_STATION,
            max_duration=_minutes(settings.LAB_STATION_MAX_DURATION_MINUTES),
            single_active=True,
            elapsed_status=ReservationStatus.EXPIRED,
        ),
    }


class PolicyTable:
    def __init__(self, settings: Settings | None = None) -> None:
        self._policies = build_policies(settings or default_settings)

    def for_kind(self, kind: ResourceKind | str) -> KindPolicy:
        return self._policies[ResourceKind(kind)]

    def elapsed_status(self, kind: ResourceKind | str) -> ReservationStatus:
        return self.for_kind(kind).elapsed_status
