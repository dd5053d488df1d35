from .notification import NotificationRead
from .reservation import (
    ActiveReservationResponse,
    AvailabilityCheck,
    AvailabilityResult,
    ExpiringReservationResponse,
    ReservationCreate,
    ReservationRead,
    ReservationUpdate,
)
from .resource import LabStationsRead, ResourceRead, ResourceStatusRead

__all__ = [
    "ActiveReservationResponse",
    "AvailabilityCheck",
    "AvailabilityResult",
    "ExpiringReservationResponse",
    "LabStationsRead",
    "NotificationRead",
    "ReservationCreate",
    "ReservationRead",
    "ReservationUpdate",
    "ResourceRead",
    "ResourceStatusRead",
]
