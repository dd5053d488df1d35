from .notification import Notification
from .reservation import ALLOWED_TRANSITIONS, Reservation, ReservationStatus
from .resource import Resource, ResourceKind, ResourceStatus, RoomType

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Notification",
    "Reservation",
    "ReservationStatus",
    "Resource",
    "ResourceKind",
    "ResourceStatus",
    "RoomType",
]
