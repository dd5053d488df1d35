from .config import settings
from .errors import (
    Conflict,
    ConcurrentReservationExists,
    DurationExceeded,
    Forbidden,
    InvalidInterval,
    InvalidTransition,
    NotFound,
    ReservationError,
    ResourceUnavailable,
    StoreUnavailable,
)

__all__ = [
    "settings",
    "Conflict",
    "ConcurrentReservationExists",
    "DurationExceeded",
    "Forbidden",
    "InvalidInterval",
    "InvalidTransition",
    "NotFound",
    "ReservationError",
    "ResourceUnavailable",
    "StoreUnavailable",
]
