"""Reservation error taxonomy.

Every expected outcome of a create/transition call that is not a success is a
``ReservationError`` carrying a stable ``code`` and structured ``detail``.
Only ``StoreUnavailable`` signals an infrastructure fault and is safe to retry.
"""

from __future__ import annotations

from typing import Any

from pydantic.alias_generators import to_camel


class ReservationError(Exception):
    code: str = "reservation_error"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Wire form, keys camelCased to match the response schemas."""
        return {"code": self.code, "message": self.message, **_camelize(self.detail)}


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(key): _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


class NotFound(ReservationError):
    code = "not_found"
    status_code = 404


class ResourceUnavailable(ReservationError):
    code = "resource_unavailable"
    status_code = 409


class InvalidInterval(ReservationError):
    code = "invalid_interval"
    status_code = 422


class DurationExceeded(ReservationError):
    code = "duration_exceeded"
    status_code = 422


class ConcurrentReservationExists(ReservationError):
    code = "concurrent_reservation_exists"
    status_code = 409


class Conflict(ReservationError):
    code = "conflict"
    status_code = 409


class InvalidTransition(ReservationError):
    code = "invalid_transition"
    status_code = 409


class Forbidden(ReservationError):
    code = "forbidden"
    status_code = 403


class StoreUnavailable(ReservationError):
    code = "unavailable"
    status_code = 503
    retryable = True


__all__ = [
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
