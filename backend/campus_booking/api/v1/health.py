from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from campus_booking.core.config import settings
from campus_booking.core.errors import StoreUnavailable
from campus_booking.core.locks import get_locks
from campus_booking.db import engine

router = APIRouter()


@router.get("/", summary="Health check")
def read_health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "environment": settings.ENVIRONMENT}


@router.get("/ready", summary="Readiness check")
def read_ready():
    """Ready once the database answers and the lock backend can take a lock."""
    checks = {"database": "connected", "locks": settings.RESERVATION_LOCK_BACKEND}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        checks["database"] = "disconnected"
        return _not_ready(checks, e)
    try:
        with get_locks().critical_section("readiness-probe"):
            pass
    except StoreUnavailable as e:
        checks["locks"] = "unavailable"
        return _not_ready(checks, e)
    return {"status": "ready", **checks}


def _not_ready(checks: dict[str, str], error: Exception) -> JSONResponse:
    detail = str(error) if settings.ENVIRONMENT != "production" else "Dependency check failed"
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", **checks, "error": detail},
    )
