from fastapi import APIRouter

from campus_booking.api.v1 import health, notifications, reservations, resources


api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])
api_router.include_router(resources.router, prefix="/resources", tags=["resources"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
