"""Celery application: runs the periodic reservation sweeps."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import Celery

from campus_booking.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "campus_booking",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["campus_booking.tasks.reservations"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=5,
    # a missed tick is covered by the next one and by settle-on-read
    task_time_limit=max(settings.EXPIRY_WATCH_INTERVAL_SECONDS, 30),
    result_expires=3600,
    worker_prefetch_multiplier=1,
)

_interval = timedelta(seconds=settings.EXPIRY_WATCH_INTERVAL_SECONDS)

celery_app.conf.beat_schedule = {
    "sweep-elapsed-reservations": {
        "task": "campus_booking.tasks.reservations.sweep_elapsed_reservations_task",
        "schedule": _interval,
    },
    "watch-expiring-reservations": {
        "task": "campus_booking.tasks.reservations.watch_expiring_reservations_task",
        "schedule": _interval,
    },
}

logger.info(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
