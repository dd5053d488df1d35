"""Periodic reservation housekeeping run by Celery beat."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from campus_booking.celery_app import celery_app
from campus_booking.core.errors import StoreUnavailable
from campus_booking.db import engine
from campus_booking.services.lifecycle import ReservationService
from campus_booking.services.watcher import ExpiryWatcher

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=2)
def sweep_elapsed_reservations_task(self) -> dict[str, int]:
    """
    Move every active reservation whose end has passed to its terminal state.

    Reads settle elapsed rows on their own; this keeps the table tidy for
    rows nobody reads.

    Returns:
        dict: How many reservations were settled
    """
    try:
        with Session(engine) as session:
            settled = ReservationService(session).sweep()
    except (SQLAlchemyError, StoreUnavailable) as exc:
        logger.error(f"Reservation sweep failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)

    if settled:
        logger.info(f"Settled {len(settled)} elapsed reservations")
    return {"settled": len(settled)}


@celery_app.task(bind=True, max_retries=2)
def watch_expiring_reservations_task(self) -> dict[str, int]:
    """
    Queue one expiry alert per active reservation ending within the
    warning window.

    Returns:
        dict: How many alerts were queued
    """
    try:
        with Session(engine) as session:
            created = ExpiryWatcher(session).scan()
    except (SQLAlchemyError, StoreUnavailable) as exc:
        logger.error(f"Expiry scan failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)

    return {"alerts_created": len(created)}
