"""Named locks serializing the reservation critical section.

``memory`` keeps one ``threading.Lock`` per key in use and is enough while a
single process writes to the database. ``redis`` uses redis-py's distributed
lock so several API workers can share the guarantee.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from typing import Optional

import redis
from redis.exceptions import RedisError

from campus_booking.core.config import Settings, settings as default_settings
from campus_booking.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class _NamedLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class MemoryLockBackend:
    """Per-key locks, dropped once no thread holds or waits on them."""

    def __init__(self) -> None:
        self._locks: dict[str, _NamedLock] = {}
        self._guard = threading.Lock()

    def _checkout(self, name: str) -> _NamedLock:
        with self._guard:
            entry = self._locks.get(name)
            if entry is None:
                entry = self._locks[name] = _NamedLock()
            entry.users += 1
            return entry

    def _checkin(self, name: str, entry: _NamedLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[name]

    @contextmanager
    def hold(self, name: str, timeout: float) -> Iterator[None]:
        entry = self._checkout(name)
        try:
            if not entry.lock.acquire(timeout=timeout):
                raise StoreUnavailable(
                    "Timed out waiting for reservation lock", lock=name
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(name, entry)


class RedisLockBackend:
    def __init__(self, url: str) -> None:
        self._client = redis.Redis.from_url(url)

    @contextmanager
    def hold(self, name: str, timeout: float) -> Iterator[None]:
        lock = self._client.lock(
            f"campus-booking:lock:{name}",
            timeout=max(timeout * 3, 30),
            blocking_timeout=timeout,
        )
        try:
            acquired = lock.acquire()
        except RedisError as exc:
            raise StoreUnavailable("Lock service unreachable", lock=name) from exc
        if not acquired:
            raise StoreUnavailable("Timed out waiting for reservation lock", lock=name)
        try:
            yield
        finally:
            try:
                lock.release()
            except RedisError as exc:
                # The lock still expires on its own after its timeout.
                logger.warning(f"Failed to release lock {name}: {exc}")


class ReservationLocks:
    """Acquires holder and resource locks in a fixed order."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or default_settings
        self.timeout = settings.RESERVATION_LOCK_TIMEOUT_SECONDS
        if settings.RESERVATION_LOCK_BACKEND == "redis":
            self._backend = RedisLockBackend(settings.REDIS_URL)
        else:
            self._backend = MemoryLockBackend()
        logger.info(f"Reservation locks using {settings.RESERVATION_LOCK_BACKEND} backend")

    @contextmanager
    def critical_section(
        self, resource_id: str, holder_id: Optional[str] = None
    ) -> Iterator[None]:
        # holder before resource, everywhere, so two sections never deadlock
        names = []
        if holder_id is not None:
            names.append(f"holder:{holder_id}")
        names.append(f"resource:{resource_id}")
        with ExitStack() as stack:
            for name in names:
                stack.enter_context(self._backend.hold(name, self.timeout))
            yield


_locks: Optional[ReservationLocks] = None


def get_locks() -> ReservationLocks:
    global _locks
    if _locks is None:
        _locks = ReservationLocks()
    return _locks
