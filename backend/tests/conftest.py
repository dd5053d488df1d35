"""Shared fixtures: a throwaway SQLite database, a controllable clock and
a small seeded catalog."""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session

from campus_booking.api.deps import get_clock
from campus_booking.core.config import Settings
from campus_booking.core.locks import ReservationLocks
from campus_booking.db import build_engine, get_session, init_db
from campus_booking.main import app
from campus_booking.models import Resource, ResourceKind, ResourceStatus, RoomType
from campus_booking.services.lifecycle import ReservationService
from campus_booking.services.watcher import ExpiryWatcher

NOW = datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 10) -> datetime:
    """UTC timestamp on the test day."""
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        RESERVATION_LOCK_BACKEND="memory",
        ROOM_MAX_DURATION_MINUTES=None,
        LAB_STATION_MAX_DURATION_MINUTES=240,
        WARNING_WINDOW_MINUTES=15,
        RESERVATION_PAST_START_TOLERANCE_SECONDS=300,
    )


@pytest.fixture
def locks(settings: Settings) -> ReservationLocks:
    return ReservationLocks(settings)


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def catalog(engine: Engine) -> dict[str, str]:
    """Seed rooms, a lab with three stations and one room out of service."""
    with Session(engine) as session:
        session.add(
            Resource(
                id="room-7",
                kind=ResourceKind.ROOM.value,
                name="Room 7",
                building="Main Building",
                floor=1,
                capacity=30,
                room_type=RoomType.CLASSROOM.value,
            )
        )
        session.add(
            Resource(
                id="room-9",
                kind=ResourceKind.ROOM.value,
                name="Room 9",
                capacity=20,
                room_type=RoomType.CLASSROOM.value,
                status_override=ResourceStatus.OUT_OF_SERVICE.value,
            )
        )
        session.add(
            Resource(
                id="lab-1",
                kind=ResourceKind.ROOM.value,
                name="Computer Lab 1",
                building="Science Center",
                floor=2,
                capacity=25,
                room_type=RoomType.LAB.value,
            )
        )
        session.commit()
        for number in (1, 2, 3):
            session.add(
                Resource(
                    id=f"lab-1-s0{number}",
                    kind=ResourceKind.LAB_STATION.value,
                    name=f"Computer Lab 1 S-0{number}",
                    parent_id="lab-1",
                    station_number=f"S-0{number}",
                )
            )
        session.commit()
    return {
        "room": "room-7",
        "broken_room": "room-9",
        "lab": "lab-1",
        "station": "lab-1-s01",
        "station_2": "lab-1-s02",
        "station_3": "lab-1-s03",
    }


@pytest.fixture
def session(engine: Engine, catalog) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def service(
    session: Session, settings: Settings, locks: ReservationLocks, clock: FrozenClock
) -> ReservationService:
    return ReservationService(session, settings=settings, locks=locks, clock=clock)


@pytest.fixture
def watcher(
    session: Session, settings: Settings, service: ReservationService, clock: FrozenClock
) -> ExpiryWatcher:
    return ExpiryWatcher(session, settings=settings, store=service.store, clock=clock)


@pytest.fixture
def client(engine: Engine, catalog, clock: FrozenClock) -> Generator[TestClient, None, None]:
    def _session() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
