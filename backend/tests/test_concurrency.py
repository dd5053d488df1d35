"""No double booking, under random workloads and under contention."""

import random
import threading
from datetime import timedelta

import pytest
from sqlmodel import Session, select

from campus_booking.core.errors import ConcurrentReservationExists, Conflict
from campus_booking.models import Reservation, ReservationStatus
from campus_booking.services.conflicts import intervals_overlap
from campus_booking.services.lifecycle import (
    Requester,
    ReservationRequest,
    ReservationService,
)

from conftest import at


def active_rows(engine, resource_id=None):
    with Session(engine) as session:
        statement = select(Reservation).where(
            Reservation.status == ReservationStatus.ACTIVE.value
        )
        if resource_id is not None:
            statement = statement.where(Reservation.resource_id == resource_id)
        return list(session.exec(statement).all())


def assert_no_overlap(rows):
    for i, first in enumerate(rows):
        for second in rows[i + 1:]:
            if first.resource_id != second.resource_id:
                continue
            assert not intervals_overlap(
                first.start_time, first.end_time, second.start_time, second.end_time
            ), f"{first.id} overlaps {second.id}"


class TestRandomWorkload:
    """Accepted iff free, checked against a brute-force model."""

    @pytest.mark.parametrize("seed", [7, 42, 2024])
    def test_matches_model(self, service, engine, catalog, seed) -> None:
        rng = random.Random(seed)
        rooms = [catalog["room"], catalog["lab"]]
        model: dict[str, list] = {room: [] for room in rooms}

        for step in range(150):
            room = rng.choice(rooms)
            if model[room] and rng.random() < 0.2:
                victim = rng.choice(model[room])
                service.cancel(victim[2], Requester(victim[3]))
                model[room].remove(victim)
                continue

            start = at(9) + timedelta(minutes=15 * rng.randrange(0, 44))
            end = start + timedelta(minutes=15 * rng.randrange(1, 13))
            holder = f"user-{rng.randrange(20)}"
            expected_free = not any(
                intervals_overlap(start, end, s, e) for s, e, _, _ in model[room]
            )
            try:
                reservation = service.submit(ReservationRequest(room, holder, start, end))
            except Conflict:
                assert not expected_free, f"step {step}: free slot rejected"
            else:
                assert expected_free, f"step {step}: overlapping slot accepted"
                model[room].append((start, end, reservation.id, holder))

        assert_no_overlap(active_rows(engine))
        for room in rooms:
            assert len(active_rows(engine, room)) == len(model[room])


@pytest.mark.slow
class TestContention:
    """Threads racing through separate sessions; exactly one may win."""

    ROUNDS = 4

    def _race(self, engine, settings, locks, clock, requests):
        """Submit every request from its own thread; outcomes in request order."""
        barrier = threading.Barrier(len(requests), timeout=30)
        outcomes = [None] * len(requests)

        def worker(index, request):
            with Session(engine) as session:
                service = ReservationService(
                    session, settings=settings, locks=locks, clock=clock
                )
                barrier.wait()
                try:
                    reservation = service.submit(request)
                    outcomes[index] = ("created", reservation.id)
                except (Conflict, ConcurrentReservationExists) as exc:
                    outcomes[index] = (exc.code, None)

        threads = [
            threading.Thread(target=worker, args=(i, r)) for i, r in enumerate(requests)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)
        assert None not in outcomes, "a worker did not finish"
        return outcomes

    @pytest.mark.parametrize("seed", [5, 31, 1999])
    def test_same_slot_same_room(self, engine, catalog, settings, locks, clock, seed) -> None:
        rng = random.Random(seed)

        for round_ in range(self.ROUNDS):
            day = 11 + round_
            start = at(8, day=day) + timedelta(minutes=15 * rng.randrange(0, 40))
            end = start + timedelta(minutes=15 * rng.randrange(1, 9))
            contenders = rng.randrange(4, 11)
            requests = [
                ReservationRequest(catalog["room"], f"user-{i}", start, end)
                for i in range(contenders)
            ]

            codes = [code for code, _ in self._race(engine, settings, locks, clock, requests)]

            assert codes.count("created") == 1, f"round {round_}"
            assert codes.count("conflict") == contenders - 1
            rows = [
                r for r in active_rows(engine, catalog["room"]) if r.start_time.day == day
            ]
            assert len(rows) == 1

    @pytest.mark.parametrize("seed", [5, 31, 1999])
    def test_random_overlapping_windows(
        self, engine, catalog, settings, locks, clock, seed
    ) -> None:
        rng = random.Random(seed)

        for round_ in range(self.ROUNDS):
            day = 11 + round_
            requests = []
            for i in range(8):
                # windows crowd into one morning so most pairs overlap
                start = at(9, day=day) + timedelta(minutes=15 * rng.randrange(0, 12))
                end = start + timedelta(minutes=15 * rng.randrange(2, 9))
                requests.append(ReservationRequest(catalog["room"], f"user-{i}", start, end))

            outcomes = self._race(engine, settings, locks, clock, requests)

            rows = [
                r for r in active_rows(engine, catalog["room"]) if r.start_time.day == day
            ]
            assert_no_overlap(rows)
            created = [rid for code, rid in outcomes if code == "created"]
            assert sorted(created) == sorted(r.id for r in rows), f"round {round_}"
            for request, (code, _) in zip(requests, outcomes):
                if code == "conflict":
                    assert any(
                        intervals_overlap(
                            request.start_time, request.end_time, r.start_time, r.end_time
                        )
                        for r in rows
                    ), f"round {round_}: free window rejected"

    @pytest.mark.parametrize("seed", [5, 31, 1999])
    def test_one_holder_many_stations(
        self, engine, catalog, settings, locks, clock, seed
    ) -> None:
        rng = random.Random(seed)
        stations = [catalog["station"], catalog["station_2"], catalog["station_3"]]

        for round_ in range(self.ROUNDS):
            requests = [
                ReservationRequest(
                    rng.choice(stations),
                    "alice",
                    at(9 + i, day=11 + round_),
                    at(10 + i, day=11 + round_),
                )
                for i in range(rng.randrange(3, 8))
            ]

            outcomes = self._race(engine, settings, locks, clock, requests)

            codes = [code for code, _ in outcomes]
            assert codes.count("created") == 1, f"round {round_}"
            assert codes.count("concurrent_reservation_exists") == len(requests) - 1
            mine = [r for r in active_rows(engine) if r.holder_id == "alice"]
            assert len(mine) == 1

            # free the holder for the next round
            with Session(engine) as session:
                ReservationService(
                    session, settings=settings, locks=locks, clock=clock
                ).cancel(mine[0].id, Requester("alice"))
