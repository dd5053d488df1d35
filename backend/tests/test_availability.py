"""Tests for derived resource status."""

from campus_booking.models import Reservation, Resource, ResourceStatus
from campus_booking.services.availability import AvailabilityView, derive_status
from campus_booking.services.lifecycle import ReservationRequest

from conftest import at


class TestDeriveStatus:
    def test_out_of_service_wins(self, session, catalog) -> None:
        broken = session.get(Resource, catalog["broken_room"])

        status, current = derive_status(broken, [], at(8))

        assert status == ResourceStatus.OUT_OF_SERVICE
        assert current is None

    def test_occupied_reserved_available(self, session, catalog) -> None:
        room = session.get(Resource, catalog["room"])
        booking = Reservation(
            resource_id=room.id,
            resource_kind="room",
            holder_id="alice",
            start_time=at(10),
            end_time=at(11),
        )

        assert derive_status(room, [booking], at(10)) == (ResourceStatus.OCCUPIED, booking)
        assert derive_status(room, [booking], at(9)) == (ResourceStatus.RESERVED, None)
        assert derive_status(room, [booking], at(11)) == (ResourceStatus.AVAILABLE, None)


class TestAvailabilityView:
    def test_describe_lab(self, service, catalog) -> None:
        service.submit(ReservationRequest(catalog["station"], "alice", at(8), at(9)))
        service.submit(ReservationRequest(catalog["station_2"], "bob", at(10), at(11)))

        lab, views = AvailabilityView(service).describe_lab(catalog["lab"])

        assert lab.id == catalog["lab"]
        assert [view.status for view in views] == [
            ResourceStatus.OCCUPIED,
            ResourceStatus.RESERVED,
            ResourceStatus.AVAILABLE,
        ]
        assert views[0].current_reservation.holder_id == "alice"

    def test_status_follows_the_clock(self, service, catalog, clock) -> None:
        service.submit(ReservationRequest(catalog["room"], "alice", at(8), at(9)))
        view = AvailabilityView(service)
        resource = service.registry.get(catalog["room"])

        assert view.describe(resource).status == ResourceStatus.OCCUPIED
        clock.set(at(9))
        assert view.describe(resource).status == ResourceStatus.AVAILABLE


class TestRegistry:
    def test_is_bookable(self, service, catalog) -> None:
        registry = service.registry

        assert registry.is_bookable(catalog["room"])
        assert not registry.is_bookable(catalog["broken_room"])
        assert not registry.is_bookable("room-404")

    def test_stations_of_lab(self, service, catalog) -> None:
        stations = service.registry.list_by_kind("lab_station", parent_id=catalog["lab"])

        assert [s.station_number for s in stations] == ["S-01", "S-02", "S-03"]
