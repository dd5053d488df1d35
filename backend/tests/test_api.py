"""HTTP tests for the reservation, resource and notification endpoints."""

import pytest
from sqlmodel import Session

from campus_booking.services.watcher import ExpiryWatcher

from conftest import at

API = "/api/v1"


def as_user(user_id, role=None):
    headers = {"X-User-Id": user_id}
    if role:
        headers["X-User-Role"] = role
    return headers


def reserve(client, resource_id, holder, start, end, **extra):
    payload = {
        "resourceId": resource_id,
        "holderId": holder,
        "startTime": start.isoformat(),
        "endTime": end.isoformat(),
        **extra,
    }
    return client.post(f"{API}/reservations/", json=payload, headers=as_user(holder))


class TestRoomScenario:
    """Two students competing for room-7."""

    def test_conflict_cancel_resubmit(self, client, catalog) -> None:
        first = reserve(client, "room-7", "alice", at(10), at(11), title="Study group")
        assert first.status_code == 201
        first_id = first.json()["id"]
        assert first.json()["startTime"] == "2024-01-10T10:00:00Z"
        assert first.json()["status"] == "active"

        clash = reserve(client, "room-7", "bob", at(10, 30), at(11, 30))
        assert clash.status_code == 409
        detail = clash.json()["detail"]
        assert detail["code"] == "conflict"
        assert detail["conflictingReservation"]["reservationId"] == first_id

        cancelled = client.delete(
            f"{API}/reservations/{first_id}", headers=as_user("alice")
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        retry = reserve(client, "room-7", "bob", at(10, 30), at(11, 30))
        assert retry.status_code == 201

    def test_back_to_back(self, client, catalog) -> None:
        assert reserve(client, "room-7", "alice", at(10), at(11)).status_code == 201
        assert reserve(client, "room-7", "bob", at(11), at(12)).status_code == 201


class TestReservationErrors:
    @pytest.mark.parametrize(
        ("resource", "start", "end", "status", "code"),
        [
            ("room-404", at(10), at(11), 404, "not_found"),
            ("room-9", at(10), at(11), 409, "resource_unavailable"),
            ("room-7", at(11), at(10), 422, "invalid_interval"),
            ("lab-1-s01", at(9), at(14), 422, "duration_exceeded"),
        ],
    )
    def test_error_mapping(self, client, catalog, resource, start, end, status, code) -> None:
        response = reserve(client, resource, "alice", start, end)

        assert response.status_code == status
        assert response.json()["detail"]["code"] == code

    def test_single_active(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(9), at(10))

        response = reserve(client, "lab-1-s02", "alice", at(11), at(12))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "concurrent_reservation_exists"
        assert "existingReservation" in response.json()["detail"]

    def test_missing_identity(self, client, catalog) -> None:
        response = client.post(
            f"{API}/reservations/",
            json={
                "resourceId": "room-7",
                "holderId": "alice",
                "startTime": "2024-01-10T10:00:00Z",
                "endTime": "2024-01-10T11:00:00Z",
            },
        )

        assert response.status_code == 401

    def test_reserving_for_someone_else(self, client, catalog) -> None:
        response = client.post(
            f"{API}/reservations/",
            json={
                "resourceId": "room-7",
                "holderId": "alice",
                "startTime": "2024-01-10T10:00:00Z",
                "endTime": "2024-01-10T11:00:00Z",
            },
            headers=as_user("mallory"),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"

    def test_cancel_by_other_user(self, client, catalog) -> None:
        reservation_id = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]

        response = client.delete(
            f"{API}/reservations/{reservation_id}", headers=as_user("mallory")
        )

        assert response.status_code == 403

    def test_cancel_by_staff(self, client, catalog) -> None:
        reservation_id = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]

        response = client.delete(
            f"{API}/reservations/{reservation_id}", headers=as_user("registrar", "staff")
        )

        assert response.status_code == 200

    def test_double_cancel(self, client, catalog) -> None:
        reservation_id = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]
        client.delete(f"{API}/reservations/{reservation_id}", headers=as_user("alice"))

        response = client.delete(
            f"{API}/reservations/{reservation_id}", headers=as_user("alice")
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_transition"
        assert detail["currentStatus"] == "cancelled"

    def test_request_validation(self, client, catalog) -> None:
        response = client.post(
            f"{API}/reservations/",
            json={"resourceId": "room-7"},
            headers=as_user("alice"),
        )

        assert response.status_code == 422


class TestReservationReads:
    def test_read_settles_elapsed(self, client, catalog, clock) -> None:
        reservation_id = reserve(client, "lab-1-s01", "alice", at(8), at(9)).json()["id"]
        clock.set(at(9, 1))

        response = client.get(f"{API}/reservations/{reservation_id}")

        assert response.json()["status"] == "expired"
        assert response.json()["endedAt"] == "2024-01-10T09:00:00Z"

    def test_active_for_holder(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(9))

        body = client.get(f"{API}/reservations/active", params={"holderId": "alice"}).json()

        assert body["hasActiveReservation"] is True
        assert body["reservation"]["resourceId"] == "lab-1-s01"

        empty = client.get(f"{API}/reservations/active", params={"holderId": "bob"}).json()
        assert empty == {"hasActiveReservation": False, "reservation": None}

    def test_list_for_holder_with_status_filter(self, client, catalog) -> None:
        keep = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]
        drop = reserve(client, "room-7", "alice", at(12), at(13)).json()["id"]
        client.delete(f"{API}/reservations/{drop}", headers=as_user("alice"))

        body = client.get(
            f"{API}/reservations/", params={"holderId": "alice", "status": "active"}
        ).json()

        assert [item["id"] for item in body] == [keep]

    def test_check_out(self, client, catalog, clock) -> None:
        reservation_id = reserve(client, "lab-1-s01", "alice", at(8), at(10)).json()["id"]
        clock.set(at(9))

        response = client.post(
            f"{API}/reservations/{reservation_id}/complete", headers=as_user("alice")
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_reschedule(self, client, catalog) -> None:
        reserve(client, "room-7", "alice", at(9), at(10))
        mine = reserve(client, "room-7", "bob", at(12), at(13)).json()["id"]

        moved = client.patch(
            f"{API}/reservations/{mine}",
            json={"startTime": at(10).isoformat(), "endTime": at(11).isoformat()},
            headers=as_user("bob"),
        )
        clash = client.patch(
            f"{API}/reservations/{mine}",
            json={"startTime": at(9, 30).isoformat()},
            headers=as_user("bob"),
        )
        stolen = client.patch(
            f"{API}/reservations/{mine}", json={"title": "mine now"}, headers=as_user("mallory")
        )

        assert moved.status_code == 200
        assert moved.json()["startTime"] == "2024-01-10T10:00:00Z"
        assert moved.json()["endTime"] == "2024-01-10T11:00:00Z"
        assert clash.status_code == 409
        assert clash.json()["detail"]["code"] == "conflict"
        assert stolen.status_code == 403

    def test_edit_details_of_cancelled(self, client, catalog) -> None:
        reservation_id = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]
        client.delete(f"{API}/reservations/{reservation_id}", headers=as_user("alice"))

        response = client.patch(
            f"{API}/reservations/{reservation_id}",
            json={"notes": "too late"},
            headers=as_user("alice"),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

    def test_expiring_is_one_shot(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))

        first = client.get(
            f"{API}/reservations/expiring", params={"holderId": "alice"}, headers=as_user("alice")
        )
        second = client.get(
            f"{API}/reservations/expiring", params={"holderId": "alice"}, headers=as_user("alice")
        )

        assert first.json()["hasExpiringReservation"] is True
        assert "10 minutes" in first.json()["message"]
        assert second.json()["hasExpiringReservation"] is False

    def test_expiring_of_another_holder_is_forbidden(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))

        stolen = client.get(
            f"{API}/reservations/expiring", params={"holderId": "alice"}, headers=as_user("bob")
        )
        anonymous = client.get(f"{API}/reservations/expiring", params={"holderId": "alice"})
        own = client.get(
            f"{API}/reservations/expiring", params={"holderId": "alice"}, headers=as_user("alice")
        )

        assert stolen.status_code == 403
        assert stolen.json()["detail"]["code"] == "forbidden"
        assert anonymous.status_code == 401
        # the rejected poll must not consume the alert
        assert own.json()["hasExpiringReservation"] is True

    def test_expiring_polled_by_staff(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))

        response = client.get(
            f"{API}/reservations/expiring",
            params={"holderId": "alice"},
            headers=as_user("registrar", "staff"),
        )

        assert response.status_code == 200
        assert response.json()["hasExpiringReservation"] is True


class TestResources:
    def test_list_rooms(self, client, catalog) -> None:
        body = client.get(f"{API}/resources/", params={"kind": "room"}).json()

        assert {item["id"] for item in body} == {"room-7", "room-9", "lab-1"}

    def test_labs_and_stations(self, client, catalog) -> None:
        reserve(client, "lab-1-s02", "alice", at(8), at(9))

        labs = client.get(f"{API}/resources/labs").json()
        stations = client.get(f"{API}/resources/labs/lab-1/stations").json()

        assert [lab["id"] for lab in labs] == ["lab-1"]
        assert stations["lab"]["id"] == "lab-1"
        assert [s["status"] for s in stations["stations"]] == [
            "available",
            "occupied",
            "available",
        ]
        assert stations["stations"][1]["currentReservation"]["holderId"] == "alice"

    def test_stations_of_a_non_lab(self, client, catalog) -> None:
        assert client.get(f"{API}/resources/labs/room-7/stations").status_code == 404

    def test_resource_status(self, client, catalog) -> None:
        assert client.get(f"{API}/resources/room-9").json()["status"] == "out_of_service"
        assert client.get(f"{API}/resources/room-7").json()["status"] == "available"

    def test_resource_reservations_window(self, client, catalog) -> None:
        reserve(client, "room-7", "alice", at(9), at(10))
        inside = reserve(client, "room-7", "bob", at(10), at(11)).json()["id"]

        body = client.get(
            f"{API}/resources/room-7/reservations",
            params={"rangeStart": "2024-01-10T10:00:00Z", "rangeEnd": "2024-01-10T12:00:00Z"},
        ).json()

        assert [item["id"] for item in body] == [inside]

    def test_availability(self, client, catalog) -> None:
        blocking = reserve(client, "room-7", "alice", at(10), at(11)).json()["id"]

        busy = client.post(
            f"{API}/resources/room-7/availability",
            json={"startTime": "2024-01-10T10:30:00Z", "endTime": "2024-01-10T11:30:00Z"},
        ).json()
        free = client.post(
            f"{API}/resources/room-7/availability",
            json={"startTime": "2024-01-10T11:00:00Z", "endTime": "2024-01-10T12:00:00Z"},
        ).json()

        assert busy["available"] is False
        assert busy["conflictingReservation"]["id"] == blocking
        assert free == {"available": True, "conflictingReservation": None}


class TestNotifications:
    def test_list_and_mark_read(self, client, catalog) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))
        client.get(
            f"{API}/reservations/expiring", params={"holderId": "bob"}, headers=as_user("bob")
        )

        # poll for alice creates and delivers her alert
        client.get(
            f"{API}/reservations/expiring", params={"holderId": "alice"}, headers=as_user("alice")
        )
        items = client.get(
            f"{API}/notifications/", params={"holderId": "alice"}, headers=as_user("alice")
        ).json()

        assert len(items) == 1
        assert items[0]["isRead"] is True
        assert items[0]["type"] == "reservation_expiring"

    def test_list_requires_owner(self, client, catalog, engine) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))
        with Session(engine) as session:
            ExpiryWatcher(session, clock=lambda: at(8)).scan()

        forbidden = client.get(
            f"{API}/notifications/", params={"holderId": "alice"}, headers=as_user("bob")
        )
        admin = client.get(
            f"{API}/notifications/",
            params={"holderId": "alice"},
            headers=as_user("root", "admin"),
        )

        assert forbidden.status_code == 403
        assert admin.status_code == 200
        assert len(admin.json()) == 1

    def test_mark_read_requires_owner(self, client, catalog, engine) -> None:
        reserve(client, "lab-1-s01", "alice", at(8), at(8, 10))
        with Session(engine) as session:
            notification = ExpiryWatcher(session, clock=lambda: at(8)).scan()[0]
            notification_id = str(notification.id)

        forbidden = client.patch(
            f"{API}/notifications/{notification_id}/read", headers=as_user("bob")
        )
        allowed = client.patch(
            f"{API}/notifications/{notification_id}/read", headers=as_user("alice")
        )

        assert forbidden.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["isRead"] is True


class TestHealth:
    def test_liveness(self, client) -> None:
        assert client.get(f"{API}/health/").json()["status"] == "ok"
