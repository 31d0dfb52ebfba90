"""
Integration tests for the slot and appointment endpoints.
"""

import pytest
from datetime import time

from models import Appointment, NotificationTask
from services.plan_limit_service import MonthlyAppointmentLimitPolicy, get_plan_limit_policy
from tests.factories import MONDAY, add_break, add_schedule_window, create_professional


@pytest.fixture
def professional(db_session):
    """Monday 09:00-12:00 with a 10:00-10:30 break."""
    professional = create_professional(db_session)
    add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))
    add_break(db_session, professional, MONDAY, time(10, 0), time(10, 30))
    return professional


def booking_payload(professional, start="09:00", end="09:30", **overrides):
    payload = {
        "professionalId": professional.id,
        "appointmentDate": "2030-01-07",
        "startTime": start,
        "endTime": end,
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane@example.com",
        "phone": "(514) 555-0100",
    }
    payload.update(overrides)
    return payload


class TestTimeslotsEndpoint:

    def test_lists_slots(self, client, professional):
        response = client.get(
            f"/professionals/{professional.id}/timeslots",
            params={"fromDate": "2030-01-07", "toDate": "2030-01-07"}
        )

        assert response.status_code == 200
        assert response.json() == [
            {"slotDate": "2030-01-07", "startTime": "09:00", "endTime": "09:30"},
            {"slotDate": "2030-01-07", "startTime": "09:30", "endTime": "10:00"},
            {"slotDate": "2030-01-07", "startTime": "10:30", "endTime": "11:00"},
            {"slotDate": "2030-01-07", "startTime": "11:00", "endTime": "11:30"},
            {"slotDate": "2030-01-07", "startTime": "11:30", "endTime": "12:00"},
        ]

    def test_booked_slot_disappears(self, client, professional):
        client.post("/appointments", json=booking_payload(professional))

        response = client.get(
            f"/professionals/{professional.id}/timeslots",
            params={"fromDate": "2030-01-07", "toDate": "2030-01-07"}
        )

        assert "09:00" not in [s["startTime"] for s in response.json()]

    def test_invalid_date(self, client, professional):
        response = client.get(
            f"/professionals/{professional.id}/timeslots",
            params={"fromDate": "07/01/2030", "toDate": "2030-01-07"}
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_range_too_long(self, client, professional):
        response = client.get(
            f"/professionals/{professional.id}/timeslots",
            params={"fromDate": "2030-01-01", "toDate": "2030-12-31"}
        )

        assert response.status_code == 400

    def test_unknown_professional(self, client):
        response = client.get("/professionals/999/timeslots", params={"fromDate": "2030-01-07", "toDate": "2030-01-07"})

        assert response.status_code == 404
        assert response.json() == {"error": "Professional not found"}


class TestCreateAppointmentEndpoint:

    def test_books_appointment(self, client, db_session, professional):
        response = client.post("/appointments", json=booking_payload(professional))

        assert response.status_code == 201
        data = response.json()
        assert data["appointmentDate"] == "2030-01-07"
        assert data["startTime"] == "09:00"
        assert data["endTime"] == "09:30"
        assert data["status"] == "confirmed"
        assert data["cancellationToken"]
        assert db_session.query(NotificationTask).count() == 3

    def test_overlap_is_409(self, client, professional):
        client.post("/appointments", json=booking_payload(professional))

        response = client.post(
            "/appointments",
            json=booking_payload(professional, "09:15", "09:45", email="other@example.com")
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Time slot is already booked"}

    def test_slot_inside_break_is_400(self, client, professional):
        response = client.post("/appointments", json=booking_payload(professional, "10:00", "10:30"))

        assert response.status_code == 400
        assert response.json() == {"error": "Time slot is not available"}

    def test_plan_limit_is_403(self, client, db_session):
        from main import app

        professional = create_professional(db_session, plan_type="free")
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))
        app.dependency_overrides[get_plan_limit_policy] = lambda: MonthlyAppointmentLimitPolicy(monthly_limit=1)
        try:
            first = client.post("/appointments", json=booking_payload(professional))
            second = client.post(
                "/appointments",
                json=booking_payload(professional, "10:00", "10:30", email="other@example.com")
            )
        finally:
            app.dependency_overrides.pop(get_plan_limit_policy, None)

        assert first.status_code == 201
        assert second.status_code == 403
        assert second.json()["limitReached"] is True

    @pytest.mark.parametrize("overrides", [
        {"firstName": "  "},
        {"phone": "123"},
        {"startTime": "9h00"},
        {"appointmentDate": "2030-13-01"},
    ])
    def test_invalid_body_is_400(self, client, professional, overrides):
        response = client.post("/appointments", json=booking_payload(professional, **overrides))

        assert response.status_code == 400
        assert response.json()["error"]

    def test_missing_contact_details(self, client, professional):
        response = client.post("/appointments", json=booking_payload(professional, email=None, phone=None))

        assert response.status_code == 400


class TestAppointmentLifecycleEndpoints:

    def test_get_appointment(self, client, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        response = client.get(f"/appointments/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_get_unknown_appointment(self, client):
        assert client.get("/appointments/999").status_code == 404

    def test_cancel_is_idempotent(self, client, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        first = client.patch(f"/appointments/{created['id']}/cancel", json={"cancelledBy": "patient"})
        second = client.patch(f"/appointments/{created['id']}/cancel")

        assert first.status_code == 200
        assert first.json()["status"] == "cancelled"
        assert first.json()["cancelledBy"] == "patient"
        assert second.status_code == 200
        assert second.json()["cancelledBy"] == "patient"

    def test_cancel_with_token(self, client, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        response = client.post(f"/appointments/cancel/{created['cancellationToken']}")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert client.post("/appointments/cancel/not-a-token").status_code == 404

    def test_reschedule(self, client, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        response = client.patch(
            f"/appointments/{created['id']}/reschedule",
            json={"appointmentDate": "2030-01-07", "startTime": "11:00", "endTime": "11:30"}
        )

        assert response.status_code == 200
        moved = response.json()
        assert moved["id"] != created["id"]
        assert moved["rescheduledFromId"] == created["id"]
        assert moved["startTime"] == "11:00"
        assert client.get(f"/appointments/{created['id']}").json()["status"] == "rescheduled"

    def test_reschedule_into_break_is_400(self, client, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        response = client.patch(
            f"/appointments/{created['id']}/reschedule",
            json={"appointmentDate": "2030-01-07", "startTime": "10:00", "endTime": "10:30"}
        )

        assert response.status_code == 400

    def test_delete(self, client, db_session, professional):
        created = client.post("/appointments", json=booking_payload(professional)).json()

        response = client.delete(f"/appointments/{created['id']}")

        assert response.status_code == 204
        assert db_session.query(Appointment).count() == 0
        assert client.delete(f"/appointments/{created['id']}").status_code == 404


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
