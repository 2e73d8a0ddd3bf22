from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from agenda.config.database import get_db
from agenda.main import create_app
from agenda.services.reception.break_registry import InMemoryBreakRegistry, get_break_registry
from conftest import upcoming_monday

MONDAY = upcoming_monday(datetime.now(timezone.utc).date())


@pytest.fixture
def registry():
    return InMemoryBreakRegistry()


@pytest.fixture
def client(session_factory, registry):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_break_registry] = lambda: registry
    return TestClient(app)


def _booking(shop, guest, start="10:00", **extra):
    return {
        "business_id": str(shop.business_id),
        "service_id": str(shop.service_id),
        "date": MONDAY.isoformat(),
        "start_time": start,
        **guest,
        **extra,
    }


def _availability(client, shop, **params):
    return client.get(
        f"/api/v1/businesses/{shop.business_id}/availability",
        params={"service_id": str(shop.service_id), "date": MONDAY.isoformat(), **params},
    )


def test_health(client) -> None:
    assert client.get("/health/").json()["status"] == "healthy"


def test_availability_endpoint(client, shop) -> None:
    response = _availability(client, shop, employee_id="any")
    assert response.status_code == 200
    slots = response.json()
    assert slots[0] == {"time": "09:00", "available": True}
    assert len(slots) == 20


def test_availability_for_unknown_service(client, shop) -> None:
    response = client.get(
        f"/api/v1/businesses/{shop.business_id}/availability",
        params={"service_id": str(uuid.uuid4()), "date": MONDAY.isoformat()},
    )
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": {"code": "NotFound", "message": "Service not found"}}


def test_availability_with_bad_employee_id(client, shop) -> None:
    response = _availability(client, shop, employee_id="nobody")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "ValidationError"


def test_book_then_slot_is_gone(client, shop, guest) -> None:
    response = client.post("/api/v1/appointments", json=_booking(shop, guest, employee_id="any"))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["end_time"] == "10:30"
    assert body["price"] == "250.00"
    assert body["employee_id"] == str(shop.employee_ids[0])

    slots = {slot["time"]: slot["available"] for slot in _availability(client, shop).json()}
    assert slots["10:00"] is False

    again = client.post("/api/v1/appointments", json=_booking(shop, guest))
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "SlotNoLongerAvailable"


def test_booking_needs_identity(client, shop) -> None:
    response = client.post("/api/v1/appointments", json=_booking(shop, {"guest_name": "Ana"}))
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "InvalidGuestInfo"


def test_booking_with_malformed_time(client, shop, guest) -> None:
    response = client.post("/api/v1/appointments", json=_booking(shop, guest, start="9:00"))
    assert response.status_code == 422
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "ValidationError"


def test_booking_outside_hours(client, shop, guest) -> None:
    response = client.post("/api/v1/appointments", json=_booking(shop, guest, start="20:00"))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "OutsideBusinessHours"


def test_transition_endpoint(client, shop, guest) -> None:
    appointment_id = client.post("/api/v1/appointments", json=_booking(shop, guest)).json()["id"]

    confirmed = client.post(f"/api/v1/appointments/{appointment_id}/transition", json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "CONFIRMED"
    assert confirmed.json()["confirmed_at"] is not None

    backwards = client.post(f"/api/v1/appointments/{appointment_id}/transition", json={"status": "PENDING"})
    assert backwards.status_code == 409
    assert backwards.json()["error"]["code"] == "InvalidTransition"

    cancelled = client.post(f"/api/v1/appointments/{appointment_id}/cancel", json={"reason": "rain"})
    assert cancelled.json()["status"] == "CANCELLED"
    assert cancelled.json()["cancellation_reason"] == "rain"

    fetched = client.get(f"/api/v1/appointments/{appointment_id}")
    assert fetched.json()["status"] == "CANCELLED"


def test_transition_with_unknown_status_or_appointment(client, shop, guest) -> None:
    appointment_id = client.post("/api/v1/appointments", json=_booking(shop, guest)).json()["id"]
    bad = client.post(f"/api/v1/appointments/{appointment_id}/transition", json={"status": "DONE"})
    assert bad.status_code == 422

    missing = client.post(f"/api/v1/appointments/{uuid.uuid4()}/transition", json={"status": "CONFIRMED"})
    assert missing.status_code == 404


def test_list_business_appointments(client, shop, guest) -> None:
    client.post("/api/v1/appointments", json=_booking(shop, guest, start="11:00"))
    client.post("/api/v1/appointments", json=_booking(shop, guest, start="09:00"))

    listing = client.get(
        f"/api/v1/businesses/{shop.business_id}/appointments", params={"date": MONDAY.isoformat()}
    ).json()
    assert listing["total_appointments"] == 2
    assert [row["start_time"] for row in listing["appointments"]] == ["09:00", "11:00"]


def test_reception_and_breaks(client, shop) -> None:
    employee_id = shop.employee_ids[0]
    base = f"/api/v1/businesses/{shop.business_id}"

    view = client.get(f"{base}/reception").json()
    assert [row["status"] for row in view["employees"]] == ["available"]

    started = client.put(f"{base}/employees/{employee_id}/break")
    assert started.json() == {"employee_id": str(employee_id), "on_break": True}
    assert client.get(f"{base}/reception").json()["employees"][0]["status"] == "break"

    client.delete(f"{base}/employees/{employee_id}/break")
    assert client.get(f"{base}/reception").json()["employees"][0]["status"] == "available"


def test_correlation_id_is_echoed(client) -> None:
    response = client.get("/health/", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_detailed_health_reports_database_and_break_store(client) -> None:
    checks = client.get("/health/detailed").json()
    assert checks["database"] == "healthy"
    assert checks["break_store"] == "not used"
    assert checks["overall"] == "healthy"


def test_staff_booking_source(client, shop, guest) -> None:
    staff = client.post("/api/v1/appointments", json=_booking(shop, guest, booking_source="staff"))
    assert staff.status_code == 201
    assert staff.json()["booking_source"] == "staff"

    walk_in = client.post("/api/v1/appointments", json=_booking(shop, guest, start="11:00", booking_source="walk_in"))
    assert walk_in.status_code == 422


def test_database_outage_uses_the_error_envelope(client, shop, monkeypatch) -> None:
    from sqlalchemy.exc import OperationalError
    from agenda.services.availability import availability_service

    def database_down(*args, **kwargs):
        raise OperationalError("SELECT appointments", {}, Exception("database is down"))

    monkeypatch.setattr(availability_service, "load_day_appointments", database_down)
    response = _availability(client, shop)
    assert response.status_code == 503
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "StorageError"
