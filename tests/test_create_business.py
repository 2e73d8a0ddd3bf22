from __future__ import annotations

from agenda.scripts.create_business import DEMO_EMPLOYEES, DEMO_SERVICES, create_demo_business
from agenda.services.availability.availability_service import AvailabilityService
from conftest import NEXT_MONDAY, NEXT_SUNDAY, NOW


def test_demo_business_is_bookable(db) -> None:
    business = create_demo_business(db, timezone="UTC")

    assert len(business.working_hours) == 7
    assert len(business.services) == len(DEMO_SERVICES)
    assert len(business.employees) == len(DEMO_EMPLOYEES)

    beard = next(service for service in business.services if service.name == "Beard Trim")
    slots = AvailabilityService.compute_slots(db, business.id, beard.id, NEXT_MONDAY, now=NOW)
    assert slots[0]["time"] == "09:00"
    assert all(slot["available"] for slot in slots)

    assert AvailabilityService.compute_slots(db, business.id, beard.id, NEXT_SUNDAY, now=NOW) == []


def test_only_qualified_demo_staff_offer_a_service(db) -> None:
    business = create_demo_business(db, timezone="UTC")
    combo = next(service for service in business.services if service.name == "Haircut & Beard")

    staff = AvailabilityService.eligible_employees(db, business.id, combo.id)
    assert [employee.display_name for employee in staff] == ["Carlos"]
