from __future__ import annotations

import os

# Settings are read once at import time; point them at throwaway backends first.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("BREAK_BACKEND", "memory")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from agenda.config.database import build_engine
from agenda.models import Base, Business, BusinessHours, Employee, Service

# A fixed clock: every booking test runs "now" = noon UTC on this day
NOW = datetime(2030, 6, 3, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
NEXT_MONDAY = TODAY + timedelta(days=7 - TODAY.weekday())
NEXT_SUNDAY = NEXT_MONDAY + timedelta(days=6)


def weekly_hours(open_time: str = "09:00", close_time: str = "19:00", closed_days=(6,)):
    return [
        BusinessHours(
            day_of_week=day,
            is_open=day not in closed_days,
            open_time=None if day in closed_days else open_time,
            close_time=None if day in closed_days else close_time,
        )
        for day in range(7)
    ]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'agenda.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_shop(session_factory):
    """Build a business with one 30 minute service and ``employees`` qualified staff."""

    def _make_shop(employees: int = 1, booking_settings: dict | None = None, timezone_name: str = "UTC"):
        session = session_factory()
        try:
            business = Business(
                name="Barberia Centro",
                timezone=timezone_name,
                booking_settings=booking_settings or {"slot_interval_minutes": 30},
                working_hours=weekly_hours(),
            )
            session.add(business)
            session.flush()

            service = Service(
                business_id=business.id, name="Haircut", duration=30, price=Decimal("250.00")
            )
            session.add(service)
            session.flush()

            staff = []
            for number in range(employees):
                employee = Employee(
                    business_id=business.id,
                    display_name=f"Barber {number + 1}",
                    services=[service],
                )
                session.add(employee)
                staff.append(employee)
            session.commit()

            return SimpleNamespace(
                business_id=business.id,
                service_id=service.id,
                employee_ids=sorted(employee.id for employee in staff),
            )
        finally:
            session.close()

    return _make_shop


@pytest.fixture
def shop(make_shop):
    return make_shop()


@pytest.fixture
def guest():
    return {
        "guest_name": "Ana Lopez",
        "guest_email": "ana@example.com",
        "guest_phone": "+52 55 1234 5678",
    }


def upcoming_monday(today: date) -> date:
    return today + timedelta(days=7 - today.weekday())
