from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from agenda.core.errors import DepositRequired, InvalidTransition, NotFound, StorageError, ValidationError
from agenda.models import Appointment
from agenda.models.appointment import AppointmentStatus as S
from agenda.services.appointment.appointment_query_service import (
    AppointmentQueryService,
    serialize_appointment,
)
from agenda.services.appointment.appointment_service import AppointmentService
from agenda.services.appointment.booking_service import BookingService
from agenda.services.appointment.deposit import DepositVerifier
from conftest import NEXT_MONDAY, NOW


def _unsettled():
    return Mock(spec=DepositVerifier, **{"is_settled.return_value": False})


@pytest.fixture
def booked(db, shop, guest):
    return BookingService.book(db, shop.business_id, shop.service_id, NEXT_MONDAY, "10:00", now=NOW, **guest)


def test_full_lifecycle_stamps_each_step(db, booked) -> None:
    for target in (S.CONFIRMED, S.CHECKED_IN, S.IN_PROGRESS, S.COMPLETED):
        appointment = AppointmentService.transition(db, booked.id, target, now=NOW)
        assert appointment.status == target.value

    assert appointment.confirmed_at is not None
    assert appointment.checked_in_at is not None
    assert appointment.started_at is not None
    assert appointment.completed_at is not None
    assert appointment.is_paid is True


def test_status_names_are_case_insensitive(db, booked) -> None:
    assert AppointmentService.transition(db, booked.id, "confirmed", now=NOW).status == "CONFIRMED"


def test_unknown_status_is_a_validation_error(db, booked) -> None:
    with pytest.raises(ValidationError):
        AppointmentService.transition(db, booked.id, "FINISHED", now=NOW)


def test_illegal_move_leaves_the_record_untouched(db, booked) -> None:
    with pytest.raises(InvalidTransition):
        AppointmentService.transition(db, booked.id, S.IN_PROGRESS, now=NOW)
    db.expire_all()
    assert db.get(Appointment, booked.id).status == S.PENDING.value


def test_terminal_appointments_are_frozen(db, booked) -> None:
    AppointmentService.transition(db, booked.id, S.NO_SHOW, now=NOW)
    for target in (S.CONFIRMED, S.CANCELLED, S.COMPLETED):
        with pytest.raises(InvalidTransition):
            AppointmentService.transition(db, booked.id, target, now=NOW)

    stored = db.get(Appointment, booked.id)
    assert stored.status == S.NO_SHOW.value
    assert stored.cancelled_at is None
    assert stored.is_terminal


def test_unknown_appointment(db) -> None:
    with pytest.raises(NotFound):
        AppointmentService.transition(db, uuid.uuid4(), S.CONFIRMED, now=NOW)


def test_cancel_keeps_the_row_with_reason(db, booked) -> None:
    cancelled = AppointmentService.cancel(db, booked.id, reason="Client is sick", now=NOW)
    assert cancelled.status == S.CANCELLED.value
    assert cancelled.cancellation_reason == "Client is sick"
    assert cancelled.cancelled_at is not None
    assert db.query(Appointment).count() == 1


def test_transition_after_concurrent_cancel_is_rejected(db, session_factory, booked) -> None:
    db.commit()

    with session_factory() as other:
        AppointmentService.cancel(other, booked.id, now=NOW)

    db.expire_all()
    with pytest.raises(InvalidTransition):
        AppointmentService.transition(db, booked.id, S.CONFIRMED, now=NOW)
    db.expire_all()
    assert db.get(Appointment, booked.id).status == S.CANCELLED.value


def test_deposit_blocks_confirmation_until_settled(db, make_shop, guest) -> None:
    shop = make_shop(booking_settings={"require_deposit": True})
    appointment = BookingService.book(
        db, shop.business_id, shop.service_id, NEXT_MONDAY, "10:00", now=NOW, **guest
    )
    verifier = _unsettled()

    with pytest.raises(DepositRequired):
        AppointmentService.transition(db, appointment.id, S.CONFIRMED, deposit_verifier=verifier, now=NOW)
    verifier.is_settled.assert_called_once()
    assert verifier.is_settled.call_args.args[0].id == appointment.id
    assert db.get(Appointment, appointment.id).status == S.PENDING.value

    # Default verifier treats deposits as settled
    confirmed = AppointmentService.transition(db, appointment.id, S.CONFIRMED, now=NOW)
    assert confirmed.status == S.CONFIRMED.value

    completed = AppointmentService.transition(db, appointment.id, S.COMPLETED, now=NOW)
    assert completed.is_paid is False


def test_verifier_is_not_consulted_without_deposit_policy(db, booked) -> None:
    verifier = _unsettled()
    AppointmentService.transition(db, booked.id, S.CONFIRMED, deposit_verifier=verifier, now=NOW)
    verifier.is_settled.assert_not_called()


def test_list_and_get_appointments(db, make_shop, guest) -> None:
    shop = make_shop(employees=2)

    def book(start, day=NEXT_MONDAY):
        return BookingService.book(db, shop.business_id, shop.service_id, day, start, now=NOW, **guest)

    late = book("15:00")
    early = book("09:00")
    book("09:00", day=NEXT_MONDAY + timedelta(days=1))
    AppointmentService.cancel(db, late.id, now=NOW)

    listing = AppointmentQueryService.list_appointments(db, shop.business_id, day=NEXT_MONDAY)
    assert listing["total_appointments"] == 2
    assert [row["start_time"] for row in listing["appointments"]] == ["09:00", "15:00"]

    cancelled = AppointmentQueryService.list_appointments(db, shop.business_id, status="cancelled")
    assert [row["id"] for row in cancelled["appointments"]] == [str(late.id)]

    page = AppointmentQueryService.list_appointments(db, shop.business_id, skip=0, limit=2)
    assert page["total_appointments"] == 3
    assert page["page"]["total_pages"] == 2
    assert len(page["appointments"]) == 2

    found = AppointmentQueryService.get_appointment(db, early.id)
    assert serialize_appointment(found, detailed=True)["price"] == "250.00"
    with pytest.raises(NotFound):
        AppointmentQueryService.get_appointment(db, uuid.uuid4())


def test_client_history_is_most_recent_first(db, shop) -> None:
    client_id = uuid.uuid4()
    for day, start in ((NEXT_MONDAY, "09:00"), (NEXT_MONDAY + timedelta(days=1), "11:00")):
        BookingService.book(db, shop.business_id, shop.service_id, day, start, client_id=client_id, now=NOW)

    history = AppointmentQueryService.list_client_appointments(db, client_id)
    assert history["total_appointments"] == 2
    assert history["appointments"][0]["date"] == (NEXT_MONDAY + timedelta(days=1)).isoformat()


def test_update_is_skipped_when_status_moved_underneath(db, booked, monkeypatch) -> None:
    from agenda.services.appointment import appointment_service

    real_plan = appointment_service.plan_transition

    def plan_then_interfere(current, target, **kwargs):
        changes = real_plan(current, target, **kwargs)
        db.query(Appointment).filter(Appointment.id == booked.id).update(
            {"status": S.NO_SHOW.value}, synchronize_session=False
        )
        return changes

    monkeypatch.setattr(appointment_service, "plan_transition", plan_then_interfere)
    with pytest.raises(InvalidTransition):
        AppointmentService.transition(db, booked.id, S.CONFIRMED, now=NOW)

    db.expire_all()
    assert db.get(Appointment, booked.id).status == S.PENDING.value


def test_query_failure_is_a_storage_error(db, shop, monkeypatch) -> None:
    def database_down(*args, **kwargs):
        raise OperationalError("SELECT appointments", {}, Exception("database is down"))

    monkeypatch.setattr(Query, "all", database_down)
    with pytest.raises(StorageError):
        AppointmentQueryService.list_client_appointments(db, uuid.uuid4())
