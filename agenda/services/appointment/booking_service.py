# ============================================================================
# agenda/services/appointment/booking_service.py
# The only write path that creates appointments
# ============================================================================
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID
import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import (
    EmployeeInactive,
    InvalidGuestInfo,
    NotFound,
    OutsideBookingWindow,
    OutsideBusinessHours,
    SchedulingError,
    ServiceInactive,
    SlotNoLongerAvailable,
    StorageError,
)
from agenda.models.appointment import Appointment, AppointmentStatus, BookingSource
from agenda.models.business import Business
from agenda.models.employee import Employee
from agenda.models.service import Service
from agenda.services.availability.availability_service import AvailabilityService
from agenda.services.calendar.calendar_model import (
    Interval,
    business_now,
    format_hhmm,
    minute_of_day,
    parse_hhmm,
    start_time_range,
)
from agenda.services.appointment.state_machine import TIMESTAMP_FIELDS, initial_status
from agenda.services.occupancy.occupancy_index import (
    build_occupancy_index,
    free_employees,
    load_day_appointments,
)

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_identity(
        client_id: Optional[UUID],
        guest_name: Optional[str],
        guest_email: Optional[str],
        guest_phone: Optional[str]
) -> None:
    """Exactly one identity: a registered client id, or full guest contact details."""
    guest_fields = [guest_name, guest_email, guest_phone]
    if client_id is not None:
        if any(field for field in guest_fields):
            raise InvalidGuestInfo("Send either client_id or guest details, not both")
        return

    if not all(field and field.strip() for field in guest_fields):
        raise InvalidGuestInfo("Guest bookings require name, email and phone")
    if not _EMAIL.match(guest_email.strip()):
        raise InvalidGuestInfo(f"Invalid guest email '{guest_email}'")


class BookingService:
    """Reserves a slot and inserts the appointment in one transaction"""

    @staticmethod
    def book(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            start_time: str,
            employee_id: Optional[UUID] = None,
            client_id: Optional[UUID] = None,
            guest_name: Optional[str] = None,
            guest_email: Optional[str] = None,
            guest_phone: Optional[str] = None,
            notes: Optional[str] = None,
            booking_source: BookingSource = BookingSource.ONLINE,
            now: Optional[datetime] = None
    ) -> Appointment:
        """
        Book ``start_time`` on ``day``. ``employee_id=None`` means any employee.

        Raises SlotNoLongerAvailable when another booking got there first;
        the caller should fetch availability again instead of retrying blindly.
        """
        validate_identity(client_id, guest_name, guest_email, guest_phone)
        start_minute = parse_hhmm(start_time)

        try:
            appointment = BookingService._book_in_transaction(
                db,
                business_id=business_id,
                service_id=service_id,
                day=day,
                start_minute=start_minute,
                employee_id=employee_id,
                client_id=client_id,
                guest_name=guest_name.strip() if guest_name else None,
                guest_email=guest_email.strip().lower() if guest_email else None,
                guest_phone=guest_phone.strip() if guest_phone else None,
                notes=notes,
                booking_source=booking_source,
                now=now,
            )
        except SchedulingError:
            db.rollback()
            raise
        except IntegrityError as e:
            # Unique (employee, date, start_time) index caught a concurrent insert
            db.rollback()
            logger.info(f"Booking race lost for business {business_id} on {day} {start_time}: {e.orig}")
            raise SlotNoLongerAvailable()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Booking failed for business {business_id}: {e}")
            raise StorageError(f"Could not complete booking: {e.__class__.__name__}") from e

        logger.info(
            f"Booked appointment {appointment.id} for employee {appointment.employee_id} "
            f"on {appointment.date} {appointment.start_time}-{appointment.end_time} ({appointment.status})"
        )
        return appointment

    @staticmethod
    def book_walk_in(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            employee_id: Optional[UUID] = None,
            client_id: Optional[UUID] = None,
            guest_name: Optional[str] = None,
            guest_email: Optional[str] = None,
            guest_phone: Optional[str] = None,
            notes: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Book the current business-local minute for a client at the front desk."""
        # One clock reading for both the start time and the "already passed" check
        now = now or datetime.now(timezone.utc)
        business = AvailabilityService.get_business(db, business_id)
        local_now = business_now(business.timezone, now)
        return BookingService.book(
            db,
            business_id=business_id,
            service_id=service_id,
            day=local_now.date(),
            start_time=format_hhmm(minute_of_day(local_now)),
            employee_id=employee_id,
            client_id=client_id,
            guest_name=guest_name,
            guest_email=guest_email,
            guest_phone=guest_phone,
            notes=notes,
            booking_source=BookingSource.WALK_IN,
            now=now,
        )

    @staticmethod
    def _book_in_transaction(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            start_minute: int,
            employee_id: Optional[UUID],
            client_id: Optional[UUID],
            guest_name: Optional[str],
            guest_email: Optional[str],
            guest_phone: Optional[str],
            notes: Optional[str],
            booking_source: BookingSource,
            now: Optional[datetime]
    ) -> Appointment:
        business = AvailabilityService.get_business(db, business_id)
        service = AvailabilityService.get_service(db, business_id, service_id)
        local_now = business_now(business.timezone, now)

        BookingService._check_policy(db, business, service, day, start_minute, employee_id, local_now, booking_source)

        duration = service.duration
        requested = Interval(start_minute, start_minute + duration)

        # Lock the candidate employees; concurrent bookings for them wait here
        employees = AvailabilityService.eligible_employees(
            db, business_id, service_id, employee_id, lock=True
        )
        if not employees:
            if employee_id is not None:
                raise EmployeeInactive()
            raise SlotNoLongerAvailable("No employee can take this service right now")

        employee_ids = [employee.id for employee in employees]
        index = build_occupancy_index(load_day_appointments(db, business_id, day, employee_ids))
        free = free_employees(index, employee_ids, requested)
        if not free:
            raise SlotNoLongerAvailable()

        status = initial_status(business.auto_confirm)
        created_at = datetime.now(timezone.utc) if now is None else now
        appointment = Appointment(
            business_id=business_id,
            service_id=service.id,
            employee_id=free[0],
            client_id=client_id,
            guest_name=guest_name if client_id is None else None,
            guest_email=guest_email if client_id is None else None,
            guest_phone=guest_phone if client_id is None else None,
            date=day,
            start_time=format_hhmm(requested.start),
            end_time=format_hhmm(requested.end),
            duration_minutes=duration,
            price=service.price,
            notes=notes,
            status=status.value,
            is_paid=False,
            booking_source=booking_source.value,
        )
        if status != AppointmentStatus.PENDING:
            setattr(appointment, TIMESTAMP_FIELDS[status], created_at)

        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def _check_policy(
            db: Session,
            business: Business,
            service: Service,
            day: date,
            start_minute: int,
            employee_id: Optional[UUID],
            local_now: datetime,
            booking_source: BookingSource
    ) -> None:
        """Cheap checks that need no locks"""
        if not service.is_active:
            raise ServiceInactive()

        if not AvailabilityService.within_booking_window(business, day, local_now):
            raise OutsideBookingWindow(
                f"Bookings are accepted from today up to {business.max_advance_booking_days} days ahead"
            )

        if day == local_now.date():
            current_minute = minute_of_day(local_now)
            if booking_source == BookingSource.WALK_IN:
                passed = start_minute < current_minute
            else:
                passed = start_minute <= current_minute
            if passed:
                raise OutsideBookingWindow("Requested time has already passed")

        start_range = start_time_range(business.working_hours, day, service.duration)
        if start_range is None:
            raise OutsideBusinessHours("Business is closed on that day")
        if start_range.is_empty:
            raise OutsideBusinessHours(f"{service.name} does not fit in the opening hours")
        if not start_range.first <= start_minute <= start_range.last:
            raise OutsideBusinessHours(
                f"{service.name} must start between {format_hhmm(start_range.first)} "
                f"and {format_hhmm(start_range.last)}"
            )

        if employee_id is not None:
            employee = db.query(Employee).filter(
                Employee.id == employee_id,
                Employee.business_id == business.id
            ).first()
            if employee is None:
                raise NotFound("Employee not found")
            if not employee.is_active or not employee.can_perform(service.id):
                raise EmployeeInactive()

