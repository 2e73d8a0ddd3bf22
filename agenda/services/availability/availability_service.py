# ===== agenda/services/availability/availability_service.py =====
from typing import List, Dict, Optional
from datetime import date, datetime, timedelta
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import NotFound, StorageError
from agenda.models.business import Business
from agenda.models.employee import Employee, employee_service_association
from agenda.models.service import Service
from agenda.services.calendar.calendar_model import (
    Interval,
    business_now,
    candidate_times,
    format_hhmm,
    minute_of_day,
    start_time_range,
)
from agenda.services.occupancy.occupancy_index import (
    OccupancyIndex,
    build_occupancy_index,
    free_employees,
    load_day_appointments,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Bookable start times for a business, service and optional employee"""

    @staticmethod
    def compute_slots(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            employee_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> List[Dict]:
        """
        Candidate start times for ``day`` with an availability flag each.

        The result is advisory: the booking transaction checks again before
        it commits.
        """
        try:
            return AvailabilityService._compute_slots(db, business_id, service_id, day, employee_id, now)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Availability lookup failed for business {business_id}: {e}")
            raise StorageError(f"Could not load availability: {e.__class__.__name__}") from e

    @staticmethod
    def _compute_slots(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date,
            employee_id: Optional[UUID],
            now: Optional[datetime]
    ) -> List[Dict]:
        business = AvailabilityService.get_business(db, business_id)
        service = AvailabilityService.get_service(db, business_id, service_id)

        local_now = business_now(business.timezone, now)
        if not AvailabilityService.within_booking_window(business, day, local_now):
            logger.debug(f"{day} outside booking window of business {business_id}")
            return []

        if not service.is_active:
            return []

        start_range = start_time_range(business.working_hours, day, service.duration)
        candidates = candidate_times(start_range, business.slot_interval_minutes)
        if not candidates:
            return []

        employees = AvailabilityService.eligible_employees(db, business_id, service_id, employee_id)
        if not employees:
            return []
        employee_ids = [employee.id for employee in employees]

        if day == local_now.date():
            current_minute = minute_of_day(local_now)
            candidates = [minute for minute in candidates if minute > current_minute]

        index = build_occupancy_index(load_day_appointments(db, business_id, day, employee_ids))
        return AvailabilityService.mark_slots(candidates, service.duration, employee_ids, index)

    @staticmethod
    def mark_slots(
            candidates: List[int],
            duration_minutes: int,
            employee_ids: List[UUID],
            index: OccupancyIndex
    ) -> List[Dict]:
        """A slot is available when at least one eligible employee is free for the whole service."""
        slots = []
        for start in sorted(candidates):
            window = Interval(start, start + duration_minutes)
            slots.append({
                "time": format_hhmm(start),
                "available": bool(free_employees(index, employee_ids, window)),
            })
        return slots

    @staticmethod
    def within_booking_window(business: Business, day: date, local_now: datetime) -> bool:
        today = local_now.date()
        return today <= day <= today + timedelta(days=business.max_advance_booking_days)

    @staticmethod
    def get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(
            Business.id == business_id,
            Business.is_active == True
        ).first()
        if not business:
            raise NotFound("Business not found")
        return business

    @staticmethod
    def get_service(db: Session, business_id: UUID, service_id: UUID) -> Service:
        service = db.query(Service).filter(
            Service.id == service_id,
            Service.business_id == business_id
        ).first()
        if not service:
            raise NotFound("Service not found")
        return service

    @staticmethod
    def eligible_employees(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            employee_id: Optional[UUID] = None,
            lock: bool = False
    ) -> List[Employee]:
        """
        Active employees of the business qualified for the service, ordered by id.

        With ``lock`` the rows are locked FOR UPDATE so concurrent bookings for
        the same employees queue up behind each other.
        """
        query = db.query(Employee).join(
            employee_service_association,
            employee_service_association.c.employee_id == Employee.id
        ).filter(
            Employee.business_id == business_id,
            Employee.is_active == True,
            employee_service_association.c.service_id == service_id
        )
        if employee_id is not None:
            query = query.filter(Employee.id == employee_id)

        query = query.order_by(Employee.id.asc())
        if lock:
            query = query.with_for_update(of=Employee)
        return query.all()
