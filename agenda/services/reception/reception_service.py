# agenda/services/reception/reception_service.py
"""Reception tab: live employee occupancy and today's queue"""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.config.settings import get_settings
from agenda.core.errors import EmployeeBusy, NotFound, StorageError
from agenda.models.appointment import Appointment
from agenda.models.employee import Employee
from agenda.services.appointment.appointment_query_service import serialize_appointment
from agenda.services.availability.availability_service import AvailabilityService
from agenda.services.calendar.calendar_model import business_now
from agenda.services.occupancy.occupancy_index import load_day_appointments
from agenda.services.reception.break_registry import BreakRegistry
from agenda.services.reception.occupancy_projector import (
    OccupancyState,
    current_appointment,
    is_late,
    project_occupancy,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class ReceptionService:

    @staticmethod
    async def get_reception_view(
            db: Session,
            business_id: UUID,
            break_registry: BreakRegistry,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Occupancy of every active employee plus today's appointments with late flags."""
        try:
            business = AvailabilityService.get_business(db, business_id)
            local_now = business_now(business.timezone, now)

            employees = db.query(Employee).filter(
                Employee.business_id == business_id,
                Employee.is_active == True
            ).order_by(Employee.display_name.asc()).all()

            appointments = load_day_appointments(db, business_id, local_now.date())
        except SQLAlchemyError as e:
            _raise_storage_error(db, business_id, e)

        on_break = await break_registry.employees_on_break(business_id)

        projection = project_occupancy(employees, appointments, local_now, on_break)
        available = sum(1 for row in projection if row["status"] == OccupancyState.AVAILABLE)

        return {
            "business_id": str(business_id),
            "date": local_now.date().isoformat(),
            "time": local_now.strftime("%H:%M"),
            "available_employees": available,
            "total_employees": len(projection),
            "employees": [
                {
                    "employee_id": str(row["employee_id"]),
                    "display_name": row["display_name"],
                    "status": row["status"].value,
                    "current_appointment": serialize_appointment(row["current_appointment"])
                    if row["current_appointment"] is not None else None,
                }
                for row in projection
            ],
            "appointments": [
                {**serialize_appointment(appt), "late": is_late(appt, local_now)}
                for appt in appointments
            ],
        }

    @staticmethod
    async def set_break(
            db: Session,
            business_id: UUID,
            employee_id: UUID,
            on_break: bool,
            break_registry: BreakRegistry,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Start or end a break; an employee attending a client cannot go on break."""
        try:
            business = AvailabilityService.get_business(db, business_id)
            employee = db.query(Employee).filter(
                Employee.id == employee_id,
                Employee.business_id == business_id
            ).first()
        except SQLAlchemyError as e:
            _raise_storage_error(db, business_id, e)
        if not employee:
            raise NotFound("Employee not found")

        if not on_break:
            await break_registry.end_break(business_id, employee_id)
            logger.info(f"Employee {employee_id} back from break")
            return {"employee_id": str(employee_id), "on_break": False}

        local_now = business_now(business.timezone, now)
        try:
            todays = db.query(Appointment).filter(
                Appointment.employee_id == employee_id,
                Appointment.date == local_now.date()
            ).all()
        except SQLAlchemyError as e:
            _raise_storage_error(db, business_id, e)
        if current_appointment(todays, local_now) is not None:
            raise EmployeeBusy("Employee is attending a client and cannot start a break")

        await break_registry.start_break(business_id, employee_id, settings.BREAK_TTL_SECONDS)
        logger.info(f"Employee {employee_id} on break for up to {settings.BREAK_TTL_SECONDS}s")
        return {"employee_id": str(employee_id), "on_break": True}


def _raise_storage_error(db: Session, business_id: UUID, error: SQLAlchemyError):
    db.rollback()
    logger.error(f"Reception lookup failed for business {business_id}: {error}")
    raise StorageError(f"Could not load reception data: {error.__class__.__name__}") from error
