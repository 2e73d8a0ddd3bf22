# ============================================================================
# agenda/services/appointment/appointment_query_service.py
# Read-only appointment queries - no FastAPI dependencies
# ============================================================================
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import desc
from datetime import date
from typing import Optional, Dict, Any
from uuid import UUID
import logging

from agenda.core.errors import NotFound, StorageError
from agenda.models.appointment import Appointment
from agenda.services.appointment.state_machine import coerce_status

logger = logging.getLogger(__name__)


class AppointmentQueryService:
    """Listing and lookup of appointments"""

    @staticmethod
    def list_appointments(
            db: Session,
            business_id: UUID,
            day: Optional[date] = None,
            employee_id: Optional[UUID] = None,
            status: Optional[str] = None,
            skip: int = 0,
            limit: int = 100
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters."""
        query = db.query(Appointment).filter(Appointment.business_id == business_id)

        if day:
            query = query.filter(Appointment.date == day)
        if employee_id:
            query = query.filter(Appointment.employee_id == employee_id)
        if status:
            query = query.filter(Appointment.status == coerce_status(status).value)

        query = query.order_by(Appointment.date.asc(), Appointment.start_time.asc())
        try:
            total = query.count()
            appointments = query.offset(skip).limit(limit).all()
        except SQLAlchemyError as e:
            _raise_storage_error(db, f"listing appointments of business {business_id}", e)

        return {
            "business_id": str(business_id),
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "date": day.isoformat() if day else None,
                "employee_id": str(employee_id) if employee_id else None,
                "status": status,
            },
            "appointments": [serialize_appointment(appt) for appt in appointments]
        }

    @staticmethod
    def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
        try:
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        except SQLAlchemyError as e:
            _raise_storage_error(db, f"loading appointment {appointment_id}", e)
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    @staticmethod
    def list_client_appointments(
            db: Session,
            client_id: UUID,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """A registered client's appointments, most recent first."""
        query = db.query(Appointment).filter(
            Appointment.client_id == client_id
        ).order_by(desc(Appointment.date), desc(Appointment.start_time))

        try:
            total = query.count()
            appointments = query.offset(skip).limit(limit).all()
        except SQLAlchemyError as e:
            _raise_storage_error(db, f"listing appointments of client {client_id}", e)

        return {
            "client_id": str(client_id),
            "total_appointments": total,
            "appointments": [serialize_appointment(appt) for appt in appointments]
        }


def _raise_storage_error(db: Session, action: str, error: SQLAlchemyError):
    db.rollback()
    logger.error(f"Failed {action}: {error}")
    raise StorageError(f"Could not read appointments: {error.__class__.__name__}") from error


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_appointment(appointment: Appointment, detailed: bool = False) -> Dict[str, Any]:
    """Convert Appointment model to dictionary."""
    base = {
        "id": str(appointment.id),
        "business_id": str(appointment.business_id),
        "service_id": str(appointment.service_id),
        "employee_id": str(appointment.employee_id),
        "client_id": str(appointment.client_id) if appointment.client_id else None,
        "guest_name": appointment.guest_name,
        "guest_email": appointment.guest_email,
        "guest_phone": appointment.guest_phone,
        "date": appointment.date.isoformat(),
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "duration_minutes": appointment.duration_minutes,
        "price": str(appointment.price),
        "status": appointment.status,
        "is_paid": appointment.is_paid,
        "booking_source": appointment.booking_source,
        "notes": appointment.notes,
    }

    if detailed:
        base.update({
            "created_at": _iso(appointment.created_at),
            "updated_at": _iso(appointment.updated_at),
            "confirmed_at": _iso(appointment.confirmed_at),
            "checked_in_at": _iso(appointment.checked_in_at),
            "started_at": _iso(appointment.started_at),
            "completed_at": _iso(appointment.completed_at),
            "no_show_at": _iso(appointment.no_show_at),
            "cancelled_at": _iso(appointment.cancelled_at),
            "cancellation_reason": appointment.cancellation_reason,
        })

    return base
