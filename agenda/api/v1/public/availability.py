# ============================================================================
# FILE: agenda/api/v1/public/availability.py
# Public booking endpoints - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from agenda.config.database import get_db
from agenda.core.errors import ValidationError
from agenda.schemas.appointment import BookingRequest, SlotResponse
from agenda.services.appointment.appointment_query_service import serialize_appointment
from agenda.services.appointment.booking_service import BookingService
from agenda.services.availability.availability_service import AvailabilityService

router = APIRouter(tags=["public-booking"])


def _parse_employee(employee_id: Optional[str]) -> Optional[UUID]:
    if employee_id is None or employee_id.strip().lower() in ("", "any"):
        return None
    try:
        return UUID(employee_id)
    except ValueError:
        raise ValidationError(f"Invalid employee_id '{employee_id}'")


@router.get("/businesses/{business_id}/availability", response_model=List[SlotResponse])
def get_availability(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        date: date = Query(..., description="Business-local date, YYYY-MM-DD"),
        employee_id: Optional[str] = Query(None, description="Employee ID, or 'any'"),
        db: Session = Depends(get_db)
):
    """
    Candidate start times for a service on a date.
    Availability is advisory until the booking is confirmed by POST /appointments.
    """
    return AvailabilityService.compute_slots(
        db=db,
        business_id=business_id,
        service_id=service_id,
        day=date,
        employee_id=_parse_employee(employee_id),
    )


@router.post("/appointments", status_code=status.HTTP_201_CREATED)
def book_appointment(
        request: BookingRequest,
        db: Session = Depends(get_db)
):
    """
    Book a slot. Answers 409 SlotNoLongerAvailable when someone else got it
    first; fetch availability again and let the client pick a new time.
    """
    appointment = BookingService.book(
        db=db,
        business_id=request.business_id,
        service_id=request.service_id,
        day=request.date,
        start_time=request.start_time,
        employee_id=request.employee_id,
        client_id=request.client_id,
        guest_name=request.guest_name,
        guest_email=request.guest_email,
        guest_phone=request.guest_phone,
        notes=request.notes,
        booking_source=request.booking_source,
    )
    return serialize_appointment(appointment, detailed=True)
