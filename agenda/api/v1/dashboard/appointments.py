# ============================================================================
# FILE: agenda/api/v1/dashboard/appointments.py
# Staff endpoints - thin HTTP layer
# Authentication is handled by the product gateway in front of this service
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from agenda.config.database import get_db
from agenda.schemas.appointment import CancelRequest, TransitionRequest, WalkInRequest
from agenda.services.appointment.appointment_query_service import (
    AppointmentQueryService,
    serialize_appointment,
)
from agenda.services.appointment.appointment_service import AppointmentService
from agenda.services.appointment.booking_service import BookingService
from agenda.services.appointment.deposit import DepositVerifier, get_deposit_verifier

router = APIRouter(tags=["dashboard-appointments"])


@router.get("/businesses/{business_id}/appointments")
def list_appointments(
        business_id: UUID = Path(..., description="The business ID"),
        date: Optional[date] = Query(None, description="Only appointments on this date"),
        employee_id: Optional[UUID] = Query(None, description="Only this employee's appointments"),
        status: Optional[str] = Query(None, description="PENDING, CONFIRMED, CHECKED_IN, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(100, ge=1, le=200, description="Number of records to return"),
        db: Session = Depends(get_db)
):
    """Appointments of a business, ordered by date and start time."""
    return AppointmentQueryService.list_appointments(
        db=db,
        business_id=business_id,
        day=date,
        employee_id=employee_id,
        status=status,
        skip=skip,
        limit=limit
    )


@router.get("/clients/{client_id}/appointments")
def list_client_appointments(
        client_id: UUID = Path(..., description="Registered client ID"),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=100),
        db: Session = Depends(get_db)
):
    """A registered client's appointments, most recent first."""
    return AppointmentQueryService.list_client_appointments(
        db=db, client_id=client_id, skip=skip, limit=limit
    )


@router.post("/appointments/walk-in", status_code=status.HTTP_201_CREATED)
def book_walk_in(
        request: WalkInRequest,
        db: Session = Depends(get_db)
):
    """Book a client who just walked in, starting now."""
    appointment = BookingService.book_walk_in(
        db=db,
        business_id=request.business_id,
        service_id=request.service_id,
        employee_id=request.employee_id,
        client_id=request.client_id,
        guest_name=request.guest_name,
        guest_email=request.guest_email,
        guest_phone=request.guest_phone,
        notes=request.notes,
    )
    return serialize_appointment(appointment, detailed=True)


@router.get("/appointments/{appointment_id}")
def get_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    appointment = AppointmentQueryService.get_appointment(db, appointment_id)
    return serialize_appointment(appointment, detailed=True)


@router.post("/appointments/{appointment_id}/transition")
def transition_appointment(
        request: TransitionRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        deposit_verifier: DepositVerifier = Depends(get_deposit_verifier),
        db: Session = Depends(get_db)
):
    """
    Confirm, check in, start, complete, cancel or mark no-show.
    Answers 409 InvalidTransition for moves the state machine does not allow.
    """
    appointment = AppointmentService.transition(
        db=db,
        appointment_id=appointment_id,
        target=request.status,
        reason=request.reason,
        deposit_verifier=deposit_verifier,
    )
    return serialize_appointment(appointment, detailed=True)


@router.post("/appointments/{appointment_id}/cancel")
def cancel_appointment(
        request: CancelRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    """Cancel with an optional reason. The row is kept for history."""
    appointment = AppointmentService.cancel(db=db, appointment_id=appointment_id, reason=request.reason)
    return serialize_appointment(appointment, detailed=True)
