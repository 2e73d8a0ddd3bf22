"""
Pydantic schemas for booking and status-change requests
"""
from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from agenda.models.appointment import AppointmentStatus, BookingSource


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class ClientIdentity(BaseModel):
    """Registered client id, or guest contact details (never both)"""
    client_id: Optional[UUID] = None
    guest_name: Optional[str] = Field(None, max_length=200)
    guest_email: Optional[str] = Field(None, max_length=254)
    guest_phone: Optional[str] = Field(None, max_length=30)


class WalkInRequest(ClientIdentity):
    business_id: UUID
    service_id: UUID
    employee_id: Optional[UUID] = Field(None, description="Omit or send 'any' to let the business pick")
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("employee_id", mode="before")
    @classmethod
    def any_employee(cls, v):
        if isinstance(v, str) and v.strip().lower() in ("", "any"):
            return None
        return v


class BookingRequest(WalkInRequest):
    date: date
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="HH:MM, business-local")
    booking_source: BookingSource = Field(BookingSource.ONLINE, description="online, or staff when booked from the dashboard")

    @field_validator("booking_source")
    @classmethod
    def not_walk_in(cls, v):
        if v == BookingSource.WALK_IN:
            raise ValueError("walk-ins are booked through /appointments/walk-in")
        return v


class TransitionRequest(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("status", mode="before")
    @classmethod
    def upper_case_status(cls, v):
        return v.upper() if isinstance(v, str) else v


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# ============================================================================
# Response Schemas
# ============================================================================

class SlotResponse(BaseModel):
    time: str
    available: bool
