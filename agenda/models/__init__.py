# agenda/models/__init__.py
from .base import Base
from .business import Business, BusinessHours
from .employee import Employee, employee_service_association
from .service import Service
from .appointment import (
    Appointment,
    AppointmentStatus,
    BookingSource,
    ACTIVE_STATUSES,
    ACTIVE_STATUS_VALUES,
    TERMINAL_STATUSES,
)

__all__ = [
    "Base",
    "Business",
    "BusinessHours",
    "Employee",
    "employee_service_association",
    "Service",
    "Appointment",
    "AppointmentStatus",
    "BookingSource",
    "ACTIVE_STATUSES",
    "ACTIVE_STATUS_VALUES",
    "TERMINAL_STATUSES",
]
