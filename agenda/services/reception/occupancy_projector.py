# agenda/services/reception/occupancy_projector.py
"""
Front-desk view of who is free right now.

Everything here is recomputed from appointments and the clock on every call;
nothing is stored, so the view corrects itself after any appointment change.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID
import enum

from agenda.models.appointment import Appointment, AppointmentStatus
from agenda.models.employee import Employee
from agenda.services.calendar.calendar_model import minute_of_day, to_interval


class OccupancyState(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    BREAK = "break"


# Client is in the shop: counts as started once the start time has passed
_ARRIVED_STATUSES = {AppointmentStatus.CONFIRMED.value, AppointmentStatus.CHECKED_IN.value}
_LATE_STATUSES = {AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value}


def current_appointment(appointments: Iterable[Appointment], local_now: datetime) -> Optional[Appointment]:
    """The appointment an employee is attending at ``local_now``, if any."""
    today = local_now.date()
    minute = minute_of_day(local_now)
    todays = [appt for appt in appointments if appt.date == today]

    in_progress = [appt for appt in todays if appt.status == AppointmentStatus.IN_PROGRESS.value]
    if in_progress:
        return min(in_progress, key=lambda appt: appt.start_time)

    running = [
        appt for appt in todays
        if appt.status in _ARRIVED_STATUSES
        and to_interval(appt.start_time, appt.end_time).contains(minute)
    ]
    return min(running, key=lambda appt: appt.start_time) if running else None


def is_late(appointment: Appointment, local_now: datetime) -> bool:
    """Start time passed and the client has not been checked in yet."""
    if appointment.status not in _LATE_STATUSES:
        return False
    if appointment.date != local_now.date():
        return appointment.date < local_now.date()
    return to_interval(appointment.start_time, appointment.end_time).start < minute_of_day(local_now)


def project_occupancy(
        employees: Iterable[Employee],
        appointments: Iterable[Appointment],
        local_now: datetime,
        on_break: Set[UUID]
) -> List[Dict]:
    """Label every employee available, busy or break at ``local_now``."""
    by_employee: Dict[UUID, List[Appointment]] = {}
    for appointment in appointments:
        by_employee.setdefault(appointment.employee_id, []).append(appointment)

    projection = []
    for employee in employees:
        current = current_appointment(by_employee.get(employee.id, []), local_now)
        if current is not None:
            state = OccupancyState.BUSY
        elif employee.id in on_break:
            state = OccupancyState.BREAK
        else:
            state = OccupancyState.AVAILABLE

        projection.append({
            "employee_id": employee.id,
            "display_name": employee.display_name,
            "status": state,
            "current_appointment": current,
        })
    return projection
