# agenda/services/appointment/state_machine.py
"""
Appointment status state machine.

Pure functions only: they decide whether a status change is legal and which
fields it touches. Persisting the change is up to the caller.
"""
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Union

from agenda.core.errors import InvalidTransition, ValidationError
from agenda.models.appointment import AppointmentStatus, TERMINAL_STATUSES

S = AppointmentStatus

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.CHECKED_IN, S.IN_PROGRESS, S.CANCELLED, S.NO_SHOW, S.COMPLETED}),
    S.CHECKED_IN: frozenset({S.IN_PROGRESS, S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

# Timestamp column stamped when the appointment enters a status
TIMESTAMP_FIELDS: Dict[AppointmentStatus, str] = {
    S.CONFIRMED: "confirmed_at",
    S.CHECKED_IN: "checked_in_at",
    S.IN_PROGRESS: "started_at",
    S.COMPLETED: "completed_at",
    S.CANCELLED: "cancelled_at",
    S.NO_SHOW: "no_show_at",
}


def coerce_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    """Parse a status name coming from the API or the database."""
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).upper())
    except ValueError:
        allowed = ", ".join(status.value for status in AppointmentStatus)
        raise ValidationError(f"Unknown status '{value}', expected one of: {allowed}")


def can_transition(
        current: Union[str, AppointmentStatus],
        target: Union[str, AppointmentStatus]
) -> bool:
    return coerce_status(target) in TRANSITIONS[coerce_status(current)]


def initial_status(auto_confirm: bool) -> AppointmentStatus:
    return S.CONFIRMED if auto_confirm else S.PENDING


def plan_transition(
        current: Union[str, AppointmentStatus],
        target: Union[str, AppointmentStatus],
        *,
        require_deposit: bool,
        now: datetime,
        reason: Optional[str] = None
) -> Dict[str, Any]:
    """
    Field changes for moving an appointment from ``current`` to ``target``.

    Raises InvalidTransition when the move is not in the transition table,
    which includes any move out of a terminal status.
    """
    current_status = coerce_status(current)
    target_status = coerce_status(target)

    if target_status not in TRANSITIONS[current_status]:
        if current_status in TERMINAL_STATUSES:
            raise InvalidTransition(
                current_status.value,
                target_status.value,
                f"Appointment is already {current_status.value}; no further changes allowed",
            )
        raise InvalidTransition(current_status.value, target_status.value)

    changes: Dict[str, Any] = {
        "status": target_status.value,
        TIMESTAMP_FIELDS[target_status]: now,
    }

    # Deposit businesses settle payment through billing, not here
    if target_status == S.COMPLETED and not require_deposit:
        changes["is_paid"] = True

    if target_status == S.CANCELLED and reason:
        changes["cancellation_reason"] = reason

    return changes
