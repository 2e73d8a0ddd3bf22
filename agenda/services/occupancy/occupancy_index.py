# agenda/services/occupancy/occupancy_index.py
"""Per-employee busy intervals for one business day"""
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID
import bisect
import logging

from sqlalchemy.orm import Session

from agenda.models.appointment import Appointment, ACTIVE_STATUS_VALUES
from agenda.services.calendar.calendar_model import Interval, to_interval

logger = logging.getLogger(__name__)

OccupancyIndex = Dict[UUID, List[Interval]]


def coalesce(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort intervals and merge the ones that overlap or touch."""
    merged: List[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def build_occupancy_index(appointments: Iterable[Appointment]) -> OccupancyIndex:
    """
    Group non-terminal appointments by employee into sorted busy intervals.

    Overlapping rows for one employee should not exist; if data was repaired
    by hand they are merged instead of failing.
    """
    grouped: Dict[UUID, List[Interval]] = defaultdict(list)
    for appointment in appointments:
        if appointment.status not in ACTIVE_STATUS_VALUES:
            continue
        grouped[appointment.employee_id].append(
            to_interval(appointment.start_time, appointment.end_time)
        )

    index: OccupancyIndex = {}
    for employee_id, intervals in grouped.items():
        merged = coalesce(intervals)
        if len(merged) < len(intervals) and _has_overlap(intervals):
            logger.warning(f"Overlapping appointments found for employee {employee_id}, merged")
        index[employee_id] = merged
    return index


def _has_overlap(intervals: List[Interval]) -> bool:
    ordered = sorted(intervals)
    return any(prev.end > cur.start for prev, cur in zip(ordered, ordered[1:]))


def is_free(busy: Sequence[Interval], candidate: Interval) -> bool:
    """True when ``candidate`` overlaps none of the sorted busy intervals."""
    # First busy interval ending after the candidate starts is the only one to check
    position = bisect.bisect_right([interval.end for interval in busy], candidate.start)
    if position == len(busy):
        return True
    return not busy[position].overlaps(candidate)


def free_employees(
        index: OccupancyIndex,
        employee_ids: Iterable[UUID],
        candidate: Interval
) -> List[UUID]:
    """Employees (in the given order) with nothing booked over ``candidate``."""
    return [
        employee_id for employee_id in employee_ids
        if is_free(index.get(employee_id, []), candidate)
    ]


def load_day_appointments(
        db: Session,
        business_id: UUID,
        day: date,
        employee_ids: Optional[Iterable[UUID]] = None
) -> List[Appointment]:
    """Non-terminal appointments of a business on one date."""
    query = db.query(Appointment).filter(
        Appointment.business_id == business_id,
        Appointment.date == day,
        Appointment.status.in_(ACTIVE_STATUS_VALUES)
    )
    if employee_ids is not None:
        query = query.filter(Appointment.employee_id.in_(list(employee_ids)))
    return query.order_by(Appointment.start_time.asc()).all()
