# agenda/services/calendar/calendar_model.py
"""
Calendar arithmetic for a single business day.

Times of day are handled as minutes since local midnight; ``HH:MM`` strings
only exist at the storage and API boundary.
"""
from datetime import date, datetime, timezone
from typing import Iterable, List, NamedTuple, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import re

from agenda.config.settings import get_settings
from agenda.core.errors import ValidationError

logger = logging.getLogger(__name__)
settings = get_settings()

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


class WorkingDay(Protocol):
    day_of_week: int  # 0=Monday, 6=Sunday
    is_open: bool
    open_time: Optional[str]
    close_time: Optional[str]


class Interval(NamedTuple):
    """Half-open span of minutes ``[start, end)``"""
    start: int
    end: int

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, minute: int) -> bool:
        return self.start <= minute < self.end


class StartRange(NamedTuple):
    """Inclusive range of valid start minutes for one service on one day"""
    first: int
    last: int

    @property
    def is_empty(self) -> bool:
        return self.last < self.first


def parse_hhmm(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValidationError(f"Time out of range: {minutes} minutes")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def end_time_for(start_time: str, duration_minutes: int) -> str:
    """Derive the stored end time of an appointment."""
    if duration_minutes <= 0:
        raise ValidationError("Duration must be a positive number of minutes")
    return format_hhmm(parse_hhmm(start_time) + duration_minutes)


def to_interval(start_time: str, end_time: str) -> Interval:
    return Interval(parse_hhmm(start_time), parse_hhmm(end_time))


def validate_day_hours(open_time: str, close_time: str) -> Interval:
    """Validate one day's hours; overnight hours are not supported."""
    hours = Interval(parse_hhmm(open_time), parse_hhmm(close_time))
    if hours.end <= hours.start:
        raise ValidationError(
            f"Closing time {close_time} must be after opening time {open_time}"
        )
    return hours


def open_hours(working_hours: Iterable[WorkingDay], day: date) -> Optional[Interval]:
    """Open interval for the weekday of ``day``, or None when closed."""
    weekday = day.weekday()
    entry = next((h for h in working_hours if h.day_of_week == weekday), None)
    if entry is None or not entry.is_open or not entry.open_time or not entry.close_time:
        return None
    return validate_day_hours(entry.open_time, entry.close_time)


def start_time_range(
        working_hours: Iterable[WorkingDay],
        day: date,
        duration_minutes: int
) -> Optional[StartRange]:
    """
    Range of start times for a service so it finishes by closing.

    Returns None when the business is closed that day. A service longer than
    the open window gives an empty range rather than an error.
    """
    if duration_minutes <= 0:
        raise ValidationError("Service duration must be a positive number of minutes")

    hours = open_hours(working_hours, day)
    if hours is None:
        return None
    return StartRange(first=hours.start, last=hours.end - duration_minutes)


def candidate_times(start_range: Optional[StartRange], step_minutes: int) -> List[int]:
    """Start minutes every ``step_minutes`` from first to last, inclusive."""
    if start_range is None or start_range.is_empty:
        return []
    if step_minutes <= 0:
        raise ValidationError("Slot interval must be a positive number of minutes")
    return list(range(start_range.first, start_range.last + 1, step_minutes))


def get_timezone(name: Optional[str]) -> ZoneInfo:
    """Get a ZoneInfo timezone, falling back to the platform default."""
    try:
        return ZoneInfo(name or settings.DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using {settings.DEFAULT_TIMEZONE}")
        return ZoneInfo(settings.DEFAULT_TIMEZONE)


def business_now(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Current wall-clock time in the business timezone.

    ``now`` may be passed in (aware or naive UTC) to pin the clock.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(get_timezone(tz_name))


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute
