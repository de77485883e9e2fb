"""
Slot availability engine.

Pure functions that turn a business's working hours, a service duration and
the already-booked intervals of a day into bookable time slots, plus the
overlap check run before an appointment is stored. Nothing here touches the
database; callers fetch working hours and bookings first.

All datetimes are naive local time. Intervals are half-open [start, end), so
back-to-back appointments never conflict.
"""
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

SLOT_GRANULARITY_MINUTES = 15
DEFAULT_DURATION_MINUTES = 60

# Indexed by date.weekday(): Monday is 0, Sunday is 6
WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

Clock = Callable[[], datetime]


class BookedInterval(NamedTuple):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class TimeSlot:
    time: str  # HH:MM
    timestamp: int  # epoch milliseconds of the slot start
    available: bool

    def as_dict(self) -> dict[str, Any]:
        return {"time": self.time, "timestamp": self.timestamp, "available": self.available}


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: [a_start, a_end) and [b_start, b_end) share an instant."""
    return a_start < b_end and b_start < a_end


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_hhmm(value: Any) -> int | None:
    """Minutes since midnight for "HH:MM", or None when the value is unusable."""
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or hours * 60 + minutes > 24 * 60:
        return None
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00 of day, 00:00 of the next day)."""
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def normalize_duration(duration_minutes: int | None) -> int:
    if not duration_minutes or duration_minutes <= 0:
        return DEFAULT_DURATION_MINUTES
    return int(duration_minutes)


def open_hours_for(day: date, working_hours: Mapping[str, Any] | None) -> tuple[int, int] | None:
    """(from, to) in minutes since midnight for the weekday of `day`, or None if closed.

    Missing or malformed entries count as closed.
    """
    if not working_hours:
        return None
    entry = working_hours.get(weekday_name(day))
    if not isinstance(entry, Mapping) or not entry.get("isOpen"):
        return None
    start = parse_hhmm(entry.get("from"))
    end = parse_hhmm(entry.get("to"))
    if start is None or end is None or start >= end:
        return None
    return start, end


def _resolve_now(now: datetime | Clock | None) -> datetime:
    if now is None:
        return datetime.now()
    if callable(now):
        return now()
    return now


def generate_slots(
    day: date,
    working_hours: Mapping[str, Any] | None,
    duration_minutes: int | None = DEFAULT_DURATION_MINUTES,
    booked_intervals: Iterable[BookedInterval | tuple[datetime, datetime]] = (),
    now: datetime | Clock | None = None,
) -> list[TimeSlot]:
    """Bookable slots for `day` on a fixed 15-minute grid.

    A slot starts every SLOT_GRANULARITY_MINUTES from the opening time as long
    as it ends by the closing time. Slots for long services therefore overlap
    each other; availability marking is what prevents double-booking.
    A slot is unavailable when it starts before `now` or overlaps a booking.
    """
    hours = open_hours_for(day, working_hours)
    if hours is None:
        return []
    if isinstance(day, datetime):
        day = day.date()
    open_minutes, close_minutes = hours
    duration = normalize_duration(duration_minutes)
    booked = [BookedInterval(*b) for b in booked_intervals]
    current_time = _resolve_now(now)
    midnight = datetime.combine(day, time.min)

    slots: list[TimeSlot] = []
    minutes = open_minutes
    while minutes + duration <= close_minutes:
        start = midnight + timedelta(minutes=minutes)
        end = start + timedelta(minutes=duration)
        is_past = start < current_time
        is_booked = any(intervals_overlap(start, end, b.start, b.end) for b in booked)
        slots.append(
            TimeSlot(
                time=format_hhmm(minutes),
                timestamp=to_epoch_ms(start),
                available=not is_past and not is_booked,
            )
        )
        minutes += SLOT_GRANULARITY_MINUTES
    return slots


def has_conflict(
    business_id: int | str | None,
    candidate_start: datetime,
    candidate_end: datetime,
    existing_intervals: Iterable[BookedInterval | tuple[datetime, datetime]],
) -> bool:
    """True when [candidate_start, candidate_end) overlaps any existing interval.

    Covers a start inside an existing booking, an end inside one, and full
    containment of one, which are all the same half-open overlap.
    """
    for existing_start, existing_end in existing_intervals:
        if intervals_overlap(candidate_start, candidate_end, existing_start, existing_end):
            logger.debug(
                "Conflict for business %s: [%s, %s) overlaps [%s, %s)",
                business_id,
                candidate_start,
                candidate_end,
                existing_start,
                existing_end,
            )
            return True
    return False
