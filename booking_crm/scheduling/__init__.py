from booking_crm.scheduling.engine import (
    DEFAULT_DURATION_MINUTES,
    SLOT_GRANULARITY_MINUTES,
    BookedInterval,
    TimeSlot,
    generate_slots,
    has_conflict,
    intervals_overlap,
    weekday_name,
)

__all__ = [
    "DEFAULT_DURATION_MINUTES",
    "SLOT_GRANULARITY_MINUTES",
    "BookedInterval",
    "TimeSlot",
    "generate_slots",
    "has_conflict",
    "intervals_overlap",
    "weekday_name",
]
