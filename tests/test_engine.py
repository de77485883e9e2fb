"""
Tests for the slot availability engine.
"""
from datetime import date, datetime, timedelta

from booking_crm.scheduling.engine import (
    DEFAULT_DURATION_MINUTES,
    BookedInterval,
    generate_slots,
    has_conflict,
    intervals_overlap,
    open_hours_for,
    parse_hhmm,
    to_epoch_ms,
    weekday_name,
)

MONDAY = date(2024, 11, 25)
SUNDAY = date(2024, 11, 24)
MIDNIGHT = datetime(2024, 11, 25, 0, 0)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 11, 25, hour, minute)


def by_time(slots):
    return {s.time: s for s in slots}


class TestWeekdays:
    def test_sunday_and_monday_boundary(self):
        assert weekday_name(SUNDAY) == "sunday"
        assert weekday_name(MONDAY) == "monday"
        assert weekday_name(date(2024, 11, 30)) == "saturday"

    def test_datetime_uses_calendar_day(self):
        assert weekday_name(datetime(2024, 11, 24, 23, 59)) == "sunday"

    def test_sunday_selects_sunday_entry(self, working_hours):
        working_hours["sunday"] = {"isOpen": True, "from": "12:00", "to": "14:00"}
        working_hours["monday"] = {"isOpen": False, "from": "09:00", "to": "18:00"}

        sunday_slots = generate_slots(SUNDAY, working_hours, 60, now=datetime(2024, 11, 24))
        monday_slots = generate_slots(MONDAY, working_hours, 60, now=MIDNIGHT)

        assert [s.time for s in sunday_slots] == ["12:00", "12:15", "12:30", "12:45", "13:00"]
        assert monday_slots == []


class TestGenerateSlots:
    def test_open_day_without_bookings(self, working_hours):
        slots = generate_slots(MONDAY, working_hours, 60, [], now=MIDNIGHT)

        assert slots[0].time == "09:00"
        assert slots[0].available is True
        assert slots[-1].time == "17:00"
        # 09:00 .. 17:00 every 15 minutes
        assert len(slots) == 33
        assert all(s.available for s in slots)

    def test_closed_day_is_empty(self, working_hours):
        assert generate_slots(SUNDAY, working_hours, 60, [], now=MIDNIGHT) == []

    def test_missing_or_malformed_hours_count_as_closed(self, working_hours):
        assert generate_slots(MONDAY, None, 60, now=MIDNIGHT) == []
        assert generate_slots(MONDAY, {}, 60, now=MIDNIGHT) == []
        working_hours["monday"] = {"isOpen": True, "from": "nine", "to": "18:00"}
        assert generate_slots(MONDAY, working_hours, 60, now=MIDNIGHT) == []
        working_hours["monday"] = {"isOpen": True, "from": "18:00", "to": "09:00"}
        assert generate_slots(MONDAY, working_hours, 60, now=MIDNIGHT) == []
        working_hours["monday"] = "open"
        assert generate_slots(MONDAY, working_hours, 60, now=MIDNIGHT) == []

    def test_grid_is_fixed_and_slots_fit_before_closing(self, working_hours):
        for duration in (15, 30, 45, 60, 90, 120):
            slots = generate_slots(MONDAY, working_hours, duration, now=MIDNIGHT)
            for s in slots:
                minutes = parse_hhmm(s.time)
                assert (minutes - 9 * 60) % 15 == 0
                assert minutes + duration <= 18 * 60
            assert parse_hhmm(slots[-1].time) == 18 * 60 - duration

    def test_duration_longer_than_day_yields_nothing(self, working_hours):
        assert generate_slots(MONDAY, working_hours, 10 * 60, now=MIDNIGHT) == []

    def test_missing_or_non_positive_duration_defaults_to_60(self, working_hours):
        expected = generate_slots(MONDAY, working_hours, DEFAULT_DURATION_MINUTES, now=MIDNIGHT)
        assert generate_slots(MONDAY, working_hours, None, now=MIDNIGHT) == expected
        assert generate_slots(MONDAY, working_hours, 0, now=MIDNIGHT) == expected
        assert generate_slots(MONDAY, working_hours, -30, now=MIDNIGHT) == expected

    def test_booking_blocks_overlapping_slots_only(self, working_hours):
        booked = [BookedInterval(at(10), at(11))]
        slots = by_time(generate_slots(MONDAY, working_hours, 60, booked, now=MIDNIGHT))

        assert slots["09:00"].available is True
        for t in ("09:15", "09:30", "09:45", "10:00", "10:15", "10:30", "10:45"):
            assert slots[t].available is False, t
        assert slots["11:00"].available is True

    def test_past_slots_are_unavailable(self, working_hours):
        slots = by_time(generate_slots(MONDAY, working_hours, 60, [], now=at(12, 10)))

        assert slots["12:00"].available is False
        assert slots["12:15"].available is True

    def test_slot_starting_exactly_now_is_available(self, working_hours):
        slots = by_time(generate_slots(MONDAY, working_hours, 60, [], now=at(12)))
        assert slots["12:00"].available is True

    def test_clock_callable_is_accepted(self, working_hours):
        slots = generate_slots(MONDAY, working_hours, 60, [], now=lambda: at(17, 1))
        assert not any(s.available for s in slots)

    def test_availability_matches_overlap_predicate(self, working_hours):
        booked = [
            BookedInterval(at(9, 40), at(10, 5)),
            BookedInterval(at(13), at(14, 30)),
            BookedInterval(at(17, 45), at(19)),
        ]
        for duration in (30, 60, 75):
            for s in generate_slots(MONDAY, working_hours, duration, booked, now=MIDNIGHT):
                start = MIDNIGHT + timedelta(minutes=parse_hhmm(s.time))
                end = start + timedelta(minutes=duration)
                overlaps = any(intervals_overlap(start, end, b.start, b.end) for b in booked)
                assert s.available is (not overlaps)

    def test_booked_intervals_in_any_order(self, working_hours):
        booked = [(at(15), at(16)), (at(10), at(11))]
        forward = generate_slots(MONDAY, working_hours, 60, booked, now=MIDNIGHT)
        backward = generate_slots(MONDAY, working_hours, 60, list(reversed(booked)), now=MIDNIGHT)
        assert forward == backward

    def test_repeated_calls_are_identical(self, working_hours):
        booked = [BookedInterval(at(10), at(11))]
        first = generate_slots(MONDAY, working_hours, 45, booked, now=at(9, 20))
        second = generate_slots(MONDAY, working_hours, 45, booked, now=at(9, 20))
        assert first == second

    def test_timestamps_are_epoch_ms_of_local_start(self, working_hours):
        slots = by_time(generate_slots(MONDAY, working_hours, 60, [], now=MIDNIGHT))

        assert slots["09:00"].timestamp == to_epoch_ms(at(9))
        assert slots["09:15"].timestamp - slots["09:00"].timestamp == 15 * 60 * 1000
        assert slots["09:00"].as_dict() == {
            "time": "09:00",
            "timestamp": to_epoch_ms(at(9)),
            "available": True,
        }

    def test_datetime_day_ignores_time_of_day(self, working_hours):
        from_date = generate_slots(MONDAY, working_hours, 60, now=MIDNIGHT)
        from_datetime = generate_slots(at(15, 30), working_hours, 60, now=MIDNIGHT)
        assert from_date == from_datetime

    def test_odd_opening_minutes(self, working_hours):
        working_hours["monday"] = {"isOpen": True, "from": "09:10", "to": "10:40"}
        slots = generate_slots(MONDAY, working_hours, 30, now=MIDNIGHT)
        assert [s.time for s in slots] == ["09:10", "09:25", "09:40", "09:55", "10:10"]


class TestHasConflict:
    def test_start_inside_existing(self):
        assert has_conflict(1, at(9, 30), at(10, 30), [(at(10), at(11))]) is True

    def test_end_inside_existing(self):
        assert has_conflict(1, at(10, 30), at(11, 30), [(at(10), at(11))]) is True

    def test_candidate_contains_existing(self):
        assert has_conflict(1, at(9), at(12), [(at(10), at(11))]) is True

    def test_candidate_inside_existing(self):
        assert has_conflict(1, at(10, 15), at(10, 45), [(at(10), at(11))]) is True

    def test_back_to_back_is_not_a_conflict(self):
        existing = [BookedInterval(at(10), at(11))]
        assert has_conflict(1, at(9), at(10), existing) is False
        assert has_conflict(1, at(11), at(12), existing) is False

    def test_interval_conflicts_with_itself(self):
        interval = BookedInterval(at(14), at(15, 30))
        assert has_conflict(1, interval.start, interval.end, [interval]) is True

    def test_no_existing_intervals(self):
        assert has_conflict("abc", at(9), at(10), []) is False


class TestHelpers:
    def test_parse_hhmm(self):
        assert parse_hhmm("09:30") == 570
        assert parse_hhmm("24:00") == 1440
        assert parse_hhmm("24:30") is None
        assert parse_hhmm("9") is None
        assert parse_hhmm(None) is None
        assert parse_hhmm("10:75") is None

    def test_open_hours_for(self, working_hours):
        assert open_hours_for(MONDAY, working_hours) == (540, 1080)
        assert open_hours_for(SUNDAY, working_hours) is None
