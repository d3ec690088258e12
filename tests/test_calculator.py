"""Tests for business-calendar arithmetic (2024-01-01 is a Monday)."""

from datetime import date, datetime, timezone

import pytest

from modules.stage_sla.calculator import (
    BusinessCalendar,
    add_business_hours,
    business_hours,
    init_calendar,
    is_weekend,
    next_business_day,
    to_instant,
)
from modules.stage_sla.exceptions import InvalidInput


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestToInstant:
    """Tests for instant resolution."""

    def test_naive_datetime_is_read_as_utc(self):
        assert to_instant(datetime(2024, 1, 1, 9, 0)) == utc(2024, 1, 1, 9, 0)

    def test_iso_string_with_z_suffix(self):
        assert to_instant("2024-01-01T09:00:00.000Z") == utc(2024, 1, 1, 9, 0)

    def test_offset_is_normalized_to_utc(self):
        result = to_instant("2024-01-01T10:00:00+01:00")
        assert result == utc(2024, 1, 1, 9, 0)
        assert result.tzinfo == timezone.utc

    def test_date_is_midnight(self):
        assert to_instant(date(2024, 1, 2)) == utc(2024, 1, 2, 0, 0)

    @pytest.mark.parametrize("bad", ["not a date", "", "2024-13-45", None, 12345])
    def test_unresolvable_values_raise(self, bad):
        with pytest.raises(InvalidInput):
            to_instant(bad)


class TestBusinessCalendar:
    """Tests for weekday/weekend primitives."""

    def test_weekend_days(self):
        assert is_weekend(utc(2024, 1, 6, 10, 0))
        assert is_weekend(utc(2024, 1, 7, 23, 59))
        assert not is_weekend(utc(2024, 1, 5, 23, 59))
        assert not is_weekend(utc(2024, 1, 8, 0, 0))

    def test_weekend_follows_reference_timezone(self):
        # Saturday 03:00 UTC is still Friday evening in New York
        calendar = BusinessCalendar("America/New_York")
        assert not calendar.is_weekend(utc(2024, 1, 6, 3, 0))
        assert is_weekend(utc(2024, 1, 6, 3, 0))

    def test_next_business_day_from_weekday(self):
        assert next_business_day(utc(2024, 1, 3, 15, 30)) == utc(2024, 1, 4, 0, 0)

    def test_next_business_day_skips_weekend(self):
        assert next_business_day(utc(2024, 1, 5, 15, 0)) == utc(2024, 1, 8, 0, 0)
        assert next_business_day(utc(2024, 1, 6, 10, 0)) == utc(2024, 1, 8, 0, 0)

    def test_dates_are_days_of_the_reference_timezone(self):
        calendar = BusinessCalendar("America/New_York")
        assert calendar.is_weekend(date(2024, 1, 6))
        assert not calendar.is_weekend(date(2024, 1, 5))
        assert calendar.next_business_day(date(2024, 1, 5)) == utc(2024, 1, 8, 5, 0)
        assert calendar.business_hours(date(2024, 1, 5), date(2024, 1, 8)) == 24.0
        assert calendar.add_business_hours(date(2024, 1, 6), 1) == utc(2024, 1, 8, 6, 0)

    def test_bare_date_follows_shared_calendar(self):
        init_calendar(BusinessCalendar("America/New_York"))
        assert to_instant(date(2024, 1, 2)) == utc(2024, 1, 2, 5, 0)

    def test_all_days_weekend_is_rejected(self):
        with pytest.raises(ValueError):
            BusinessCalendar("UTC", range(7))

    def test_unknown_timezone_is_rejected(self):
        with pytest.raises(ValueError):
            BusinessCalendar("Mars/Olympus_Mons")


class TestBusinessHours:
    """Tests for business_hours."""

    def test_start_after_end_is_zero(self):
        assert business_hours(utc(2024, 1, 2, 10, 0), utc(2024, 1, 2, 9, 0)) == 0
        assert business_hours(utc(2024, 1, 2, 10, 0), utc(2024, 1, 2, 10, 0)) == 0

    def test_same_weekday_is_raw_elapsed(self):
        assert business_hours(utc(2024, 1, 1, 9, 0), utc(2024, 1, 1, 17, 30)) == 8.5

    def test_same_weekend_day_is_zero(self):
        assert business_hours(utc(2024, 1, 6, 9, 0), utc(2024, 1, 6, 17, 30)) == 0

    def test_weekend_only_span_is_zero(self):
        assert business_hours(utc(2024, 1, 6, 0, 0), utc(2024, 1, 7, 23, 59, 59)) == 0
        assert business_hours(utc(2024, 1, 6, 10, 0), utc(2024, 1, 8, 0, 0)) == 0

    def test_weekdays_only(self):
        assert business_hours(utc(2024, 1, 1, 9, 0), utc(2024, 1, 4, 9, 0)) == 72.0

    def test_span_over_weekend(self):
        # Friday 20:00 -> Monday 04:00: 4h on Friday + 4h on Monday
        assert business_hours(utc(2024, 1, 5, 20, 0), utc(2024, 1, 8, 4, 0)) == 8.0

    def test_accepts_iso_strings(self):
        assert business_hours("2024-01-01T09:00:00.000Z", "2024-01-01T10:30:00+00:00") == 1.5

    def test_result_is_rounded_to_two_places(self):
        assert business_hours(utc(2024, 1, 1, 9, 0), utc(2024, 1, 1, 9, 20)) == 0.33

    def test_invalid_instant_propagates(self):
        with pytest.raises(InvalidInput):
            business_hours("yesterday", utc(2024, 1, 1, 9, 0))
        with pytest.raises(InvalidInput):
            business_hours(utc(2024, 1, 1, 9, 0), None)

    def test_monotonic_in_end(self):
        start = utc(2024, 1, 4, 10, 0)
        ends = [
            utc(2024, 1, 4, 11, 0),
            utc(2024, 1, 5, 23, 0),
            utc(2024, 1, 6, 12, 0),
            utc(2024, 1, 7, 23, 0),
            utc(2024, 1, 8, 1, 0),
            utc(2024, 1, 10, 0, 0),
        ]
        results = [business_hours(start, end) for end in ends]
        assert results == sorted(results)

    def test_additive_across_boundaries(self):
        start = utc(2024, 1, 4, 10, 0)
        mid = utc(2024, 1, 6, 12, 0)
        end = utc(2024, 1, 9, 8, 30)
        whole = business_hours(start, end)
        assert whole == 70.5
        assert abs(business_hours(start, mid) + business_hours(mid, end) - whole) <= 0.01

    def test_dst_change_in_reference_timezone(self):
        # UK clocks go forward on Sunday 2024-03-31; Monday midnight is 23:00 UTC Sunday
        calendar = BusinessCalendar("Europe/London")
        start = utc(2024, 3, 29, 12, 0)   # Friday 12:00 GMT
        end = utc(2024, 4, 1, 11, 0)      # Monday 12:00 BST
        assert calendar.business_hours(start, end) == 24.0


class TestAddBusinessHours:
    """Tests for add_business_hours."""

    def test_non_positive_hours_return_start(self):
        start = utc(2024, 1, 3, 9, 0)
        assert add_business_hours(start, 0) == start
        assert add_business_hours(start, -5) == start

    def test_within_same_day(self):
        assert add_business_hours(utc(2024, 1, 1, 9, 0), 8) == utc(2024, 1, 1, 17, 0)

    def test_over_several_weekdays(self):
        assert add_business_hours(utc(2024, 1, 1, 9, 0), 40) == utc(2024, 1, 3, 1, 0)

    def test_skips_weekend(self):
        assert add_business_hours(utc(2024, 1, 5, 20, 0), 6) == utc(2024, 1, 8, 2, 0)

    def test_weekend_start_is_skipped_atomically(self):
        assert add_business_hours(utc(2024, 1, 6, 10, 0), 1) == utc(2024, 1, 8, 1, 0)

    def test_budget_ending_exactly_at_midnight(self):
        assert add_business_hours(utc(2024, 1, 5, 20, 0), 4) == utc(2024, 1, 6, 0, 0)

    def test_result_is_utc(self):
        result = add_business_hours("2024-01-01T09:00:00+02:00", 1)
        assert result == utc(2024, 1, 1, 8, 0)
        assert result.tzinfo == timezone.utc

    @pytest.mark.parametrize("start, hours", [
        (utc(2024, 1, 1, 9, 0), 0.25),
        (utc(2024, 1, 1, 9, 0), 7.5),
        (utc(2024, 1, 1, 9, 0), 30),
        (utc(2024, 1, 2, 13, 37), 50),
        (utc(2024, 1, 5, 20, 0), 10),
    ])
    def test_round_trip_with_business_hours(self, start, hours):
        assert abs(business_hours(start, add_business_hours(start, hours)) - hours) <= 0.01

    def test_invalid_start_raises(self):
        with pytest.raises(InvalidInput):
            add_business_hours("soon", 3)

    @pytest.mark.parametrize("hours", ["three", None, float("nan"), float("inf")])
    def test_invalid_hours_raise(self, hours):
        with pytest.raises(InvalidInput):
            add_business_hours(utc(2024, 1, 1, 9, 0), hours)
