"""Tests for nightwatch.services.occurrence_service."""

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from nightwatch.services.exceptions import InternalServiceError, ShiftTimeInvalidError
from nightwatch.services.occurrence_service import (
    MAX_OCCURRENCES_PER_SCHEDULE,
    ensure_utc,
    generate_occurrences,
    resolve_timezone,
    validate_occurrence,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestEnsureUtc:
    def test_naive_is_treated_as_utc(self):
        assert ensure_utc(datetime(2030, 6, 3, 10, 0)) == utc(2030, 6, 3, 10, 0)

    def test_offset_is_converted(self):
        value = datetime(2030, 6, 3, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        result = ensure_utc(value)
        assert result == utc(2030, 6, 3, 10, 0)
        assert result.utcoffset() == timedelta(0)


class TestResolveTimezone:
    def test_empty_is_utc(self):
        _, label = resolve_timezone(None)
        assert label == "UTC"

    def test_known_zone(self):
        tz, label = resolve_timezone("Africa/Johannesburg")
        assert label == "Africa/Johannesburg"
        assert datetime(2030, 6, 3, tzinfo=tz).utcoffset() == timedelta(hours=2)

    def test_unknown_zone_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            _, label = resolve_timezone("Mars/Olympus", 42)
        assert label == "UTC"
        assert "Mars/Olympus" in caplog.text


class TestGenerateOccurrences:
    def test_hourly_window_is_inclusive(self, make_schedule):
        schedule = make_schedule(cron_expr="0 * * * *", duration_minutes=60)

        occurrences = generate_occurrences(schedule, utc(2030, 6, 3, 10, 0), utc(2030, 6, 3, 13, 0))

        assert [o.start for o in occurrences] == [
            utc(2030, 6, 3, 10, 0),
            utc(2030, 6, 3, 11, 0),
            utc(2030, 6, 3, 12, 0),
            utc(2030, 6, 3, 13, 0),
        ]

    def test_window_outside_active_period(self, make_schedule):
        schedule = make_schedule(
            cron_expr="0 18 * * *",
            start_date=date(2030, 1, 1),
            end_date=date(2030, 1, 31),
        )

        occurrences = generate_occurrences(schedule, utc(2030, 2, 1, 0, 0), utc(2030, 2, 28, 23, 59))

        assert occurrences == []

    def test_active_period_clamps_window(self, make_schedule):
        schedule = make_schedule(
            cron_expr="0 18 * * *",
            start_date=date(2030, 6, 2),
            end_date=date(2030, 6, 4),
        )

        occurrences = generate_occurrences(schedule, utc(2030, 6, 1, 0, 0), utc(2030, 6, 10, 0, 0))

        assert [o.start for o in occurrences] == [
            utc(2030, 6, 2, 18, 0),
            utc(2030, 6, 3, 18, 0),
            utc(2030, 6, 4, 18, 0),
        ]

    def test_active_period_uses_schedule_timezone(self, make_schedule):
        # 01:00 in Johannesburg is 23:00 UTC on the previous day
        schedule = make_schedule(
            cron_expr="0 1 * * *",
            start_date=date(2030, 6, 3),
            timezone="Africa/Johannesburg",
        )

        occurrences = generate_occurrences(schedule, utc(2030, 6, 2, 0, 0), utc(2030, 6, 4, 0, 0))

        assert [o.start for o in occurrences] == [
            utc(2030, 6, 2, 23, 0),
            utc(2030, 6, 3, 23, 0),
        ]

    def test_pattern_evaluated_in_schedule_timezone(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", timezone="Africa/Johannesburg")

        occurrences = generate_occurrences(schedule, utc(2030, 6, 3, 0, 0), utc(2030, 6, 3, 23, 59))

        assert len(occurrences) == 1
        assert occurrences[0].start == utc(2030, 6, 3, 16, 0)
        assert occurrences[0].timezone == "Africa/Johannesburg"

    def test_unknown_timezone_falls_back_to_utc(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", timezone="Mars/Olympus")

        occurrences = generate_occurrences(schedule, utc(2030, 6, 3, 0, 0), utc(2030, 6, 3, 23, 59))

        assert [o.start for o in occurrences] == [utc(2030, 6, 3, 18, 0)]
        assert occurrences[0].timezone == "UTC"

    def test_malformed_pattern_yields_nothing(self, make_schedule, caplog):
        schedule = make_schedule(cron_expr="61 * * * *")

        with caplog.at_level(logging.ERROR):
            occurrences = generate_occurrences(schedule, utc(2030, 6, 3, 0, 0), utc(2030, 6, 4, 0, 0))

        assert occurrences == []
        assert "61 * * * *" in caplog.text

    def test_end_is_start_plus_duration(self, make_schedule):
        schedule = make_schedule(cron_expr="30 20 * * *", duration_minutes=150)

        occurrences = generate_occurrences(schedule, utc(2030, 6, 1, 0, 0), utc(2030, 6, 8, 0, 0))

        assert len(occurrences) == 7
        for occurrence in occurrences:
            assert occurrence.end - occurrence.start == timedelta(minutes=150)

    def test_every_start_is_a_valid_shift(self, make_schedule):
        schedule = make_schedule(cron_expr="15 */3 * * 1-5", timezone="Europe/London")

        occurrences = generate_occurrences(schedule, utc(2030, 3, 25, 0, 0), utc(2030, 4, 8, 0, 0))

        assert occurrences
        for occurrence in occurrences:
            assert validate_occurrence(schedule, occurrence.start) == occurrence.start

    def test_starts_are_ascending_and_unique(self, make_schedule):
        schedule = make_schedule(cron_expr="*/20 * * * *")

        occurrences = generate_occurrences(schedule, utc(2030, 6, 3, 0, 0), utc(2030, 6, 3, 6, 0))
        starts = [o.start for o in occurrences]

        assert starts == sorted(set(starts))
        assert len(starts) == 19

    def test_occurrence_cap(self, make_schedule):
        schedule = make_schedule(cron_expr="* * * * *")

        occurrences = generate_occurrences(schedule, utc(2030, 6, 1, 0, 0), utc(2030, 6, 8, 0, 0))

        assert len(occurrences) == MAX_OCCURRENCES_PER_SCHEDULE

    def test_reversed_window(self, make_schedule):
        schedule = make_schedule()

        assert generate_occurrences(schedule, utc(2030, 6, 3, 12, 0), utc(2030, 6, 3, 10, 0)) == []


class TestValidateOccurrence:
    def test_returns_start_in_utc(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", timezone="Africa/Johannesburg")
        local = datetime(2030, 6, 3, 18, 0, tzinfo=timezone(timedelta(hours=2)))

        assert validate_occurrence(schedule, local) == utc(2030, 6, 3, 16, 0)

    def test_off_pattern_rejected(self, make_schedule):
        schedule = make_schedule(cron_expr="0 * * * *")

        with pytest.raises(ShiftTimeInvalidError):
            validate_occurrence(schedule, utc(2030, 6, 3, 10, 15))

    def test_before_active_period_rejected(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", start_date=date(2030, 6, 5))

        with pytest.raises(ShiftTimeInvalidError):
            validate_occurrence(schedule, utc(2030, 6, 4, 18, 0))

    def test_after_active_period_rejected(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", end_date=date(2030, 6, 5))

        with pytest.raises(ShiftTimeInvalidError):
            validate_occurrence(schedule, utc(2030, 6, 6, 18, 0))

    def test_last_day_of_active_period_accepted(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 * * *", end_date=date(2030, 6, 5))

        assert validate_occurrence(schedule, utc(2030, 6, 5, 18, 0)) == utc(2030, 6, 5, 18, 0)

    def test_malformed_pattern_is_internal_error(self, make_schedule):
        schedule = make_schedule(cron_expr="0 25 * * *")

        with pytest.raises(InternalServiceError):
            validate_occurrence(schedule, utc(2030, 6, 3, 10, 0))


class TestCalendarEdgeCases:
    def test_daylight_saving_gap_day_has_no_shift(self, make_schedule):
        schedule = make_schedule(cron_expr="30 2 * * *", timezone="America/New_York")

        occurrences = generate_occurrences(schedule, utc(2030, 3, 9, 0, 0), utc(2030, 3, 12, 12, 0))

        assert [o.start for o in occurrences] == [
            utc(2030, 3, 9, 7, 30),
            utc(2030, 3, 11, 6, 30),
            utc(2030, 3, 12, 6, 30),
        ]
        for occurrence in occurrences:
            assert validate_occurrence(schedule, occurrence.start) == occurrence.start

    def test_shifted_gap_instant_is_rejected(self, make_schedule):
        schedule = make_schedule(cron_expr="30 2 * * *", timezone="America/New_York")

        with pytest.raises(ShiftTimeInvalidError):
            validate_occurrence(schedule, utc(2030, 3, 10, 7, 30))

    def test_day_of_month_or_day_of_week(self, make_schedule):
        schedule = make_schedule(cron_expr="0 18 1 * 1")

        occurrences = generate_occurrences(schedule, utc(2030, 6, 1, 0, 0), utc(2030, 6, 30, 23, 59))

        assert [o.start.day for o in occurrences] == [1, 3, 10, 17, 24]
        for occurrence in occurrences:
            assert validate_occurrence(schedule, occurrence.start) == occurrence.start
