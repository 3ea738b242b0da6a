from datetime import datetime, time

import pytest

from app.core.timing import (
    calculate_activity_end,
    calculate_first_activity_start,
    calculate_next_activity_start,
    format_time,
    get_default_duration,
    is_open_at,
    normalize_time_string,
    parse_time_of_day,
)


class TestNormalizeTimeString:
    """Every input shape ends up as HH:MM, invalid ones as 09:00"""

    @pytest.mark.parametrize("value, expected", [
        ("14:30", "14:30"),
        ("14:30:00", "14:30"),
        ("7:05", "07:05"),
        ("2026-03-15T18:45:00Z", "18:45"),
        ("2026-03-15 08:15:30", "08:15"),
        (time(16, 20), "16:20"),
        (datetime(2026, 3, 15, 11, 5), "11:05"),
    ])
    def test_valid_inputs(self, value, expected):
        assert normalize_time_string(value) == expected

    @pytest.mark.parametrize("value", [None, "", "25:00:00", "12:75", "noon", "24:00"])
    def test_invalid_inputs_fall_back_to_default(self, value):
        assert normalize_time_string(value) == "09:00"

    @pytest.mark.parametrize("value", [None, "25:00:00", "14:30:00", "garbage", "23:59", time(0, 0)])
    def test_idempotent(self, value):
        once = normalize_time_string(value)
        assert normalize_time_string(once) == once


class TestChaining:
    def test_activity_end_wraps_past_midnight(self):
        assert calculate_activity_end("23:30", 60) == "00:30"
        assert calculate_activity_end("23:30", 30) == "00:00"
        assert calculate_activity_end("23:30", 29) == "23:59"

    def test_activity_end_for_unparseable_start(self):
        assert calculate_activity_end("bogus", 120) == "11:00"

    def test_next_start_adds_travel(self):
        assert calculate_next_activity_start("12:00", 15) == "12:15"
        assert calculate_next_activity_start("23:50", 20) == "00:10"

    def test_zero_travel_is_a_no_op(self):
        assert calculate_next_activity_start("13:45", 0) == "13:45"


class TestFirstActivityStart:
    def test_checkin_rule_wins(self):
        assert calculate_first_activity_start("10:00:00", "15:00") == "15:30"

    def test_flight_rule_wins(self):
        assert calculate_first_activity_start("20:00:00", "15:00") == "21:30"

    def test_only_flight(self):
        assert calculate_first_activity_start("08:00", None) == "09:30"
        assert calculate_first_activity_start(time(11, 0), None) == "12:30"

    def test_only_checkin(self):
        assert calculate_first_activity_start(None, "14:00") == "14:30"

    def test_neither(self):
        assert calculate_first_activity_start(None, None) == "09:30"

    def test_late_arrival_still_wins_after_wrapping(self):
        assert calculate_first_activity_start("23:00", "15:00") == "00:30"


def test_default_durations():
    assert get_default_duration("restaurant") == 90
    assert get_default_duration("activity") == 120


class TestOpeningHours:
    def test_inside_and_at_edges(self):
        assert is_open_at("09:00", "09:00", "18:00")
        assert is_open_at("18:00", "09:00", "18:00")
        assert is_open_at("13:30", time(9, 0), time(18, 0))

    def test_outside(self):
        assert not is_open_at("08:59", "09:00", "18:00")
        assert not is_open_at("13:30", "06:00", "10:00")

    def test_unknown_hours_count_as_open(self):
        assert is_open_at("03:00", None, "18:00")

    def test_open_past_midnight(self):
        assert is_open_at("01:00", "18:00", "02:00")
        assert not is_open_at("12:00", "18:00", "02:00")


def test_format_time():
    assert format_time("14:30") == "2:30 PM"
    assert format_time("00:15") == "12:15 AM"
    assert format_time("not a time") == "not a time"
    assert format_time(None) == ""


def test_parse_time_of_day():
    assert parse_time_of_day("01:30") == 90
    assert parse_time_of_day("99:99") is None
