"""
test_attendance_rules.py — Unit tests for attendance rules.

Timestamps are naive UTC; Asia/Jakarta is UTC+7, so 02:00 UTC is 09:00 local.
"""

from datetime import datetime

import pytest

from hvac_service.domain.attendance.rules import (
    WorkingHours,
    is_early_leave,
    is_late,
    normalize_config,
    overtime_hours,
    work_hours,
)

TZ = "Asia/Jakarta"


@pytest.fixture
def config():
    return WorkingHours()


class TestLateness:

    def test_exactly_on_time_is_not_late(self, config):
        assert is_late(datetime(2026, 3, 2, 2, 0), config, TZ) is False

    def test_one_minute_past_start_is_late(self, config):
        assert is_late(datetime(2026, 3, 2, 2, 1), config, TZ) is True

    def test_leaving_before_end_is_early(self, config):
        # 09:59 UTC = 16:59 local
        assert is_early_leave(datetime(2026, 3, 2, 9, 59), config, TZ) is True

    def test_leaving_at_end_is_not_early(self, config):
        assert is_early_leave(datetime(2026, 3, 2, 10, 0), config, TZ) is False


class TestHours:

    def test_work_hours_rounded_to_two_places(self):
        assert work_hours(datetime(2026, 3, 2, 2, 0), datetime(2026, 3, 2, 10, 20)) == 8.33

    def test_no_overtime_inside_day(self, config):
        assert overtime_hours(7.5, config) == 0

    def test_overtime_beyond_day_length(self, config):
        assert overtime_hours(9.5, config) == 1.5

    def test_overtime_capped(self, config):
        assert overtime_hours(20, config) == 4

    def test_missing_hours(self, config):
        assert overtime_hours(None, config) == 0


class TestNormalizeConfig:

    def test_defaults_when_everything_invalid(self):
        config = normalize_config("late", "", "free", None)
        assert config == WorkingHours()

    def test_values_are_normalised(self):
        config = normalize_config("08:00", "16:30:00", "7500", "2.9")
        assert config.work_start_time == "08:00:00"
        assert config.work_end_time == "16:30:00"
        assert config.overtime_rate_per_hour == 7500
        assert config.max_overtime_hours_per_day == 2
        assert config.day_hours == 8.5

    def test_negative_max_overtime_becomes_zero(self):
        assert normalize_config(max_overtime_hours_per_day=-3).max_overtime_hours_per_day == 0
