"""Attendance rules - lateness, early leave, hours worked and overtime"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ...shared.validators import normalize_number, normalize_time, time_to_minutes
from ...utils.business_time import local_minutes

DEFAULT_WORK_START = "09:00:00"
DEFAULT_WORK_END = "17:00:00"
DEFAULT_OVERTIME_RATE = 5000.0
DEFAULT_MAX_OVERTIME_HOURS = 4


@dataclass
class WorkingHours:
    work_start_time: str = DEFAULT_WORK_START
    work_end_time: str = DEFAULT_WORK_END
    overtime_rate_per_hour: float = DEFAULT_OVERTIME_RATE
    max_overtime_hours_per_day: int = DEFAULT_MAX_OVERTIME_HOURS

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.work_start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.work_end_time)

    @property
    def day_hours(self) -> float:
        return max(self.end_minutes - self.start_minutes, 0) / 60

    def to_dict(self) -> dict:
        return {
            "workStartTime": self.work_start_time,
            "workEndTime": self.work_end_time,
            "overtimeRatePerHour": self.overtime_rate_per_hour,
            "maxOvertimeHoursPerDay": self.max_overtime_hours_per_day,
        }


def normalize_config(
    work_start_time: Any = None,
    work_end_time: Any = None,
    overtime_rate_per_hour: Any = None,
    max_overtime_hours_per_day: Any = None,
) -> WorkingHours:
    """Clean user-supplied working hours; anything invalid falls back to the default"""
    max_overtime = normalize_number(max_overtime_hours_per_day, DEFAULT_MAX_OVERTIME_HOURS)
    return WorkingHours(
        work_start_time=normalize_time(work_start_time, DEFAULT_WORK_START),
        work_end_time=normalize_time(work_end_time, DEFAULT_WORK_END),
        overtime_rate_per_hour=max(normalize_number(overtime_rate_per_hour, DEFAULT_OVERTIME_RATE), 0.0),
        max_overtime_hours_per_day=max(math.floor(max_overtime), 0),
    )


def is_late(clock_in: datetime, config: WorkingHours, tz_name: Optional[str] = None) -> bool:
    return local_minutes(clock_in, tz_name) > config.start_minutes


def is_early_leave(clock_out: datetime, config: WorkingHours, tz_name: Optional[str] = None) -> bool:
    return local_minutes(clock_out, tz_name) < config.end_minutes


def work_hours(clock_in: datetime, clock_out: datetime) -> float:
    return round((clock_out - clock_in).total_seconds() / 3600, 2)


def overtime_hours(total_hours: Optional[float], config: WorkingHours) -> float:
    """Hours past the configured day length, capped at the daily maximum"""
    if not total_hours:
        return 0.0
    extra = max(total_hours - config.day_hours, 0.0)
    return round(min(extra, float(config.max_overtime_hours_per_day)), 2)
