"""Attendance schemas"""

from typing import Any, Optional

from pydantic import BaseModel


class ClockRequest(BaseModel):
    notes: Optional[str] = None


class WorkingHoursUpdate(BaseModel):
    # Loose types: values are normalised by the service, never rejected
    workStartTime: Optional[Any] = None
    workEndTime: Optional[Any] = None
    overtimeRatePerHour: Optional[Any] = None
    maxOvertimeHoursPerDay: Optional[Any] = None
