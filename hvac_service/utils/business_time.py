"""Wall-clock helpers for the business timezone

Timestamps are stored as naive UTC; attendance dates and late/early checks
use the local calendar of the configured timezone.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import BUSINESS_TIMEZONE


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a naive UTC datetime to the business timezone"""
    tz = ZoneInfo(tz_name or BUSINESS_TIMEZONE)
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


def local_date(value: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Business-timezone calendar date of a naive UTC datetime (default: now)"""
    return to_local(value or utcnow(), tz_name).date()


def local_minutes(value: datetime, tz_name: Optional[str] = None) -> int:
    """Minutes after local midnight for a naive UTC datetime"""
    local = to_local(value, tz_name)
    return local.hour * 60 + local.minute


def local_to_utc(day: date, minutes: int, tz_name: Optional[str] = None) -> datetime:
    """Naive UTC datetime for a local calendar day plus minutes after midnight"""
    tz = ZoneInfo(tz_name or BUSINESS_TIMEZONE)
    local = datetime(day.year, day.month, day.day, minutes // 60, minutes % 60, tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)
