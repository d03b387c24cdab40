"""Attendance service - daily clock-in/out, working hours config and timecards"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User, WorkingHoursConfig
from ...models_worklog import DailyAttendance
from ...shared.validators import clean_notes
from ...utils.business_time import local_date, local_to_utc, utcnow
from ..technicians.repository import TechnicianRepository
from .repository import AttendanceRepository
from .rules import (
    WorkingHours,
    is_early_leave,
    is_late,
    normalize_config,
    overtime_hours,
    work_hours,
)
from .schemas import WorkingHoursUpdate

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def attendance_to_dict(row: DailyAttendance) -> dict:
    return {
        "id": row.id,
        "userId": row.user_id,
        "userName": row.user.full_name if row.user else None,
        "date": row.date.isoformat(),
        "clockInTime": _iso(row.clock_in_time),
        "clockOutTime": _iso(row.clock_out_time),
        "workStartTime": _iso(row.work_start_time),
        "workEndTime": _iso(row.work_end_time),
        "totalWorkHours": row.total_work_hours,
        "isLate": row.is_late,
        "isEarlyLeave": row.is_early_leave,
        "isAutoCheckout": row.is_auto_checkout,
        "notes": row.notes,
    }


class AttendanceService:
    """Service class for attendance"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AttendanceRepository()

    def working_hours(self, tenant_id: int) -> WorkingHours:
        """Tenant config, or the defaults when none has been saved"""
        row = self.repo.get_config(self.db, tenant_id)
        if not row:
            return WorkingHours()
        return WorkingHours(
            work_start_time=row.work_start_time,
            work_end_time=row.work_end_time,
            overtime_rate_per_hour=row.overtime_rate_per_hour,
            max_overtime_hours_per_day=row.max_overtime_hours_per_day,
        )

    def get_config(self, tenant_id: int) -> dict:
        return self.working_hours(tenant_id).to_dict()

    def put_config(self, tenant_id: int, data: WorkingHoursUpdate) -> dict:
        config = normalize_config(
            data.workStartTime,
            data.workEndTime,
            data.overtimeRatePerHour,
            data.maxOvertimeHoursPerDay,
        )
        row = self.repo.get_config(self.db, tenant_id)
        if not row:
            row = WorkingHoursConfig(tenant_id=tenant_id)
            self.db.add(row)
        row.work_start_time = config.work_start_time
        row.work_end_time = config.work_end_time
        row.overtime_rate_per_hour = config.overtime_rate_per_hour
        row.max_overtime_hours_per_day = config.max_overtime_hours_per_day
        self.db.commit()
        logger.info(
            f"🕘 Working hours for tenant {tenant_id} set to "
            f"{config.work_start_time}-{config.work_end_time}"
        )
        return config.to_dict()

    def clock_in(self, tenant_id: int, user: User, notes: Optional[str] = None) -> dict:
        now = utcnow()
        today = local_date(now)
        row = self.repo.get_day(self.db, tenant_id, user.id, today)
        if row and row.clock_in_time:
            raise HTTPException(status_code=409, detail="Already clocked in today")

        # A row without a clock-in (e.g. created by an admin) is filled in
        if not row:
            row = DailyAttendance(tenant_id=tenant_id, user_id=user.id, date=today)
            self.db.add(row)

        config = self.working_hours(tenant_id)
        row.clock_in_time = now
        row.work_start_time = now
        row.work_end_time = None
        row.is_late = is_late(now, config)
        row.is_early_leave = False
        row.is_auto_checkout = False
        row.notes = clean_notes(notes)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Already clocked in today") from e
        self.db.refresh(row)

        logger.info(f"⏰ User {user.id} clocked in for {today}" + (" (late)" if row.is_late else ""))
        return attendance_to_dict(row)

    def clock_out(self, tenant_id: int, user: User, notes: Optional[str] = None) -> dict:
        now = utcnow()
        row = self.repo.get_day(self.db, tenant_id, user.id, local_date(now))
        if not row or not row.clock_in_time:
            raise HTTPException(status_code=409, detail="You have not clocked in today")
        if row.clock_out_time:
            raise HTTPException(status_code=409, detail="Already clocked out today")

        config = self.working_hours(tenant_id)
        row.clock_out_time = now
        row.work_start_time = row.clock_in_time
        row.work_end_time = now
        row.total_work_hours = work_hours(row.clock_in_time, now)
        row.is_early_leave = is_early_leave(now, config)
        extra = clean_notes(notes)
        if extra:
            row.notes = f"{row.notes}\n{extra}" if row.notes else extra

        self.db.commit()
        self.db.refresh(row)
        logger.info(f"⏰ User {user.id} clocked out after {row.total_work_hours} h")
        return attendance_to_dict(row)

    def today(self, tenant_id: int, user: User) -> dict:
        row = self.repo.get_day(self.db, tenant_id, user.id, local_date())
        return {
            "attendance": attendance_to_dict(row) if row else None,
            "config": self.get_config(tenant_id),
        }

    def _user_id_for_technician(self, tenant_id: int, technician_id: Optional[int]) -> Optional[int]:
        if technician_id is None:
            return None
        technician = TechnicianRepository.get_technician(self.db, technician_id, tenant_id)
        if not technician:
            raise HTTPException(status_code=404, detail="Technician not found")
        if not technician.user_id:
            raise HTTPException(status_code=400, detail="Technician has not activated an account")
        return technician.user_id

    def list_attendance(
        self,
        tenant_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        technician_id: Optional[int] = None,
    ) -> list[dict]:
        if date_from and date_to and date_from > date_to:
            raise HTTPException(status_code=400, detail="dateFrom must be before dateTo")
        user_id = self._user_id_for_technician(tenant_id, technician_id)
        rows = self.repo.list_rows(self.db, tenant_id, date_from, date_to, user_id)
        return [attendance_to_dict(r) for r in rows]

    def timecard(
        self,
        tenant_id: int,
        date_from: date,
        date_to: date,
        technician_id: Optional[int] = None,
    ) -> dict:
        """Per-user summary over a period with overtime pay"""
        if date_from > date_to:
            raise HTTPException(status_code=400, detail="dateFrom must be before dateTo")
        config = self.working_hours(tenant_id)
        user_id = self._user_id_for_technician(tenant_id, technician_id)
        rows = self.repo.list_rows(self.db, tenant_id, date_from, date_to, user_id)

        grouped: dict[int, list[DailyAttendance]] = defaultdict(list)
        for row in rows:
            grouped[row.user_id].append(row)

        summaries = []
        for uid, user_rows in grouped.items():
            total = round(sum(r.total_work_hours or 0 for r in user_rows), 2)
            overtime = round(sum(overtime_hours(r.total_work_hours, config) for r in user_rows), 2)
            summaries.append(
                {
                    "userId": uid,
                    "userName": user_rows[0].user.full_name if user_rows[0].user else None,
                    "daysPresent": len(user_rows),
                    "lateCount": sum(1 for r in user_rows if r.is_late),
                    "earlyLeaveCount": sum(1 for r in user_rows if r.is_early_leave),
                    "totalHours": total,
                    "overtimeHours": overtime,
                    "overtimePay": round(overtime * config.overtime_rate_per_hour, 2),
                }
            )
        summaries.sort(key=lambda s: (s["userName"] or "", s["userId"]))
        return {
            "from": date_from.isoformat(),
            "to": date_to.isoformat(),
            "config": config.to_dict(),
            "technicians": summaries,
        }

    def auto_checkout(self, day: date, tenant_id: Optional[int] = None) -> int:
        """Close rows left open on `day` at the configured end of the work day"""
        configs: dict[int, WorkingHours] = {}
        closed = 0
        for row in self.repo.get_open_rows(self.db, day, tenant_id):
            if row.tenant_id not in configs:
                configs[row.tenant_id] = self.working_hours(row.tenant_id)
            config = configs[row.tenant_id]

            clock_out = max(local_to_utc(day, config.end_minutes), row.clock_in_time)
            row.clock_out_time = clock_out
            row.work_start_time = row.clock_in_time
            row.work_end_time = clock_out
            row.total_work_hours = work_hours(row.clock_in_time, clock_out)
            row.is_early_leave = False
            row.is_auto_checkout = True
            closed += 1

        self.db.commit()
        if closed:
            logger.info(f"🌙 Auto checkout closed {closed} attendance rows for {day}")
        return closed
