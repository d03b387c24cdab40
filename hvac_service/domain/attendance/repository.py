"""Attendance repository - Database operations for daily attendance"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import WorkingHoursConfig
from ...models_worklog import DailyAttendance


class AttendanceRepository:
    """Repository for attendance database operations"""

    @staticmethod
    def get_day(db: Session, tenant_id: int, user_id: int, day: date) -> Optional[DailyAttendance]:
        return (
            db.query(DailyAttendance)
            .filter(
                DailyAttendance.tenant_id == tenant_id,
                DailyAttendance.user_id == user_id,
                DailyAttendance.date == day,
            )
            .first()
        )

    @staticmethod
    def get_config(db: Session, tenant_id: int) -> Optional[WorkingHoursConfig]:
        return db.query(WorkingHoursConfig).filter(WorkingHoursConfig.tenant_id == tenant_id).first()

    @staticmethod
    def list_rows(
        db: Session,
        tenant_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> list[DailyAttendance]:
        query = (
            db.query(DailyAttendance)
            .options(joinedload(DailyAttendance.user))
            .filter(DailyAttendance.tenant_id == tenant_id)
        )
        if date_from:
            query = query.filter(DailyAttendance.date >= date_from)
        if date_to:
            query = query.filter(DailyAttendance.date <= date_to)
        if user_id:
            query = query.filter(DailyAttendance.user_id == user_id)
        return query.order_by(DailyAttendance.date.desc(), DailyAttendance.user_id.asc()).all()

    @staticmethod
    def get_open_rows(db: Session, day: date, tenant_id: Optional[int] = None) -> list[DailyAttendance]:
        query = db.query(DailyAttendance).filter(
            DailyAttendance.date == day,
            DailyAttendance.clock_in_time.isnot(None),
            DailyAttendance.clock_out_time.is_(None),
        )
        if tenant_id is not None:
            query = query.filter(DailyAttendance.tenant_id == tenant_id)
        return query.all()
