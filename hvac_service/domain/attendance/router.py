"""Attendance router - FastAPI endpoints for daily clock-in/out and timecards"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_manager
from ...database import get_db
from ...utils.business_time import local_date
from .schemas import ClockRequest, WorkingHoursUpdate
from .service import AttendanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["Attendance"])


def get_attendance_service(db: Session = Depends(get_db)) -> AttendanceService:
    """Dependency injection for AttendanceService"""
    return AttendanceService(db)


@router.post("/clock-in")
async def clock_in(
    data: ClockRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.clock_in(ctx.tenant_id, ctx.user, data.notes)


@router.post("/clock-out")
async def clock_out(
    data: ClockRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.clock_out(ctx.tenant_id, ctx.user, data.notes)


@router.get("/today")
async def today(
    ctx: TenantContext = Depends(get_tenant_context),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.today(ctx.tenant_id, ctx.user)


@router.get("/config")
async def get_config(
    ctx: TenantContext = Depends(get_tenant_context),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.get_config(ctx.tenant_id)


@router.put("/config")
async def put_config(
    data: WorkingHoursUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.put_config(ctx.tenant_id, data)


@router.get("")
async def list_attendance(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    ctx: TenantContext = Depends(require_manager),
    service: AttendanceService = Depends(get_attendance_service),
):
    return service.list_attendance(ctx.tenant_id, date_from, date_to, technician_id)


@router.get("/timecard")
async def timecard(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    ctx: TenantContext = Depends(require_manager),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Defaults to the current month up to today"""
    date_to = date_to or local_date()
    date_from = date_from or date_to.replace(day=1)
    return service.timecard(ctx.tenant_id, date_from, date_to, technician_id)


@router.post("/auto-checkout")
async def auto_checkout(
    day: Optional[date] = Query(None, alias="date"),
    ctx: TenantContext = Depends(require_manager),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Close rows left open; defaults to yesterday"""
    day = day or (local_date() - timedelta(days=1))
    return {"success": True, "date": day.isoformat(), "closed": service.auto_checkout(day, ctx.tenant_id)}
