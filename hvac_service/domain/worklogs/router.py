"""Work log router - technician check-in/out, technical reports and report PDFs"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_manager
from ...database import get_db
from .schemas import CheckInRequest, CheckOutRequest, TechnicalReportSubmit, TravelDistanceRequest
from .service import WorkLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Work Logs"])
utility_router = APIRouter(prefix="/worklogs", tags=["Work Logs"])
public_router = APIRouter(prefix="/public", tags=["Public"])


def get_work_log_service(db: Session = Depends(get_db)) -> WorkLogService:
    """Dependency injection for WorkLogService"""
    return WorkLogService(db)


def _pdf_response(pdf_bytes: bytes, filename: str, inline: bool = False) -> Response:
    disposition = "inline" if inline else "attachment"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


@router.post("/{order_id}/check-in")
async def check_in(
    order_id: int,
    data: CheckInRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    return service.check_in(order_id, data, ctx)


@router.post("/{order_id}/check-out")
async def check_out(
    order_id: int,
    data: CheckOutRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    return service.check_out(order_id, data, ctx)


@router.put("/{order_id}/report")
async def submit_technical_report(
    order_id: int,
    data: TechnicalReportSubmit,
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    """Save the technical report form filled in on site"""
    return service.submit_technical_report(order_id, data, ctx)


@router.get("/{order_id}/report")
async def get_work_log(
    order_id: int,
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    return service.get_work_log(order_id, ctx, technician_id)


@router.get("/{order_id}/work-logs")
async def list_order_work_logs(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    return service.list_order_work_logs(order_id, ctx.tenant_id)


@router.get("/{order_id}/report-pdf")
async def download_report_pdf(
    order_id: int,
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: WorkLogService = Depends(get_work_log_service),
):
    try:
        pdf_bytes, filename = service.report_pdf(order_id, ctx.tenant_id, technician_id)
        return _pdf_response(pdf_bytes, filename)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Failed to render report PDF for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate report PDF") from e


@router.post("/{order_id}/report-link")
async def create_report_link(
    order_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: WorkLogService = Depends(get_work_log_service),
):
    """Signed link the client can open without logging in"""
    return service.create_report_link(order_id, ctx.tenant_id)


@utility_router.post("/travel-distance")
async def travel_distance(
    data: TravelDistanceRequest,
    ctx: TenantContext = Depends(get_tenant_context),
):
    return {"distanceKm": WorkLogService.travel_distance([(p.lat, p.lng) for p in data.points])}


@public_router.get("/reports/{token}.pdf")
async def public_report_pdf(token: str, service: WorkLogService = Depends(get_work_log_service)):
    try:
        pdf_bytes, filename = service.public_report_pdf(token)
        return _pdf_response(pdf_bytes, filename, inline=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Failed to serve public report: {e}")
        raise HTTPException(status_code=500, detail="Failed to load report") from e
