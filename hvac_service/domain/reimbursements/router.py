"""Reimbursement router - categories, claim submission and finance review"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_roles
from ...database import get_db
from ...models_finance import FINANCE_ROLES
from .schemas import CategoryCreate, CategoryUpdate, DecisionRequest
from .service import ReimbursementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reimbursements", tags=["Reimbursements"])

require_finance = require_roles(*FINANCE_ROLES)

MAX_RECEIPT_SIZE = 10 * 1024 * 1024  # 10MB


def get_reimbursement_service(db: Session = Depends(get_db)) -> ReimbursementService:
    """Dependency injection for ReimbursementService"""
    return ReimbursementService(db)


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories")
async def list_categories(
    include_inactive: bool = Query(False, alias="includeInactive"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    """Active categories; finance can include retired ones"""
    return service.list_categories(ctx.tenant_id, include_inactive and ctx.role in FINANCE_ROLES)


@router.post("/categories", status_code=201)
async def create_category(
    data: CategoryCreate,
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.create_category(ctx.tenant_id, data)


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.update_category(category_id, ctx.tenant_id, data)


# ============================================================================
# REQUESTS
# ============================================================================


@router.post("", status_code=201)
async def submit_request(
    category_id: int = Form(..., alias="categoryId"),
    amount: float = Form(...),
    description: Optional[str] = Form(None),
    receipt: UploadFile = File(...),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    """Submit an expense claim with its receipt photo or PDF"""
    contents = await receipt.read()
    if len(contents) > MAX_RECEIPT_SIZE:
        raise HTTPException(status_code=400, detail="Receipt exceeds 10MB limit")

    return service.submit_request(
        ctx,
        category_id,
        amount,
        contents,
        receipt.content_type,
        description=description,
        file_name=receipt.filename,
    )


@router.get("")
async def list_requests(
    status: Optional[str] = Query(None),
    submitted_by: Optional[int] = Query(None, alias="submittedBy"),
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.list_requests(ctx.tenant_id, status, submitted_by)


@router.get("/mine")
async def my_requests(
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.my_requests(ctx)


@router.get("/{request_id}")
async def get_request(
    request_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.get_request(request_id, ctx)


@router.get("/{request_id}/receipt")
async def receipt_url(
    request_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    """Short-lived link to the receipt file"""
    return service.receipt_url(request_id, ctx)


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: int,
    data: DecisionRequest,
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.approve_request(request_id, ctx, data.note)


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: int,
    data: DecisionRequest,
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.reject_request(request_id, ctx, data.note)


@router.post("/{request_id}/pay")
async def mark_paid(
    request_id: int,
    ctx: TenantContext = Depends(require_finance),
    service: ReimbursementService = Depends(get_reimbursement_service),
):
    return service.mark_paid(request_id, ctx)
