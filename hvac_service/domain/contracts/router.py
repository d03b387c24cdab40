"""Contract router - FastAPI endpoints for maintenance contracts and contract requests"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_manager
from ...database import get_db
from ..orders.service import order_to_dict
from .schemas import (
    ContractRequestApprove,
    ContractRequestCreate,
    ContractRequestReject,
    ContractUpdate,
    ContractWizardPayload,
    GenerateOrdersRequest,
    RescheduleRequest,
)
from .service import ContractService, contract_to_dict, request_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contracts"])
public_router = APIRouter(prefix="/public", tags=["Public"])


def get_contract_service(db: Session = Depends(get_db)) -> ContractService:
    """Dependency injection for ContractService"""
    return ContractService(db)


# ============================================================================
# WIZARD
# ============================================================================


@router.post("/preview")
async def preview_contract(
    payload: ContractWizardPayload,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    """Totals shown on the wizard review step; nothing is saved"""
    return service.preview_contract(payload)


@router.post("")
async def create_contract(
    payload: ContractWizardPayload,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    """Create a contract with its locations and units in one transaction"""
    contract = service.create_contract(payload, ctx.tenant_id, ctx.user)
    return contract_to_dict(contract, detail=True)


# ============================================================================
# MAINTENANCE SCHEDULING
# ============================================================================


@router.get("/maintenance/upcoming")
async def upcoming_maintenance(
    days: int = Query(30, ge=0, le=365),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ContractService = Depends(get_contract_service),
):
    return service.upcoming_maintenance(ctx.tenant_id, days)


@router.post("/maintenance/generate")
async def generate_maintenance_orders(
    data: GenerateOrdersRequest,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    """Create orders for units due soon (same job the nightly worker runs)"""
    generated = service.generate_maintenance_orders(data.asOf, data.horizonDays, ctx.tenant_id)
    return {
        "success": True,
        "generatedOrders": generated,
        "count": sum(1 for g in generated if g["created"]),
    }


@router.post("/maintenance/reschedule")
async def reschedule_maintenance_order(
    data: RescheduleRequest,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    order = service.reschedule_maintenance_order(data.orderId, data.newDate, data.reason, ctx.tenant_id)
    return order_to_dict(order)


# ============================================================================
# CONTRACT REQUESTS
# ============================================================================


@router.get("/requests")
async def list_contract_requests(
    status: Optional[str] = Query(None),
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return [request_to_dict(r) for r in service.list_requests(ctx.tenant_id, status)]


@router.post("/requests/{request_id}/approve")
async def approve_contract_request(
    request_id: int,
    data: ContractRequestApprove,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return request_to_dict(service.approve_request(request_id, data, ctx.tenant_id, ctx.user))


@router.post("/requests/{request_id}/reject")
async def reject_contract_request(
    request_id: int,
    data: ContractRequestReject,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return request_to_dict(service.reject_request(request_id, data.reason, ctx.tenant_id, ctx.user))


@public_router.post("/{tenant_slug}/contract-requests", status_code=201)
async def submit_contract_request(
    tenant_slug: str,
    data: ContractRequestCreate,
    service: ContractService = Depends(get_contract_service),
):
    """Public landing-page form asking for a maintenance contract"""
    req = service.submit_request(tenant_slug, data)
    return {"success": True, "id": req.id, "status": req.status}


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("")
async def list_contracts(
    active: Optional[bool] = Query(None),
    client_id: Optional[int] = Query(None, alias="clientId"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ContractService = Depends(get_contract_service),
):
    return [contract_to_dict(c) for c in service.list_contracts(ctx.tenant_id, active, client_id)]


@router.get("/{contract_id}")
async def get_contract(
    contract_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_dict(service.get_contract(contract_id, ctx.tenant_id), detail=True)


@router.put("/{contract_id}")
async def update_contract(
    contract_id: int,
    data: ContractUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_dict(service.update_contract(contract_id, data, ctx.tenant_id), detail=True)


@router.post("/{contract_id}/deactivate")
async def deactivate_contract(
    contract_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_dict(service.deactivate_contract(contract_id, ctx.tenant_id))


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ContractService = Depends(get_contract_service),
):
    return service.delete_contract(contract_id, ctx.tenant_id)
