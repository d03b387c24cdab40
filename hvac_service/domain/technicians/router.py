"""Technician router - FastAPI endpoints for the technician roster"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_current_user, get_tenant_context, require_manager
from ...database import get_db
from ...models import User
from ..orders.service import order_to_dict
from .schemas import ActivationRequest, TechnicianCreate, TechnicianUpdate
from .service import TechnicianService, technician_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/technicians", tags=["Technicians"])


def get_technician_service(db: Session = Depends(get_db)) -> TechnicianService:
    """Dependency injection for TechnicianService"""
    return TechnicianService(db)


@router.get("")
async def list_technicians(
    active: Optional[bool] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    service: TechnicianService = Depends(get_technician_service),
):
    return [technician_to_dict(t) for t in service.list_technicians(ctx.tenant_id, active)]


@router.post("")
async def create_technician(
    data: TechnicianCreate,
    ctx: TenantContext = Depends(require_manager),
    service: TechnicianService = Depends(get_technician_service),
):
    return technician_to_dict(service.create_technician(data, ctx.tenant_id))


@router.post("/activate")
async def activate_technician(
    data: ActivationRequest,
    current_user: User = Depends(get_current_user),
    service: TechnicianService = Depends(get_technician_service),
):
    """Complete account activation from the link sent to the technician"""
    return service.activate(data.token, current_user)


@router.get("/me/orders")
async def my_orders(
    status: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    service: TechnicianService = Depends(get_technician_service),
):
    return [order_to_dict(o) for o in service.my_orders(ctx.user, ctx.tenant_id, status)]


@router.get("/{technician_id}")
async def get_technician(
    technician_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: TechnicianService = Depends(get_technician_service),
):
    return technician_to_dict(service.get_technician(technician_id, ctx.tenant_id))


@router.put("/{technician_id}")
async def update_technician(
    technician_id: int,
    data: TechnicianUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: TechnicianService = Depends(get_technician_service),
):
    return technician_to_dict(service.update_technician(technician_id, data, ctx.tenant_id))


@router.delete("/{technician_id}")
async def deactivate_technician(
    technician_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: TechnicianService = Depends(get_technician_service),
):
    return technician_to_dict(service.deactivate_technician(technician_id, ctx.tenant_id))


@router.post("/{technician_id}/activation-link")
async def create_activation_link(
    technician_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: TechnicianService = Depends(get_technician_service),
):
    return service.create_activation_token(technician_id, ctx.tenant_id)
