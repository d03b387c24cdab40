"""Service order router - FastAPI endpoints for orders, dispatch, kanban and calendar"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_manager
from ...database import get_db
from .schemas import AssignTechniciansRequest, MoveCardRequest, OrderCreate, OrderUpdate, StatusUpdate
from .service import OrderService, order_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Service Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db)


@router.get("")
async def list_orders(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None, alias="clientId"),
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    search: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    service: OrderService = Depends(get_order_service),
):
    orders = service.list_orders(
        ctx.tenant_id,
        status=status,
        client_id=client_id,
        technician_id=technician_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    return [order_to_dict(o) for o in orders]


@router.post("")
async def create_order(
    data: OrderCreate,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    """Create a service order, optionally dispatching technicians right away"""
    return order_to_dict(service.create_order(data, ctx.tenant_id, ctx.user))


@router.get("/kanban")
async def kanban_board(
    ctx: TenantContext = Depends(get_tenant_context),
    service: OrderService = Depends(get_order_service),
):
    return service.kanban_board(ctx.tenant_id)


@router.get("/schedule")
async def schedule(
    date_from: date = Query(..., alias="dateFrom"),
    date_to: date = Query(..., alias="dateTo"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: OrderService = Depends(get_order_service),
):
    """Calendar view: orders grouped by scheduled day"""
    return service.schedule(ctx.tenant_id, date_from, date_to)


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: OrderService = Depends(get_order_service),
):
    return order_to_dict(service.get_order(order_id, ctx.tenant_id))


@router.put("/{order_id}")
async def update_order(
    order_id: int,
    data: OrderUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    return order_to_dict(service.update_order(order_id, data, ctx.tenant_id))


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    return service.delete_order(order_id, ctx.tenant_id)


@router.put("/{order_id}/technicians")
async def assign_technicians(
    order_id: int,
    data: AssignTechniciansRequest,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    return order_to_dict(service.assign_technicians(order_id, data, ctx.tenant_id))


@router.patch("/{order_id}/status")
async def update_status(
    order_id: int,
    data: StatusUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    return order_to_dict(service.update_status(order_id, data.status, ctx.tenant_id))


@router.post("/{order_id}/move")
async def move_card(
    order_id: int,
    data: MoveCardRequest,
    ctx: TenantContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service),
):
    """Kanban drag-and-drop"""
    return service.move_card(order_id, data.column, ctx.tenant_id)
