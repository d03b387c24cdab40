"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_current_user, get_tenant_context, require_manager
from ...database import get_db
from ...models import User
from .schemas import (
    AcUnitCreate,
    AcUnitUpdate,
    ClientCreate,
    ClientUpdate,
    PortalActivation,
    PropertyCreate,
    PropertyUpdate,
)
from .service import ClientService, client_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])
portal_router = APIRouter(prefix="/portal", tags=["Client Portal"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("")
async def get_clients(
    search: Optional[str] = Query(None),
    client_type: Optional[str] = Query(None, alias="clientType"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    """Get all clients of the active tenant"""
    return [client_to_dict(c) for c in service.get_clients(ctx.tenant_id, search, client_type)]


@router.get("/export")
async def export_clients_csv(
    search: Optional[str] = Query(None),
    client_type: Optional[str] = Query(None, alias="clientType"),
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    """Export clients as CSV with optional filters"""
    return service.export_clients_csv(ctx.tenant_id, search, client_type)


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return client_to_dict(service.get_client(client_id, ctx.tenant_id))


@router.post("")
async def create_client(
    data: ClientCreate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    """Create a new client"""
    return client_to_dict(service.create_client(data, ctx.tenant_id, ctx.user.id))


@router.put("/{client_id}")
async def update_client(
    client_id: int,
    data: ClientUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return client_to_dict(service.update_client(client_id, data, ctx.tenant_id, ctx.user.id))


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id, ctx.tenant_id)


@router.get("/{client_id}/history")
async def get_service_history(
    client_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    """Service orders of the client, newest first"""
    return service.get_service_history(client_id, ctx.tenant_id)


# ============================================================================
# PROPERTIES
# ============================================================================


@router.get("/{client_id}/properties")
async def list_properties(
    client_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.list_properties(client_id, ctx.tenant_id)


@router.post("/{client_id}/properties")
async def create_property(
    client_id: int,
    data: PropertyCreate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.create_property(client_id, data, ctx.tenant_id)


@router.put("/{client_id}/properties/{property_id}")
async def update_property(
    client_id: int,
    property_id: int,
    data: PropertyUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.update_property(client_id, property_id, data, ctx.tenant_id)


@router.delete("/{client_id}/properties/{property_id}")
async def delete_property(
    client_id: int,
    property_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_property(client_id, property_id, ctx.tenant_id)


# ============================================================================
# AC UNITS
# ============================================================================


@router.get("/{client_id}/ac-units")
async def list_ac_units(
    client_id: int,
    include_inactive: bool = Query(False, alias="includeInactive"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.list_ac_units(client_id, ctx.tenant_id, include_inactive)


@router.post("/{client_id}/ac-units")
async def create_ac_unit(
    client_id: int,
    data: AcUnitCreate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.create_ac_unit(client_id, data, ctx.tenant_id)


@router.put("/{client_id}/ac-units/{unit_id}")
async def update_ac_unit(
    client_id: int,
    unit_id: int,
    data: AcUnitUpdate,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.update_ac_unit(client_id, unit_id, data, ctx.tenant_id)


@router.delete("/{client_id}/ac-units/{unit_id}")
async def delete_ac_unit(
    client_id: int,
    unit_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_ac_unit(client_id, unit_id, ctx.tenant_id)


# ============================================================================
# PORTAL ACCESS AND AUDIT
# ============================================================================


@router.post("/{client_id}/portal/invitation")
async def create_portal_invitation(
    client_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    """Generate the link a client uses to open their portal account"""
    return service.create_portal_invitation(client_id, ctx.tenant_id, ctx.user.id)


@router.post("/{client_id}/portal/disable")
async def disable_portal(
    client_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.disable_portal(client_id, ctx.tenant_id, ctx.user.id)


@router.get("/{client_id}/audit-log")
async def get_audit_log(
    client_id: int,
    ctx: TenantContext = Depends(require_manager),
    service: ClientService = Depends(get_client_service),
):
    return service.get_audit_log(client_id, ctx.tenant_id)


# ============================================================================
# CLIENT PORTAL (signed-in client)
# ============================================================================


@portal_router.post("/activate")
async def activate_portal(
    data: PortalActivation,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    return service.activate_portal(data.token, current_user)


@portal_router.get("/me")
async def portal_profile(
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    return client_to_dict(service.get_portal_client(current_user))


@portal_router.get("/orders")
async def portal_orders(
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = service.get_portal_client(current_user)
    return service.get_service_history(client.id, client.tenant_id)


@portal_router.get("/properties")
async def portal_properties(
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = service.get_portal_client(current_user)
    return service.list_properties(client.id, client.tenant_id)


@portal_router.get("/ac-units")
async def portal_ac_units(
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    client = service.get_portal_client(current_user)
    return service.list_ac_units(client.id, client.tenant_id)
