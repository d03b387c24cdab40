"""Tenant router - FastAPI endpoints for companies, team members and invitations"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_current_user, get_tenant_context, require_manager, require_roles
from ...database import get_db
from ...models import ADMIN_ROLES, User
from .schemas import (
    InvitationAccept,
    InvitationCreate,
    MemberAdd,
    MemberRoleUpdate,
    SwitchTenantRequest,
    TenantCreate,
    TenantUpdate,
)
from .service import TenantService, tenant_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])

require_admin = require_roles(*ADMIN_ROLES)


def get_tenant_service(db: Session = Depends(get_db)) -> TenantService:
    """Dependency injection for TenantService"""
    return TenantService(db)


@router.post("")
async def create_tenant(
    data: TenantCreate,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    """Register a new company with the caller as owner"""
    return service.create_tenant(data, current_user)


@router.get("/mine")
async def list_my_tenants(
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    return service.list_my_tenants(current_user)


@router.post("/switch")
async def switch_active_tenant(
    data: SwitchTenantRequest,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    return service.switch_active_tenant(data.tenantId, current_user)


@router.post("/invitations/accept")
async def accept_invitation(
    data: InvitationAccept,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    """Join the inviting tenant with the role carried by the token"""
    return service.accept_invitation(data.token, current_user)


@router.get("/current")
async def get_current_tenant(ctx: TenantContext = Depends(get_tenant_context)):
    return tenant_to_dict(ctx.tenant, role=ctx.role)


@router.patch("/current")
async def update_current_tenant(
    data: TenantUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: TenantService = Depends(get_tenant_service),
):
    return service.update_tenant(ctx.tenant, data)


@router.get("/current/members")
async def list_members(
    ctx: TenantContext = Depends(require_manager),
    service: TenantService = Depends(get_tenant_service),
):
    return service.list_members(ctx.tenant_id)


@router.post("/current/members")
async def add_member(
    data: MemberAdd,
    ctx: TenantContext = Depends(require_admin),
    service: TenantService = Depends(get_tenant_service),
):
    return service.add_member(ctx.tenant_id, data, ctx.user)


@router.patch("/current/members/{user_id}")
async def change_member_role(
    user_id: int,
    data: MemberRoleUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: TenantService = Depends(get_tenant_service),
):
    return service.change_member_role(ctx.tenant_id, user_id, data.role)


@router.delete("/current/members/{user_id}")
async def remove_member(
    user_id: int,
    ctx: TenantContext = Depends(require_admin),
    service: TenantService = Depends(get_tenant_service),
):
    return service.remove_member(ctx.tenant_id, user_id)


@router.post("/current/invitations")
async def create_invitation(
    data: InvitationCreate,
    ctx: TenantContext = Depends(require_admin),
    service: TenantService = Depends(get_tenant_service),
):
    return service.create_invitation(ctx.tenant, data, ctx.user)
