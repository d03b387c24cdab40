"""Tenant service - Business logic for companies, membership and invitations"""

import logging
import re

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, INVITATION_MAX_AGE
from ...models import Tenant, User, UserTenantRole
from ...security_utils import INVITATION_SALT, generate_timed_token, verify_timed_token
from .repository import TenantRepository
from .schemas import InvitationCreate, MemberAdd, TenantCreate, TenantUpdate

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """Lowercase, runs of non-alphanumerics become a single dash"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "tenant"


def tenant_to_dict(tenant: Tenant, role: str = None) -> dict:
    data = {
        "id": tenant.id,
        "public_id": tenant.public_id,
        "slug": tenant.slug,
        "name": tenant.name,
        "logoUrl": tenant.logo_url,
        "contactEmail": tenant.contact_email,
        "contactPhone": tenant.contact_phone,
        "address": tenant.address,
        "city": tenant.city,
        "province": tenant.province,
        "postalCode": tenant.postal_code,
        "subscriptionStatus": tenant.subscription_status,
        "subscriptionPlan": tenant.subscription_plan,
        "timezone": tenant.timezone,
        "businessHours": tenant.business_hours,
        "isActive": tenant.is_active,
    }
    if role:
        data["role"] = role
    return data


def member_to_dict(membership: UserTenantRole) -> dict:
    return {
        "userId": membership.user_id,
        "email": membership.user.email if membership.user else None,
        "fullName": membership.user.full_name if membership.user else None,
        "role": membership.role,
        "isActive": membership.is_active,
        "assignedAt": membership.assigned_at.isoformat() if membership.assigned_at else None,
    }


class TenantService:
    """Service class for tenant operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TenantRepository()

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug = base
        suffix = 2
        while self.repo.slug_exists(self.db, slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def create_tenant(self, data: TenantCreate, user: User) -> dict:
        """Register a company; the creator becomes its owner and switches to it"""
        tenant = Tenant(
            slug=self._unique_slug(data.name),
            name=data.name,
            contact_email=data.contactEmail,
            contact_phone=data.contactPhone,
            address=data.address,
            city=data.city,
            province=data.province,
            postal_code=data.postalCode,
        )
        self.db.add(tenant)
        self.db.flush()

        self.db.add(UserTenantRole(tenant_id=tenant.id, user_id=user.id, role="owner"))
        user.active_tenant_id = tenant.id
        self.db.commit()
        self.db.refresh(tenant)

        logger.info(f"🏢 Tenant created: {tenant.slug} (ID: {tenant.id}) by user {user.id}")
        return tenant_to_dict(tenant, role="owner")

    def list_my_tenants(self, user: User) -> dict:
        memberships = self.repo.get_user_roles(self.db, user.id)
        return {
            "activeTenantId": user.active_tenant_id,
            "tenants": [tenant_to_dict(m.tenant, role=m.role) for m in memberships if m.tenant],
        }

    def switch_active_tenant(self, tenant_id: int, user: User) -> dict:
        membership = self.repo.get_role(self.db, tenant_id, user.id)
        if not membership or not membership.is_active:
            raise HTTPException(status_code=403, detail="You are not a member of this tenant")

        tenant = self.repo.get_tenant(self.db, tenant_id)
        if not tenant or not tenant.is_active:
            raise HTTPException(status_code=403, detail="Tenant is not active")

        user.active_tenant_id = tenant_id
        self.db.commit()
        logger.info(f"🔀 User {user.id} switched active tenant to {tenant_id}")
        return tenant_to_dict(tenant, role=membership.role)

    def update_tenant(self, tenant: Tenant, data: TenantUpdate) -> dict:
        field_map = {
            "name": "name",
            "contactEmail": "contact_email",
            "contactPhone": "contact_phone",
            "address": "address",
            "city": "city",
            "province": "province",
            "postalCode": "postal_code",
            "logoUrl": "logo_url",
            "timezone": "timezone",
            "businessHours": "business_hours",
        }
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(tenant, field_map[field], value)
        self.db.commit()
        self.db.refresh(tenant)
        logger.info(f"✅ Tenant {tenant.id} updated")
        return tenant_to_dict(tenant)

    # Members

    def list_members(self, tenant_id: int) -> list[dict]:
        return [member_to_dict(m) for m in self.repo.get_members(self.db, tenant_id)]

    def add_member(self, tenant_id: int, data: MemberAdd, actor: User) -> dict:
        """Attach a person by e-mail, creating the user row if they never signed in"""
        user = self.repo.get_user_by_email(self.db, data.email)
        if not user:
            user = User(email=data.email, full_name=data.fullName, phone=data.phone)
            self.db.add(user)
            self.db.flush()
            logger.info(f"🆕 Created placeholder user for {data.email}")

        existing = self.repo.get_role(self.db, tenant_id, user.id)
        if existing and existing.is_active:
            raise HTTPException(status_code=409, detail="User is already a member of this tenant")

        membership = self.repo.upsert_role(self.db, tenant_id, user, data.role, actor.id)
        self.db.commit()
        self.db.refresh(membership)
        logger.info(f"👥 Added {data.email} to tenant {tenant_id} as {data.role}")
        return member_to_dict(membership)

    def _get_active_membership(self, tenant_id: int, user_id: int) -> UserTenantRole:
        membership = self.repo.get_role(self.db, tenant_id, user_id)
        if not membership or not membership.is_active:
            raise HTTPException(status_code=404, detail="Member not found")
        return membership

    def _guard_last_owner(self, tenant_id: int, membership: UserTenantRole) -> None:
        if membership.role == "owner" and self.repo.count_owners(self.db, tenant_id) <= 1:
            raise HTTPException(status_code=409, detail="A tenant must keep at least one owner")

    def change_member_role(self, tenant_id: int, user_id: int, role: str) -> dict:
        membership = self._get_active_membership(tenant_id, user_id)
        if membership.role == role:
            return member_to_dict(membership)
        self._guard_last_owner(tenant_id, membership)

        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        logger.info(f"👥 User {user_id} role in tenant {tenant_id} changed to {role}")
        return member_to_dict(membership)

    def remove_member(self, tenant_id: int, user_id: int) -> dict:
        membership = self._get_active_membership(tenant_id, user_id)
        self._guard_last_owner(tenant_id, membership)

        membership.is_active = False
        user = membership.user
        if user and user.active_tenant_id == tenant_id:
            user.active_tenant_id = None
        self.db.commit()
        logger.info(f"👥 User {user_id} removed from tenant {tenant_id}")
        return {"message": "Member removed"}

    # Invitations

    def create_invitation(self, tenant: Tenant, data: InvitationCreate, actor: User) -> dict:
        token = generate_timed_token(
            {"tenant_id": tenant.id, "email": data.email, "role": data.role, "invited_by": actor.id},
            INVITATION_SALT,
        )
        logger.info(f"✉️ Invitation for {data.email} ({data.role}) to tenant {tenant.id}")
        return {
            "token": token,
            "inviteUrl": f"{FRONTEND_URL}/invite/accept?token={token}",
            "expiresInSeconds": INVITATION_MAX_AGE,
        }

    def accept_invitation(self, token: str, user: User) -> dict:
        payload = verify_timed_token(token, INVITATION_SALT, INVITATION_MAX_AGE)
        if not payload:
            raise HTTPException(status_code=400, detail="Invitation is invalid or has expired")

        if payload.get("email") and payload["email"] != (user.email or "").lower():
            raise HTTPException(
                status_code=403, detail="This invitation was issued for a different e-mail"
            )

        tenant = self.repo.get_tenant(self.db, payload["tenant_id"])
        if not tenant or not tenant.is_active:
            raise HTTPException(status_code=404, detail="Tenant not found")

        existing = self.repo.get_role(self.db, tenant.id, user.id)
        if existing and existing.is_active:
            raise HTTPException(status_code=409, detail="You are already a member of this tenant")

        self.repo.upsert_role(self.db, tenant.id, user, payload["role"], payload.get("invited_by"))
        user.active_tenant_id = tenant.id
        self.db.commit()
        logger.info(f"✅ User {user.id} joined tenant {tenant.id} as {payload['role']}")
        return tenant_to_dict(tenant, role=payload["role"])
