"""Tenant repository - Database operations for tenants, users and memberships"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Tenant, User, UserTenantRole


class TenantRepository:
    """Repository for tenant database operations"""

    @staticmethod
    def get_tenant(db: Session, tenant_id: int) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(Tenant.id).filter(Tenant.slug == slug).first() is not None

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_role(db: Session, tenant_id: int, user_id: int) -> Optional[UserTenantRole]:
        """Membership row regardless of whether it is active"""
        return (
            db.query(UserTenantRole)
            .filter(UserTenantRole.tenant_id == tenant_id, UserTenantRole.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_user_roles(db: Session, user_id: int) -> list[UserTenantRole]:
        """Active memberships of a user with their tenants"""
        return (
            db.query(UserTenantRole)
            .options(joinedload(UserTenantRole.tenant))
            .filter(UserTenantRole.user_id == user_id, UserTenantRole.is_active.is_(True))
            .order_by(UserTenantRole.assigned_at.asc())
            .all()
        )

    @staticmethod
    def get_members(db: Session, tenant_id: int) -> list[UserTenantRole]:
        return (
            db.query(UserTenantRole)
            .options(joinedload(UserTenantRole.user))
            .filter(UserTenantRole.tenant_id == tenant_id, UserTenantRole.is_active.is_(True))
            .order_by(UserTenantRole.assigned_at.asc())
            .all()
        )

    @staticmethod
    def count_owners(db: Session, tenant_id: int) -> int:
        return (
            db.query(UserTenantRole)
            .filter(
                UserTenantRole.tenant_id == tenant_id,
                UserTenantRole.role == "owner",
                UserTenantRole.is_active.is_(True),
            )
            .count()
        )

    @staticmethod
    def upsert_role(
        db: Session, tenant_id: int, user: User, role: str, assigned_by: Optional[int] = None
    ) -> UserTenantRole:
        """Grant a role, reactivating an earlier membership when one exists (no commit)"""
        membership = TenantRepository.get_role(db, tenant_id, user.id)
        if membership:
            membership.role = role
            membership.is_active = True
            membership.assigned_by = assigned_by
        else:
            membership = UserTenantRole(
                tenant_id=tenant_id, user_id=user.id, role=role, assigned_by=assigned_by
            )
            db.add(membership)
        if not user.active_tenant_id:
            user.active_tenant_id = tenant_id
        return membership
