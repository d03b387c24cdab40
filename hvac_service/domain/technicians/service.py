"""Technician service - Roster management, activation links and assigned work"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, INVITATION_MAX_AGE
from ...models import Technician, Tenant, User
from ...security_utils import ACTIVATION_SALT, generate_timed_token, verify_timed_token
from ...utils.business_time import utcnow
from ..orders.repository import OrderRepository
from ..tenants.repository import TenantRepository
from .repository import TechnicianRepository
from .schemas import TechnicianCreate, TechnicianUpdate

logger = logging.getLogger(__name__)

TECHNICIAN_FIELD_MAP = {
    "fullName": "full_name",
    "email": "email",
    "phone": "phone",
    "skills": "skills",
    "isActive": "is_active",
}


def technician_to_dict(technician: Technician) -> dict:
    return {
        "id": technician.id,
        "userId": technician.user_id,
        "fullName": technician.full_name,
        "email": technician.email,
        "phone": technician.phone,
        "skills": technician.skills or [],
        "isActive": technician.is_active,
        "isActivated": technician.user_id is not None,
        "activatedAt": technician.activated_at.isoformat() if technician.activated_at else None,
    }


class TechnicianService:
    """Service class for technician operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TechnicianRepository()

    def list_technicians(self, tenant_id: int, active: Optional[bool] = None) -> list[Technician]:
        return self.repo.get_technicians(self.db, tenant_id, active)

    def get_technician(self, technician_id: int, tenant_id: int) -> Technician:
        technician = self.repo.get_technician(self.db, technician_id, tenant_id)
        if not technician:
            raise HTTPException(status_code=404, detail="Technician not found")
        return technician

    def get_for_user(self, user: User, tenant_id: int) -> Technician:
        """The caller's own technician profile in the tenant"""
        technician = self.repo.get_by_user(self.db, user.id, tenant_id)
        if not technician or not technician.is_active:
            raise HTTPException(status_code=403, detail="No active technician profile for this user")
        return technician

    def create_technician(self, data: TechnicianCreate, tenant_id: int) -> Technician:
        technician = Technician(
            tenant_id=tenant_id,
            full_name=data.fullName,
            email=data.email,
            phone=data.phone,
            skills=data.skills,
        )
        self.db.add(technician)
        self.db.commit()
        self.db.refresh(technician)
        logger.info(f"👷 Technician {technician.full_name} (ID: {technician.id}) added to tenant {tenant_id}")
        return technician

    def update_technician(self, technician_id: int, data: TechnicianUpdate, tenant_id: int) -> Technician:
        technician = self.get_technician(technician_id, tenant_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(technician, TECHNICIAN_FIELD_MAP[field], value)
        self.db.commit()
        self.db.refresh(technician)
        return technician

    def deactivate_technician(self, technician_id: int, tenant_id: int) -> Technician:
        """Soft delete; the linked tenant role is deactivated as well"""
        technician = self.get_technician(technician_id, tenant_id)
        technician.is_active = False
        if technician.user_id:
            membership = TenantRepository.get_role(self.db, tenant_id, technician.user_id)
            if membership and membership.role == "technician":
                membership.is_active = False
        self.db.commit()
        self.db.refresh(technician)
        logger.info(f"⏸️ Technician {technician_id} deactivated")
        return technician

    def create_activation_token(self, technician_id: int, tenant_id: int) -> dict:
        technician = self.get_technician(technician_id, tenant_id)
        if not technician.is_active:
            raise HTTPException(status_code=409, detail="Technician is inactive")
        if technician.user_id:
            raise HTTPException(status_code=409, detail="Technician account is already activated")

        token = generate_timed_token(
            {"technician_id": technician.id, "tenant_id": tenant_id}, ACTIVATION_SALT
        )
        return {
            "token": token,
            "activationUrl": f"{FRONTEND_URL}/technician/activate?token={token}",
            "expiresInSeconds": INVITATION_MAX_AGE,
        }

    def activate(self, token: str, user: User) -> dict:
        """Link the signed-in user to the technician profile and grant the technician role"""
        payload = verify_timed_token(token, ACTIVATION_SALT, INVITATION_MAX_AGE)
        if not payload:
            raise HTTPException(status_code=400, detail="Activation link is invalid or has expired")

        technician = self.repo.get_technician(self.db, payload["technician_id"], payload["tenant_id"])
        if not technician or not technician.is_active:
            raise HTTPException(status_code=404, detail="Technician not found")
        if technician.user_id and technician.user_id != user.id:
            raise HTTPException(status_code=409, detail="Technician account is already activated")

        tenant = self.db.query(Tenant).filter(Tenant.id == technician.tenant_id).first()
        if not tenant or not tenant.is_active:
            raise HTTPException(status_code=403, detail="Tenant is not active")

        technician.user_id = user.id
        technician.activated_at = technician.activated_at or utcnow()
        existing = TenantRepository.get_role(self.db, tenant.id, user.id)
        if not existing or not existing.is_active:
            TenantRepository.upsert_role(self.db, tenant.id, user, "technician")
        user.active_tenant_id = tenant.id
        if not user.full_name:
            user.full_name = technician.full_name
        self.db.commit()
        self.db.refresh(technician)

        logger.info(f"✅ Technician {technician.id} activated by user {user.id}")
        return technician_to_dict(technician)

    def my_orders(self, user: User, tenant_id: int, status: Optional[str] = None):
        """Orders assigned to the calling technician"""
        technician = self.get_for_user(user, tenant_id)
        return OrderRepository.get_orders(self.db, tenant_id, status=status, technician_id=technician.id)
