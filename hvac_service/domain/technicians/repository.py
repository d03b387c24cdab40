"""Technician repository - Database operations for technicians"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Technician


class TechnicianRepository:
    """Repository for technician database operations"""

    @staticmethod
    def get_technicians(db: Session, tenant_id: int, active: Optional[bool] = None) -> list[Technician]:
        query = db.query(Technician).filter(Technician.tenant_id == tenant_id)
        if active is not None:
            query = query.filter(Technician.is_active.is_(active))
        return query.order_by(Technician.full_name.asc()).all()

    @staticmethod
    def get_technician(db: Session, technician_id: int, tenant_id: int) -> Optional[Technician]:
        return (
            db.query(Technician)
            .filter(Technician.id == technician_id, Technician.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_by_user(db: Session, user_id: int, tenant_id: int) -> Optional[Technician]:
        """Technician profile linked to a signed-in user"""
        return (
            db.query(Technician)
            .filter(Technician.user_id == user_id, Technician.tenant_id == tenant_id)
            .first()
        )
