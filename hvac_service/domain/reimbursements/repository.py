"""Reimbursement repository - category and request queries"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models_finance import ReimburseCategory, ReimburseRequest


class ReimbursementRepository:
    """Repository for reimbursement database operations"""

    @staticmethod
    def get_categories(db: Session, tenant_id: int, include_inactive: bool = False) -> list[ReimburseCategory]:
        query = db.query(ReimburseCategory).filter(ReimburseCategory.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(ReimburseCategory.is_active.is_(True))
        return query.order_by(ReimburseCategory.name.asc()).all()

    @staticmethod
    def get_category(db: Session, category_id: int, tenant_id: int) -> Optional[ReimburseCategory]:
        return (
            db.query(ReimburseCategory)
            .filter(ReimburseCategory.id == category_id, ReimburseCategory.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def find_category_by_name(db: Session, tenant_id: int, name: str) -> Optional[ReimburseCategory]:
        return (
            db.query(ReimburseCategory)
            .filter(
                ReimburseCategory.tenant_id == tenant_id,
                func.lower(ReimburseCategory.name) == name.lower(),
            )
            .first()
        )

    @staticmethod
    def get_requests(
        db: Session,
        tenant_id: int,
        status: Optional[str] = None,
        submitted_by: Optional[int] = None,
    ) -> list[ReimburseRequest]:
        query = (
            db.query(ReimburseRequest)
            .options(joinedload(ReimburseRequest.category), joinedload(ReimburseRequest.submitter))
            .filter(ReimburseRequest.tenant_id == tenant_id)
        )
        if status:
            query = query.filter(ReimburseRequest.status == status)
        if submitted_by is not None:
            query = query.filter(ReimburseRequest.submitted_by == submitted_by)
        return query.order_by(ReimburseRequest.submitted_at.desc(), ReimburseRequest.id.desc()).all()

    @staticmethod
    def get_request(db: Session, request_id: int, tenant_id: int) -> Optional[ReimburseRequest]:
        return (
            db.query(ReimburseRequest)
            .options(joinedload(ReimburseRequest.category), joinedload(ReimburseRequest.submitter))
            .filter(ReimburseRequest.id == request_id, ReimburseRequest.tenant_id == tenant_id)
            .first()
        )
