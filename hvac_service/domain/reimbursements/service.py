"""Reimbursement service - expense claims with receipts and their finance review"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models_finance import FINANCE_ROLES, REIMBURSE_STATUSES, ReimburseCategory, ReimburseRequest
from ...shared.validators import clean_notes
from ...storage import (
    ALLOWED_UPLOAD_TYPES,
    StorageError,
    build_key,
    generate_presigned_url,
    upload_bytes,
)
from ...utils.business_time import utcnow
from .repository import ReimbursementRepository
from .schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

RECEIPT_FILE_TYPES = ("photo", "document")
RECEIPT_URL_EXPIRATION = 60


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def category_to_dict(category: ReimburseCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "isActive": category.is_active,
        "created_at": _iso(category.created_at),
    }


def request_to_dict(req: ReimburseRequest) -> dict:
    return {
        "id": req.id,
        "public_id": req.public_id,
        "categoryId": req.category_id,
        "categoryName": req.category.name if req.category else None,
        "submittedBy": req.submitted_by,
        "submitterName": req.submitter.full_name if req.submitter else None,
        "amount": req.amount,
        "description": req.description,
        "receiptKey": req.receipt_key,
        "status": req.status,
        "submittedAt": _iso(req.submitted_at),
        "decidedBy": req.decided_by,
        "decidedAt": _iso(req.decided_at),
        "decisionNote": req.decision_note,
        "paidAt": _iso(req.paid_at),
    }


class ReimbursementService:
    """Service class for reimbursement operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReimbursementRepository()

    # Categories

    def list_categories(self, tenant_id: int, include_inactive: bool = False) -> list[dict]:
        return [category_to_dict(c) for c in self.repo.get_categories(self.db, tenant_id, include_inactive)]

    def create_category(self, tenant_id: int, data: CategoryCreate) -> dict:
        if self.repo.find_category_by_name(self.db, tenant_id, data.name):
            raise HTTPException(status_code=409, detail="Category already exists")
        category = ReimburseCategory(tenant_id=tenant_id, name=data.name)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"🏷️ Reimburse category '{category.name}' created in tenant {tenant_id}")
        return category_to_dict(category)

    def update_category(self, category_id: int, tenant_id: int, data: CategoryUpdate) -> dict:
        category = self.repo.get_category(self.db, category_id, tenant_id)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        if data.name and data.name.lower() != category.name.lower():
            if self.repo.find_category_by_name(self.db, tenant_id, data.name):
                raise HTTPException(status_code=409, detail="Category already exists")
            category.name = data.name
        if data.isActive is not None:
            category.is_active = data.isActive
        self.db.commit()
        self.db.refresh(category)
        return category_to_dict(category)

    # Requests

    def submit_request(
        self,
        ctx: TenantContext,
        category_id: int,
        amount: float,
        content: bytes,
        content_type: str,
        description: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> dict:
        """File a claim; the receipt is mandatory"""
        category = self.repo.get_category(self.db, category_id, ctx.tenant_id)
        if not category or not category.is_active:
            raise HTTPException(status_code=400, detail="Category is not available")
        if amount is None or amount <= 0:
            raise HTTPException(status_code=400, detail="Amount must be greater than zero")
        if ALLOWED_UPLOAD_TYPES.get(content_type) not in RECEIPT_FILE_TYPES:
            raise HTTPException(status_code=400, detail="Receipt must be an image or PDF")
        if not content:
            raise HTTPException(status_code=400, detail="Receipt file is empty")

        if file_name and "." in file_name:
            extension = file_name.rsplit(".", 1)[-1].lower()
        else:
            extension = content_type.split("/")[1]
        key = build_key(str(ctx.tenant_id), "reimburse", str(ctx.user.id), extension=extension)
        try:
            upload_bytes(key, content, content_type)
        except StorageError as e:
            raise HTTPException(status_code=500, detail="Receipt upload failed") from e

        req = ReimburseRequest(
            tenant_id=ctx.tenant_id,
            category_id=category.id,
            submitted_by=ctx.user.id,
            amount=round(float(amount), 2),
            description=clean_notes(description),
            receipt_key=key,
            receipt_content_type=content_type,
        )
        self.db.add(req)
        self.db.commit()
        logger.info(f"🧾 Reimburse request {req.id} ({req.amount}) submitted by user {ctx.user.id}")
        return request_to_dict(self.repo.get_request(self.db, req.id, ctx.tenant_id))

    def list_requests(
        self, tenant_id: int, status: Optional[str] = None, submitted_by: Optional[int] = None
    ) -> list[dict]:
        if status and status not in REIMBURSE_STATUSES:
            raise HTTPException(
                status_code=400, detail=f"status must be one of: {', '.join(REIMBURSE_STATUSES)}"
            )
        return [request_to_dict(r) for r in self.repo.get_requests(self.db, tenant_id, status, submitted_by)]

    def my_requests(self, ctx: TenantContext) -> dict:
        """The caller's claims, newest first, with a count per status"""
        requests = self.repo.get_requests(self.db, ctx.tenant_id, submitted_by=ctx.user.id)
        counts = {status: 0 for status in REIMBURSE_STATUSES}
        for req in requests:
            counts[req.status] = counts.get(req.status, 0) + 1
        return {
            "requests": [request_to_dict(r) for r in requests],
            "counts": {"total": len(requests), **counts},
        }

    def _get_visible_request(self, request_id: int, ctx: TenantContext) -> ReimburseRequest:
        req = self.repo.get_request(self.db, request_id, ctx.tenant_id)
        # Non-finance members only see their own claims
        if not req or (ctx.role not in FINANCE_ROLES and req.submitted_by != ctx.user.id):
            raise HTTPException(status_code=404, detail="Reimburse request not found")
        return req

    def get_request(self, request_id: int, ctx: TenantContext) -> dict:
        return request_to_dict(self._get_visible_request(request_id, ctx))

    def receipt_url(self, request_id: int, ctx: TenantContext) -> dict:
        req = self._get_visible_request(request_id, ctx)
        try:
            url = generate_presigned_url(req.receipt_key, RECEIPT_URL_EXPIRATION)
        except StorageError as e:
            raise HTTPException(status_code=500, detail="Could not create receipt link") from e
        return {"url": url, "expiresInSeconds": RECEIPT_URL_EXPIRATION}

    def _decide(self, request_id: int, ctx: TenantContext, status: str, note: Optional[str]) -> dict:
        req = self._get_visible_request(request_id, ctx)
        if req.status != "submitted":
            raise HTTPException(status_code=409, detail=f"Request is already {req.status}")

        req.status = status
        req.decided_by = ctx.user.id
        req.decided_at = utcnow()
        req.decision_note = clean_notes(note)
        self.db.commit()
        self.db.refresh(req)
        logger.info(f"💸 Reimburse request {req.id} {status} by user {ctx.user.id}")
        return request_to_dict(req)

    def approve_request(self, request_id: int, ctx: TenantContext, note: Optional[str] = None) -> dict:
        return self._decide(request_id, ctx, "approved", note)

    def reject_request(self, request_id: int, ctx: TenantContext, note: Optional[str] = None) -> dict:
        return self._decide(request_id, ctx, "rejected", note)

    def mark_paid(self, request_id: int, ctx: TenantContext) -> dict:
        req = self._get_visible_request(request_id, ctx)
        if req.status != "approved":
            raise HTTPException(status_code=409, detail="Only approved requests can be paid")

        req.status = "paid"
        req.paid_by = ctx.user.id
        req.paid_at = utcnow()
        self.db.commit()
        self.db.refresh(req)
        logger.info(f"💰 Reimburse request {req.id} paid ({req.amount})")
        return request_to_dict(req)
