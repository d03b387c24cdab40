"""Document service - SPK reports, documentation uploads and BAST handover certificates"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models import POST_COMPLETION_STATUSES, READ_ONLY_FIELD_ROLES, ServiceOrder
from ...models_documents import Bast, Documentation, SpkReport
from ...services.report_pdf import BastPDFGenerator
from ...shared.numbering import next_document_number
from ...storage import (
    ALLOWED_UPLOAD_TYPES,
    StorageError,
    build_key,
    delete_object,
    generate_presigned_url,
    store_signature,
    upload_bytes,
)
from ...utils.business_time import local_date, utcnow
from .repository import DocumentRepository
from .schemas import DOCUMENTATION_CATEGORIES, BastCreate, BastApprove, SpkCreate, SpkUpdate

logger = logging.getLogger(__name__)

OPEN_BAST_STATUSES = ("pending", "approved")

SPK_FIELD_MAP = {
    "startTime": "start_time",
    "endTime": "end_time",
    "workDescription": "work_description",
    "findings": "findings",
    "actionsTaken": "actions_taken",
    "materialsUsed": "materials_used",
    "conditionBefore": "condition_before",
    "conditionAfter": "condition_after",
    "recommendations": "recommendations",
}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def spk_to_dict(spk: SpkReport) -> dict:
    return {
        "id": spk.id,
        "orderId": spk.service_order_id,
        "startTime": _iso(spk.start_time),
        "endTime": _iso(spk.end_time),
        "workDescription": spk.work_description,
        "findings": spk.findings,
        "actionsTaken": spk.actions_taken,
        "materialsUsed": spk.materials_used or [],
        "conditionBefore": spk.condition_before,
        "conditionAfter": spk.condition_after,
        "recommendations": spk.recommendations,
        "completedBy": spk.completed_by,
        "completedAt": _iso(spk.completed_at),
    }


def documentation_to_dict(doc: Documentation, url: Optional[str] = None) -> dict:
    return {
        "id": doc.id,
        "orderId": doc.service_order_id,
        "spkReportId": doc.spk_report_id,
        "fileType": doc.file_type,
        "fileKey": doc.file_key,
        "fileUrl": url,
        "fileName": doc.file_name,
        "description": doc.description,
        "category": doc.category,
        "uploadedBy": doc.uploaded_by,
        "uploadedAt": _iso(doc.uploaded_at),
    }


def bast_to_dict(bast: Bast) -> dict:
    return {
        "id": bast.id,
        "orderId": bast.service_order_id,
        "spkReportId": bast.spk_report_id,
        "bastNumber": bast.bast_number,
        "clientName": bast.client_name,
        "technicianName": bast.technician_name,
        "clientSignatureKey": bast.client_signature_key,
        "technicianSignatureKey": bast.technician_signature_key,
        "clientApprovedAt": _iso(bast.client_approved_at),
        "status": bast.status,
        "rejectionReason": bast.rejection_reason,
        "created_at": _iso(bast.created_at),
    }


def lead_technician_name(order: ServiceOrder) -> str:
    assignments = sorted(order.assignments, key=lambda a: (a.role_in_order != "lead", a.id))
    for assignment in assignments:
        if assignment.technician:
            return assignment.technician.full_name
    return ""


class DocumentService:
    """Service class for order handover documents"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository()

    def _get_order(self, order_id: int, tenant_id: int) -> ServiceOrder:
        order = self.repo.get_order(self.db, order_id, tenant_id)
        if not order:
            raise HTTPException(status_code=404, detail="Service order not found")
        return order

    @staticmethod
    def _check_writer(ctx: TenantContext):
        if ctx.role in READ_ONLY_FIELD_ROLES:
            raise HTTPException(status_code=403, detail="Your role has read-only access to documents")

    # ============================================================================
    # SPK
    # ============================================================================

    def get_spk(self, order_id: int, tenant_id: int) -> SpkReport:
        self._get_order(order_id, tenant_id)
        spk = self.repo.get_spk(self.db, order_id, tenant_id)
        if not spk:
            raise HTTPException(status_code=404, detail="SPK report not found")
        return spk

    def create_spk(self, order_id: int, data: SpkCreate, ctx: TenantContext) -> SpkReport:
        self._check_writer(ctx)
        self._get_order(order_id, ctx.tenant_id)
        if self.repo.get_spk(self.db, order_id, ctx.tenant_id):
            raise HTTPException(status_code=409, detail="SPK report already exists for this order")

        spk = SpkReport(tenant_id=ctx.tenant_id, service_order_id=order_id)
        for key, column in SPK_FIELD_MAP.items():
            setattr(spk, column, getattr(data, key))
        if data.materialsUsed is not None:
            spk.materials_used = [m.model_dump() for m in data.materialsUsed]

        self.db.add(spk)
        self.db.commit()
        self.db.refresh(spk)
        logger.info(f"✅ SPK report {spk.id} created for order {order_id}")
        return spk

    def update_spk(self, order_id: int, data: SpkUpdate, ctx: TenantContext) -> SpkReport:
        """Only the fields sent in the request are changed"""
        self._check_writer(ctx)
        spk = self.get_spk(order_id, ctx.tenant_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(spk, SPK_FIELD_MAP[key], value)

        if spk.start_time and spk.end_time and spk.end_time < spk.start_time:
            self.db.rollback()
            raise HTTPException(status_code=400, detail="endTime must be after startTime")

        self.db.commit()
        self.db.refresh(spk)
        return spk

    def complete_spk(self, order_id: int, ctx: TenantContext) -> SpkReport:
        self._check_writer(ctx)
        spk = self.get_spk(order_id, ctx.tenant_id)
        spk.completed_at = utcnow()
        spk.completed_by = ctx.user.id
        if not spk.end_time:
            spk.end_time = spk.completed_at
        self.db.commit()
        self.db.refresh(spk)
        logger.info(f"✅ SPK report {spk.id} completed by user {ctx.user.id}")
        return spk

    # ============================================================================
    # DOCUMENTATION
    # ============================================================================

    def list_documentation(self, order_id: int, tenant_id: int) -> list[dict]:
        self._get_order(order_id, tenant_id)
        items = []
        for doc in self.repo.get_documentation(self.db, order_id, tenant_id):
            try:
                url = generate_presigned_url(doc.file_key)
            except StorageError:
                logger.warning(f"⚠️ Could not sign URL for documentation {doc.id}")
                url = None
            items.append(documentation_to_dict(doc, url))
        return items

    def upload_documentation(
        self,
        order_id: int,
        ctx: TenantContext,
        content: bytes,
        content_type: str,
        file_name: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> dict:
        self._check_writer(ctx)
        self._get_order(order_id, ctx.tenant_id)

        file_type = ALLOWED_UPLOAD_TYPES.get(content_type)
        if not file_type:
            raise HTTPException(status_code=400, detail="Unsupported file type")
        if category and category not in DOCUMENTATION_CATEGORIES:
            raise HTTPException(
                status_code=400,
                detail=f"category must be one of: {', '.join(DOCUMENTATION_CATEGORIES)}",
            )
        if not content:
            raise HTTPException(status_code=400, detail="File is empty")

        if file_name and "." in file_name:
            extension = file_name.rsplit(".", 1)[-1].lower()
        else:
            extension = content_type.split("/")[1]
        key = build_key(str(ctx.tenant_id), "orders", str(order_id), "documentation", extension=extension)
        try:
            upload_bytes(key, content, content_type)
        except StorageError as e:
            raise HTTPException(status_code=500, detail="Upload failed") from e

        spk = self.repo.get_spk(self.db, order_id, ctx.tenant_id)
        doc = Documentation(
            tenant_id=ctx.tenant_id,
            service_order_id=order_id,
            spk_report_id=spk.id if spk else None,
            file_type=file_type,
            file_key=key,
            file_name=file_name,
            description=description,
            category=category,
            uploaded_by=ctx.user.id,
        )
        self.db.add(doc)
        self.db.commit()
        self.db.refresh(doc)
        logger.info(f"📤 Documentation {doc.id} ({file_type}) uploaded for order {order_id}")
        return documentation_to_dict(doc)

    def delete_documentation(self, doc_id: int, ctx: TenantContext) -> dict:
        """Storage object first; the row stays when storage refuses"""
        self._check_writer(ctx)
        doc = self.repo.get_documentation_item(self.db, doc_id, ctx.tenant_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Documentation not found")

        try:
            delete_object(doc.file_key)
        except StorageError as e:
            raise HTTPException(status_code=500, detail="Failed to delete file") from e

        self.db.delete(doc)
        self.db.commit()
        return {"success": True, "message": "Documentation deleted"}

    # ============================================================================
    # BAST
    # ============================================================================

    def get_order_bast(self, order_id: int, tenant_id: int) -> Bast:
        """Latest BAST of the order"""
        self._get_order(order_id, tenant_id)
        basts = self.repo.get_order_basts(self.db, order_id, tenant_id)
        if not basts:
            raise HTTPException(status_code=404, detail="BAST not found")
        return basts[0]

    def get_bast(self, bast_id: int, tenant_id: int) -> Bast:
        bast = self.repo.get_bast(self.db, bast_id, tenant_id)
        if not bast:
            raise HTTPException(status_code=404, detail="BAST not found")
        return bast

    def create_bast(self, order_id: int, data: BastCreate, ctx: TenantContext) -> Bast:
        self._check_writer(ctx)
        order = self._get_order(order_id, ctx.tenant_id)
        if order.status not in POST_COMPLETION_STATUSES:
            raise HTTPException(status_code=409, detail="BAST can only be created once the work is completed")
        if any(b.status in OPEN_BAST_STATUSES for b in self.repo.get_order_basts(self.db, order_id, ctx.tenant_id)):
            raise HTTPException(status_code=409, detail="This order already has an open BAST")

        client_name = (data.clientName or "").strip() or (order.client.name if order.client else "")
        technician_name = (data.technicianName or "").strip() or lead_technician_name(order)
        if not client_name or not technician_name:
            raise HTTPException(status_code=400, detail="clientName and technicianName are required")

        spk = self.repo.get_spk(self.db, order_id, ctx.tenant_id)
        bast = Bast(
            tenant_id=ctx.tenant_id,
            service_order_id=order_id,
            spk_report_id=spk.id if spk else None,
            bast_number=next_document_number(
                self.db, Bast.bast_number, Bast.tenant_id, ctx.tenant_id, "BAST", local_date()
            ),
            client_name=client_name,
            technician_name=technician_name,
            status="pending",
        )
        self.db.add(bast)
        self.db.commit()
        self.db.refresh(bast)
        logger.info(f"✅ BAST {bast.bast_number} created for order {order.order_number}")
        return bast

    def approve_bast(self, bast_id: int, data: BastApprove, ctx: TenantContext) -> Bast:
        """Client sign-off: stores both signatures and moves the order to approved"""
        self._check_writer(ctx)
        bast = self.get_bast(bast_id, ctx.tenant_id)
        if bast.status != "pending":
            raise HTTPException(status_code=409, detail=f"BAST is already {bast.status}")
        if not data.clientSignature or not data.technicianSignature:
            raise HTTPException(status_code=400, detail="Client and technician signatures are required")

        key_parts = (str(ctx.tenant_id), "bast", str(bast.id))
        try:
            client_key = store_signature(data.clientSignature, *key_parts, "client")
            technician_key = store_signature(data.technicianSignature, *key_parts, "technician")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except StorageError as e:
            raise HTTPException(status_code=500, detail="Failed to store signatures") from e

        bast.client_signature_key = client_key
        bast.technician_signature_key = technician_key
        bast.client_approved_at = utcnow()
        bast.status = "approved"
        bast.order.status = "approved"

        self.db.commit()
        self.db.refresh(bast)
        logger.info(f"✅ BAST {bast.bast_number} approved; order {bast.order.order_number} approved")
        return bast

    def reject_bast(self, bast_id: int, reason: Optional[str], ctx: TenantContext) -> Bast:
        self._check_writer(ctx)
        bast = self.get_bast(bast_id, ctx.tenant_id)
        if not (reason or "").strip():
            raise HTTPException(status_code=400, detail="Rejection reason is required")
        if bast.status != "pending":
            raise HTTPException(status_code=409, detail=f"BAST is already {bast.status}")

        bast.status = "rejected"
        bast.rejection_reason = reason.strip()
        bast.order.status = "complaint"

        self.db.commit()
        self.db.refresh(bast)
        logger.warning(f"⚠️ BAST {bast.bast_number} rejected: {bast.rejection_reason}")
        return bast

    def bast_pdf(self, bast_id: int, tenant_id: int) -> tuple[bytes, str]:
        bast = self.get_bast(bast_id, tenant_id)
        order = self._get_order(bast.service_order_id, tenant_id)
        spk = bast.spk_report or self.repo.get_spk(self.db, order.id, tenant_id)

        data = {
            "bast_number": bast.bast_number,
            "order_number": order.order_number,
            "service_title": order.service_title,
            "client_name": bast.client_name,
            "location": order.location_address,
            "technician_name": bast.technician_name,
            "completed_on": (spk.completed_at if spk else None) or order.scheduled_date,
            "status": bast.status,
            "technician_signature": bast.technician_signature_key,
            "client_signature": bast.client_signature_key,
            "approved_at": bast.client_approved_at,
        }
        if spk:
            data.update(
                {
                    "work_description": spk.work_description,
                    "findings": spk.findings,
                    "actions_taken": spk.actions_taken,
                    "recommendations": spk.recommendations,
                    "materials": spk.materials_used or [],
                }
            )
        return BastPDFGenerator(data).generate(), f"{bast.bast_number}.pdf"
