"""Document repository - SPK, documentation and BAST queries"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import ServiceOrder, WorkOrderAssignment
from ...models_documents import Bast, Documentation, SpkReport


class DocumentRepository:
    """Repository for handover document database operations"""

    @staticmethod
    def get_order(db: Session, order_id: int, tenant_id: int) -> Optional[ServiceOrder]:
        return (
            db.query(ServiceOrder)
            .options(
                joinedload(ServiceOrder.client),
                selectinload(ServiceOrder.assignments).joinedload(WorkOrderAssignment.technician),
            )
            .filter(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_spk(db: Session, order_id: int, tenant_id: int) -> Optional[SpkReport]:
        return (
            db.query(SpkReport)
            .filter(SpkReport.service_order_id == order_id, SpkReport.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_documentation(db: Session, order_id: int, tenant_id: int) -> list[Documentation]:
        return (
            db.query(Documentation)
            .filter(Documentation.service_order_id == order_id, Documentation.tenant_id == tenant_id)
            .order_by(Documentation.uploaded_at.desc(), Documentation.id.desc())
            .all()
        )

    @staticmethod
    def get_documentation_item(db: Session, doc_id: int, tenant_id: int) -> Optional[Documentation]:
        return (
            db.query(Documentation)
            .filter(Documentation.id == doc_id, Documentation.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_bast(db: Session, bast_id: int, tenant_id: int) -> Optional[Bast]:
        return (
            db.query(Bast)
            .options(joinedload(Bast.order), joinedload(Bast.spk_report))
            .filter(Bast.id == bast_id, Bast.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_order_basts(db: Session, order_id: int, tenant_id: int) -> list[Bast]:
        """Newest first"""
        return (
            db.query(Bast)
            .filter(Bast.service_order_id == order_id, Bast.tenant_id == tenant_id)
            .order_by(Bast.id.desc())
            .all()
        )
