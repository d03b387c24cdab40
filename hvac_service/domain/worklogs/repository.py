"""Work log repository - Database operations for technician work logs"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import ServiceOrder, WorkOrderAssignment
from ...models_worklog import TechnicianWorkLog


class WorkLogRepository:
    """Repository for work log database operations"""

    @staticmethod
    def get_order(db: Session, order_id: int, tenant_id: int) -> Optional[ServiceOrder]:
        return (
            db.query(ServiceOrder)
            .options(joinedload(ServiceOrder.client))
            .filter(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_assignment(db: Session, order_id: int, technician_id: int) -> Optional[WorkOrderAssignment]:
        return (
            db.query(WorkOrderAssignment)
            .filter(
                WorkOrderAssignment.service_order_id == order_id,
                WorkOrderAssignment.technician_id == technician_id,
            )
            .first()
        )

    @staticmethod
    def get_work_log(db: Session, order_id: int, technician_id: int) -> Optional[TechnicianWorkLog]:
        return (
            db.query(TechnicianWorkLog)
            .options(selectinload(TechnicianWorkLog.spareparts), joinedload(TechnicianWorkLog.technician))
            .filter(
                TechnicianWorkLog.service_order_id == order_id,
                TechnicianWorkLog.technician_id == technician_id,
            )
            .first()
        )

    @staticmethod
    def get_order_work_logs(db: Session, order_id: int) -> list[TechnicianWorkLog]:
        return (
            db.query(TechnicianWorkLog)
            .options(selectinload(TechnicianWorkLog.spareparts), joinedload(TechnicianWorkLog.technician))
            .filter(TechnicianWorkLog.service_order_id == order_id)
            .order_by(TechnicianWorkLog.id.asc())
            .all()
        )
