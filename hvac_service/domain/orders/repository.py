"""Service order repository - Database operations for orders and assignments"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Client, ServiceOrder, Technician, WorkOrderAssignment
from ...shared.numbering import next_document_number


def _with_relations(query):
    return query.options(
        joinedload(ServiceOrder.client),
        selectinload(ServiceOrder.assignments).joinedload(WorkOrderAssignment.technician),
    )


class OrderRepository:
    """Repository for service order database operations"""

    @staticmethod
    def next_order_number(db: Session, tenant_id: int, on: date) -> str:
        return next_document_number(
            db, ServiceOrder.order_number, ServiceOrder.tenant_id, tenant_id, "ORD", on
        )

    @staticmethod
    def get_order(db: Session, order_id: int, tenant_id: int) -> Optional[ServiceOrder]:
        return (
            _with_relations(db.query(ServiceOrder))
            .filter(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_orders(
        db: Session,
        tenant_id: int,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        technician_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        statuses: Optional[tuple] = None,
    ) -> list[ServiceOrder]:
        query = _with_relations(db.query(ServiceOrder)).filter(ServiceOrder.tenant_id == tenant_id)

        if status:
            query = query.filter(ServiceOrder.status == status)
        if statuses:
            query = query.filter(ServiceOrder.status.in_(statuses))
        if client_id:
            query = query.filter(ServiceOrder.client_id == client_id)
        if technician_id:
            query = query.filter(
                ServiceOrder.assignments.any(WorkOrderAssignment.technician_id == technician_id)
            )
        if date_from:
            query = query.filter(ServiceOrder.scheduled_date >= date_from)
        if date_to:
            query = query.filter(ServiceOrder.scheduled_date <= date_to)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.join(Client, Client.id == ServiceOrder.client_id).filter(
                or_(
                    ServiceOrder.order_number.ilike(pattern),
                    ServiceOrder.service_title.ilike(pattern),
                    Client.name.ilike(pattern),
                )
            )

        return query.order_by(
            ServiceOrder.scheduled_date.asc(), ServiceOrder.scheduled_time.asc(), ServiceOrder.id.asc()
        ).all()

    @staticmethod
    def get_client(db: Session, client_id: int, tenant_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.tenant_id == tenant_id).first()

    @staticmethod
    def get_technicians(db: Session, technician_ids: list[int], tenant_id: int) -> list[Technician]:
        return (
            db.query(Technician)
            .filter(
                Technician.id.in_(technician_ids),
                Technician.tenant_id == tenant_id,
                Technician.is_active.is_(True),
            )
            .all()
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
