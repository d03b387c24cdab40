"""Service order service - Scheduling, dispatch and the kanban board"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import KANBAN_COLUMNS, ServiceOrder, User, WorkOrderAssignment
from ...utils.business_time import local_date
from .repository import OrderRepository
from .schemas import AssignTechniciansRequest, OrderCreate, OrderUpdate

logger = logging.getLogger(__name__)

DELETABLE_STATUSES = ("listing", "cancelled")

ORDER_FIELD_MAP = {
    "clientId": "client_id",
    "orderType": "order_type",
    "priority": "priority",
    "serviceTitle": "service_title",
    "serviceDescription": "service_description",
    "locationAddress": "location_address",
    "locationLat": "location_lat",
    "locationLng": "location_lng",
    "requestedDate": "requested_date",
    "scheduledDate": "scheduled_date",
    "scheduledTime": "scheduled_time",
    "estimatedDuration": "estimated_duration",
    "notes": "notes",
    "isSurvey": "is_survey",
}


def assignment_to_dict(assignment: WorkOrderAssignment) -> dict:
    technician = assignment.technician
    return {
        "technicianId": assignment.technician_id,
        "fullName": technician.full_name if technician else None,
        "phone": technician.phone if technician else None,
        "roleInOrder": assignment.role_in_order,
        "assignmentStatus": assignment.assignment_status,
    }


def order_to_dict(order: ServiceOrder) -> dict:
    return {
        "id": order.id,
        "public_id": order.public_id,
        "orderNumber": order.order_number,
        "clientId": order.client_id,
        "clientName": order.client.name if order.client else None,
        "contractId": order.contract_id,
        "orderType": order.order_type,
        "priority": order.priority,
        "status": order.status,
        "serviceTitle": order.service_title,
        "serviceDescription": order.service_description,
        "locationAddress": order.location_address,
        "locationLat": order.location_lat,
        "locationLng": order.location_lng,
        "requestedDate": order.requested_date.isoformat() if order.requested_date else None,
        "scheduledDate": order.scheduled_date.isoformat() if order.scheduled_date else None,
        "scheduledTime": order.scheduled_time,
        "estimatedDuration": order.estimated_duration,
        "notes": order.notes,
        "source": order.source,
        "isSurvey": order.is_survey,
        "technicians": [assignment_to_dict(a) for a in order.assignments],
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


class OrderService:
    """Service class for service order operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()

    def get_order(self, order_id: int, tenant_id: int) -> ServiceOrder:
        """Get an order of the tenant, raises 404 if not found"""
        order = self.repo.get_order(self.db, order_id, tenant_id)
        if not order:
            raise HTTPException(status_code=404, detail="Service order not found")
        return order

    def _require_client(self, client_id: int, tenant_id: int) -> None:
        if not self.repo.get_client(self.db, client_id, tenant_id):
            raise HTTPException(status_code=404, detail="Client not found")

    def _resolve_technicians(self, technician_ids: list[int], tenant_id: int) -> list[int]:
        technicians = self.repo.get_technicians(self.db, technician_ids, tenant_id)
        found = {t.id for t in technicians}
        missing = [tid for tid in technician_ids if tid not in found]
        if missing:
            raise HTTPException(
                status_code=400, detail=f"Unknown or inactive technician(s): {missing}"
            )
        return technician_ids

    @staticmethod
    def _lead_for(technician_ids: list[int], lead_id: Optional[int]) -> int:
        if lead_id is None:
            return technician_ids[0]
        if lead_id not in technician_ids:
            raise HTTPException(status_code=400, detail="Lead technician must be one of the assigned technicians")
        return lead_id

    def create_order(self, data: OrderCreate, tenant_id: int, user: User) -> ServiceOrder:
        """
        Create a service order with the next ORD-YYYYMM-NNNN number.

        The order starts as `scheduled` when technicians and a scheduled date
        are both given, otherwise as `listing`.
        """
        self._require_client(data.clientId, tenant_id)
        technician_ids = list(dict.fromkeys(data.technicianIds))
        lead_id = None
        if technician_ids:
            self._resolve_technicians(technician_ids, tenant_id)
            lead_id = self._lead_for(technician_ids, data.leadTechnicianId)

        payload = data.model_dump(exclude={"technicianIds", "leadTechnicianId"})
        order = ServiceOrder(
            tenant_id=tenant_id,
            order_number=self.repo.next_order_number(self.db, tenant_id, local_date()),
            status="scheduled" if technician_ids and data.scheduledDate else "listing",
            source="manual",
            created_by=user.id,
            **{ORDER_FIELD_MAP[k]: v for k, v in payload.items()},
        )
        for tid in technician_ids:
            order.assignments.append(
                WorkOrderAssignment(
                    technician_id=tid, role_in_order="lead" if tid == lead_id else "helper"
                )
            )

        self.db.add(order)
        self.db.commit()
        logger.info(
            f"✅ Service order {order.order_number} created (status: {order.status}) in tenant {tenant_id}"
        )
        return self.get_order(order.id, tenant_id)

    def list_orders(self, tenant_id: int, **filters) -> list[ServiceOrder]:
        date_from, date_to = filters.get("date_from"), filters.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise HTTPException(status_code=400, detail="date_from must be on or before date_to")
        return self.repo.get_orders(self.db, tenant_id, **filters)

    def update_order(self, order_id: int, data: OrderUpdate, tenant_id: int) -> ServiceOrder:
        order = self.get_order(order_id, tenant_id)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("clientId"):
            self._require_client(updates["clientId"], tenant_id)

        for field, value in updates.items():
            # Nullable scheduling fields may be cleared explicitly
            if value is not None or field in ("scheduledDate", "scheduledTime", "notes"):
                setattr(order, ORDER_FIELD_MAP[field], value)

        self.db.commit()
        logger.info(f"✅ Service order {order.order_number} updated")
        return self.get_order(order_id, tenant_id)

    def delete_order(self, order_id: int, tenant_id: int) -> dict:
        order = self.get_order(order_id, tenant_id)
        if order.status not in DELETABLE_STATUSES:
            raise HTTPException(
                status_code=409,
                detail=f"Only orders in {' or '.join(DELETABLE_STATUSES)} can be deleted",
            )
        self.db.delete(order)
        self.db.commit()
        logger.info(f"🗑️ Service order {order.order_number} deleted")
        return {"message": "Service order deleted successfully"}

    def assign_technicians(
        self, order_id: int, data: AssignTechniciansRequest, tenant_id: int
    ) -> ServiceOrder:
        """Replace the order's technicians; a dated listing order becomes scheduled"""
        order = self.get_order(order_id, tenant_id)
        technician_ids = self._resolve_technicians(data.technicianIds, tenant_id)
        lead_id = self._lead_for(technician_ids, data.leadTechnicianId)

        current = {a.technician_id: a for a in order.assignments}
        for tid, assignment in current.items():
            if tid not in technician_ids:
                order.assignments.remove(assignment)
        for tid in technician_ids:
            role = "lead" if tid == lead_id else "helper"
            if tid in current:
                current[tid].role_in_order = role
            else:
                order.assignments.append(WorkOrderAssignment(technician_id=tid, role_in_order=role))

        if order.status == "listing" and order.scheduled_date:
            order.status = "scheduled"

        self.db.commit()
        logger.info(f"👷 Order {order.order_number} assigned to technicians {technician_ids}")
        return self.get_order(order_id, tenant_id)

    def update_status(self, order_id: int, status: str, tenant_id: int) -> ServiceOrder:
        """
        Direct status write. Any known status is accepted, except that a
        cancelled order can only be reopened to `listing`.
        """
        order = self.get_order(order_id, tenant_id)
        if order.status == status:
            return order
        if order.status == "cancelled" and status != "listing":
            raise HTTPException(
                status_code=409, detail="Cancelled orders can only be reopened to listing"
            )

        previous = order.status
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"🔄 Order {order.order_number}: {previous} → {status}")
        return order

    # Kanban

    def kanban_board(self, tenant_id: int) -> list[dict]:
        orders = self.repo.get_orders(
            self.db, tenant_id, statuses=tuple(c for c, _ in KANBAN_COLUMNS)
        )
        columns = OrderedDict(
            (column, {"id": column, "title": title, "orders": []}) for column, title in KANBAN_COLUMNS
        )
        for order in orders:
            columns[order.status]["orders"].append(order_to_dict(order))
        for column in columns.values():
            column["count"] = len(column["orders"])
        return list(columns.values())

    def move_card(self, order_id: int, column: str, tenant_id: int) -> dict:
        """Dropping a card on a column is a status reassignment"""
        order = self.get_order(order_id, tenant_id)
        if order.status == column:
            return {"changed": False, "order": order_to_dict(order)}
        order = self.update_status(order_id, column, tenant_id)
        return {"changed": True, "order": order_to_dict(order)}

    # Calendar

    def schedule(self, tenant_id: int, date_from: date, date_to: date) -> dict:
        """Dated, non-cancelled orders in range grouped by day"""
        if date_from > date_to:
            raise HTTPException(status_code=400, detail="date_from must be on or before date_to")

        orders = self.repo.get_orders(self.db, tenant_id, date_from=date_from, date_to=date_to)
        days: dict[str, list] = {}
        for order in orders:
            if order.status == "cancelled" or not order.scheduled_date:
                continue
            days.setdefault(order.scheduled_date.isoformat(), []).append(order_to_dict(order))
        return {"from": date_from.isoformat(), "to": date_to.isoformat(), "days": days}
