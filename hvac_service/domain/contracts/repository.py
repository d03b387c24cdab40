"""Contract repository - Database operations for maintenance contracts and requests"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import (
    ContractLocation,
    ContractRequest,
    ContractUnit,
    MaintenanceContract,
    ServiceOrder,
)


class ContractRepository:
    """Repository for contract database operations"""

    @staticmethod
    def get_contracts(
        db: Session,
        tenant_id: int,
        active: Optional[bool] = None,
        client_id: Optional[int] = None,
    ) -> list[MaintenanceContract]:
        query = (
            db.query(MaintenanceContract)
            .options(joinedload(MaintenanceContract.client))
            .filter(MaintenanceContract.tenant_id == tenant_id)
        )
        if active is not None:
            query = query.filter(MaintenanceContract.is_active.is_(active))
        if client_id:
            query = query.filter(MaintenanceContract.client_id == client_id)
        return query.order_by(MaintenanceContract.created_at.desc(), MaintenanceContract.id.desc()).all()

    @staticmethod
    def get_contract(db: Session, contract_id: int, tenant_id: int) -> Optional[MaintenanceContract]:
        return (
            db.query(MaintenanceContract)
            .options(
                joinedload(MaintenanceContract.client),
                selectinload(MaintenanceContract.locations),
                selectinload(MaintenanceContract.units),
            )
            .filter(MaintenanceContract.id == contract_id, MaintenanceContract.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def contract_number_exists(
        db: Session, tenant_id: int, contract_number: str, exclude_id: Optional[int] = None
    ) -> bool:
        query = db.query(MaintenanceContract.id).filter(
            MaintenanceContract.tenant_id == tenant_id,
            MaintenanceContract.contract_number == contract_number,
        )
        if exclude_id:
            query = query.filter(MaintenanceContract.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def get_due_units(
        db: Session, until: date, tenant_id: Optional[int] = None
    ) -> list[ContractUnit]:
        """Active units of active contracts due on or before `until` inside the contract period"""
        query = (
            db.query(ContractUnit)
            .join(MaintenanceContract, MaintenanceContract.id == ContractUnit.contract_id)
            .options(
                joinedload(ContractUnit.contract).joinedload(MaintenanceContract.client),
                joinedload(ContractUnit.location),
            )
            .filter(
                MaintenanceContract.is_active.is_(True),
                ContractUnit.is_active.is_(True),
                ContractUnit.next_service_date.isnot(None),
                ContractUnit.next_service_date <= until,
                ContractUnit.next_service_date >= MaintenanceContract.start_date,
                ContractUnit.next_service_date <= MaintenanceContract.end_date,
            )
        )
        if tenant_id is not None:
            query = query.filter(MaintenanceContract.tenant_id == tenant_id)
        return query.order_by(ContractUnit.next_service_date.asc(), ContractUnit.id.asc()).all()

    @staticmethod
    def get_upcoming_units(db: Session, tenant_id: int, until: date) -> list[ContractUnit]:
        return (
            db.query(ContractUnit)
            .join(MaintenanceContract, MaintenanceContract.id == ContractUnit.contract_id)
            .options(
                joinedload(ContractUnit.contract).joinedload(MaintenanceContract.client),
                joinedload(ContractUnit.location),
            )
            .filter(
                MaintenanceContract.tenant_id == tenant_id,
                MaintenanceContract.is_active.is_(True),
                ContractUnit.is_active.is_(True),
                ContractUnit.next_service_date.isnot(None),
                ContractUnit.next_service_date <= until,
            )
            .order_by(ContractUnit.next_service_date.asc(), ContractUnit.id.asc())
            .all()
        )

    @staticmethod
    def find_generated_order(
        db: Session, contract_id: int, location_id: Optional[int], on: date
    ) -> Optional[ServiceOrder]:
        return (
            db.query(ServiceOrder)
            .filter(
                ServiceOrder.contract_id == contract_id,
                ServiceOrder.contract_location_id == location_id,
                ServiceOrder.scheduled_date == on,
                ServiceOrder.source == "contract",
            )
            .first()
        )

    @staticmethod
    def get_expired(db: Session, today: date, tenant_id: Optional[int] = None) -> list[MaintenanceContract]:
        query = db.query(MaintenanceContract).filter(
            MaintenanceContract.is_active.is_(True), MaintenanceContract.end_date < today
        )
        if tenant_id is not None:
            query = query.filter(MaintenanceContract.tenant_id == tenant_id)
        return query.all()

    @staticmethod
    def count_orders(db: Session, contract_id: int) -> int:
        return db.query(ServiceOrder).filter(ServiceOrder.contract_id == contract_id).count()

    @staticmethod
    def get_location(db: Session, location_id: int) -> Optional[ContractLocation]:
        return db.query(ContractLocation).filter(ContractLocation.id == location_id).first()

    # Requests

    @staticmethod
    def get_requests(db: Session, tenant_id: int, status: Optional[str] = None) -> list[ContractRequest]:
        query = db.query(ContractRequest).filter(ContractRequest.tenant_id == tenant_id)
        if status:
            query = query.filter(ContractRequest.status == status)
        return query.order_by(ContractRequest.created_at.desc(), ContractRequest.id.desc()).all()

    @staticmethod
    def get_request(db: Session, request_id: int, tenant_id: int) -> Optional[ContractRequest]:
        return (
            db.query(ContractRequest)
            .filter(ContractRequest.id == request_id, ContractRequest.tenant_id == tenant_id)
            .first()
        )
