"""Contract service - Maintenance contract lifecycle, scheduling and public requests"""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import MAINTENANCE_HORIZON_DAYS
from ...models import (
    Client,
    ContractLocation,
    ContractRequest,
    ContractUnit,
    MaintenanceContract,
    ServiceOrder,
    Tenant,
    User,
)
from ...shared.validators import clean_notes, validate_email, validate_id_phone
from ...utils.business_time import local_date, utcnow
from ..orders.repository import OrderRepository
from .calculations import (
    advance_service_date,
    compute_totals,
    contract_frequency,
    contract_frequency_months,
    frequency_months_for,
)
from .repository import ContractRepository
from .schemas import (
    ContractRequestApprove,
    ContractRequestCreate,
    ContractUpdate,
    ContractWizardPayload,
)

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = ("listing", "scheduled")

CONTRACT_FIELD_MAP = {
    "contractNumber": "contract_number",
    "startDate": "start_date",
    "endDate": "end_date",
    "jobType": "job_type",
    "jobCategory": "job_category",
    "serviceNotes": "service_notes",
    "marketingPartnerName": "marketing_partner_name",
    "marketingFeePercentage": "marketing_fee_percentage",
    "isActive": "is_active",
}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def location_to_dict(location: ContractLocation) -> dict:
    return {
        "id": location.id,
        "locationName": location.location_name,
        "address": location.address,
        "city": location.city,
        "province": location.province,
        "contactPerson": location.contact_person,
        "contactPhone": location.contact_phone,
        "isActive": location.is_active,
    }


def unit_to_dict(unit: ContractUnit) -> dict:
    return {
        "id": unit.id,
        "locationId": unit.location_id,
        "unitCategory": unit.unit_category,
        "brand": unit.brand,
        "model": unit.model,
        "capacity": unit.capacity,
        "roomName": unit.room_name,
        "roomType": unit.room_type,
        "maintenanceFrequency": unit.maintenance_frequency,
        "frequencyMonths": unit.frequency_months,
        "costPrice": unit.cost_price,
        "sellingPrice": unit.selling_price,
        "lastServiceDate": _iso(unit.last_service_date),
        "nextServiceDate": _iso(unit.next_service_date),
        "isActive": unit.is_active,
    }


def contract_to_dict(contract: MaintenanceContract, detail: bool = False) -> dict:
    data = {
        "id": contract.id,
        "public_id": contract.public_id,
        "contractNumber": contract.contract_number,
        "clientId": contract.client_id,
        "clientName": contract.client.name if contract.client else None,
        "startDate": _iso(contract.start_date),
        "endDate": _iso(contract.end_date),
        "isActive": contract.is_active,
        "frequency": contract.frequency,
        "frequencyMonths": contract.frequency_months,
        "jobType": contract.job_type,
        "jobCategory": contract.job_category,
        "serviceNotes": contract.service_notes,
        "totalCostValue": contract.total_cost_value,
        "totalSellingValue": contract.total_selling_value,
        "totalMargin": contract.total_margin,
        "marketingPartnerName": contract.marketing_partner_name,
        "marketingFeePercentage": contract.marketing_fee_percentage,
        "roomCount": contract.room_count,
        "created_at": _iso(contract.created_at),
    }
    if detail:
        data["locations"] = [location_to_dict(loc) for loc in contract.locations]
        data["units"] = [unit_to_dict(u) for u in contract.units]
    return data


def request_to_dict(req: ContractRequest) -> dict:
    return {
        "id": req.id,
        "companyName": req.company_name,
        "contactPerson": req.contact_person,
        "phone": req.phone,
        "email": req.email,
        "address": req.address,
        "unitCount": req.unit_count,
        "locationCount": req.location_count,
        "preferredFrequency": req.preferred_frequency,
        "notes": req.notes,
        "status": req.status,
        "reviewNotes": req.review_notes,
        "reviewedAt": _iso(req.reviewed_at),
        "clientId": req.client_id,
        "created_at": _iso(req.created_at),
    }


def _wizard_units(payload: ContractWizardPayload) -> list[dict]:
    """Wizard units as plain dicts with derived frequency months"""
    units = []
    for unit in payload.units:
        units.append(
            {
                "location_index": unit.locationIndex,
                "unit_category": unit.unitCategory,
                "brand": unit.brand,
                "model": unit.model,
                "capacity": unit.capacity,
                "room_name": unit.roomName,
                "room_type": unit.roomType,
                "maintenance_frequency": unit.maintenanceFrequency,
                "frequency_months": frequency_months_for(unit.maintenanceFrequency, unit.frequencyMonths),
                "cost_price": unit.costPrice,
                "selling_price": unit.sellingPrice,
                "last_service_date": unit.lastServiceDate,
            }
        )
    return units


class ContractService:
    """Service class for maintenance contract operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContractRepository()

    def get_contract(self, contract_id: int, tenant_id: int) -> MaintenanceContract:
        contract = self.repo.get_contract(self.db, contract_id, tenant_id)
        if not contract:
            raise HTTPException(status_code=404, detail="Contract not found")
        return contract

    def list_contracts(
        self, tenant_id: int, active: Optional[bool] = None, client_id: Optional[int] = None
    ) -> list[MaintenanceContract]:
        return self.repo.get_contracts(self.db, tenant_id, active, client_id)

    def preview_contract(self, payload: ContractWizardPayload) -> dict:
        """Wizard review step: totals and visit counts without persisting"""
        units = _wizard_units(payload)
        totals = compute_totals(units)
        return {
            "totalCostValue": totals["total_cost_value"],
            "totalSellingValue": totals["total_selling_value"],
            "totalMargin": totals["total_margin"],
            "roomCount": totals["room_count"],
            "servicesPerYear": totals["services_per_year"],
            "frequency": contract_frequency(u["maintenance_frequency"] for u in units),
            "frequencyMonths": contract_frequency_months(u["frequency_months"] for u in units),
            "locationCount": len(payload.locations),
        }

    def create_contract(self, payload: ContractWizardPayload, tenant_id: int, user: User) -> MaintenanceContract:
        """
        Persist the accumulated wizard state (contract, locations, units) in a
        single transaction. Nothing is written when any part is invalid.
        """
        client = (
            self.db.query(Client)
            .filter(Client.id == payload.clientId, Client.tenant_id == tenant_id)
            .first()
        )
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")

        if self.repo.contract_number_exists(self.db, tenant_id, payload.contractNumber):
            raise HTTPException(status_code=409, detail="Contract number already exists")

        units = _wizard_units(payload)
        for index, unit in enumerate(units):
            if not 0 <= unit["location_index"] < len(payload.locations):
                raise HTTPException(
                    status_code=400,
                    detail=f"Unit {index + 1} refers to unknown location index {unit['location_index']}",
                )

        totals = compute_totals(units)
        contract = MaintenanceContract(
            tenant_id=tenant_id,
            client_id=client.id,
            contract_number=payload.contractNumber,
            start_date=payload.startDate,
            end_date=payload.endDate,
            is_active=True,
            frequency=contract_frequency(u["maintenance_frequency"] for u in units),
            frequency_months=contract_frequency_months(u["frequency_months"] for u in units),
            job_type=payload.jobType,
            job_category=payload.jobCategory,
            service_notes=payload.serviceNotes,
            total_cost_value=totals["total_cost_value"],
            total_selling_value=totals["total_selling_value"],
            total_margin=totals["total_margin"],
            marketing_partner_name=payload.marketingPartnerName,
            marketing_fee_percentage=payload.marketingFeePercentage,
            room_count=totals["room_count"],
            created_by=user.id,
        )

        locations = [
            ContractLocation(
                location_name=loc.locationName,
                address=loc.address,
                city=loc.city,
                province=loc.province,
                contact_person=loc.contactPerson,
                contact_phone=loc.contactPhone,
            )
            for loc in payload.locations
        ]
        contract.locations.extend(locations)

        for unit in units:
            location_index = unit.pop("location_index")
            contract.units.append(
                ContractUnit(
                    location=locations[location_index],
                    next_service_date=payload.startDate,
                    **unit,
                )
            )

        try:
            self.db.add(contract)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"❌ Contract insert failed for tenant {tenant_id}: {str(e)}")
            raise HTTPException(status_code=409, detail="Contract number already exists") from e

        logger.info(
            f"✅ Contract {contract.contract_number} created with {len(locations)} location(s) "
            f"and {len(units)} unit(s)"
        )
        return self.get_contract(contract.id, tenant_id)

    def update_contract(self, contract_id: int, data: ContractUpdate, tenant_id: int) -> MaintenanceContract:
        contract = self.get_contract(contract_id, tenant_id)
        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        if "contractNumber" in updates and self.repo.contract_number_exists(
            self.db, tenant_id, updates["contractNumber"], exclude_id=contract.id
        ):
            raise HTTPException(status_code=409, detail="Contract number already exists")

        start = updates.get("startDate", contract.start_date)
        end = updates.get("endDate", contract.end_date)
        if end < start:
            raise HTTPException(status_code=400, detail="endDate must be on or after startDate")

        for field, value in updates.items():
            setattr(contract, CONTRACT_FIELD_MAP[field], value)
        self.db.commit()
        logger.info(f"✅ Contract {contract.contract_number} updated")
        return self.get_contract(contract_id, tenant_id)

    def deactivate_contract(self, contract_id: int, tenant_id: int) -> MaintenanceContract:
        contract = self.get_contract(contract_id, tenant_id)
        contract.is_active = False
        self.db.commit()
        logger.info(f"⏸️ Contract {contract.contract_number} deactivated")
        return contract

    def delete_contract(self, contract_id: int, tenant_id: int) -> dict:
        contract = self.get_contract(contract_id, tenant_id)
        order_count = self.repo.count_orders(self.db, contract.id)
        if order_count:
            raise HTTPException(
                status_code=409,
                detail=f"Contract has {order_count} service order(s); deactivate it instead",
            )
        self.db.delete(contract)
        self.db.commit()
        logger.info(f"🗑️ Contract {contract.contract_number} deleted")
        return {"message": "Contract deleted successfully"}

    # Maintenance scheduling

    def generate_maintenance_orders(
        self,
        as_of: Optional[date] = None,
        horizon_days: Optional[int] = None,
        tenant_id: Optional[int] = None,
    ) -> list[dict]:
        """
        Create maintenance orders for units due within the horizon.

        Due units are grouped per (contract, location, due date) into one order.
        An order already generated for the same group is reused, so running the
        generator twice for a date creates nothing new. Each handled unit then
        moves to its next due date. `tenant_id=None` covers every tenant.
        """
        as_of = as_of or local_date()
        horizon = MAINTENANCE_HORIZON_DAYS if horizon_days is None else horizon_days
        until = as_of + timedelta(days=horizon)

        groups: "OrderedDict[tuple, list[ContractUnit]]" = OrderedDict()
        for unit in self.repo.get_due_units(self.db, until, tenant_id):
            key = (unit.contract_id, unit.location_id, unit.next_service_date)
            groups.setdefault(key, []).append(unit)

        generated = []
        for (contract_id, location_id, due_date), units in groups.items():
            contract = units[0].contract
            location = units[0].location
            order = self.repo.find_generated_order(self.db, contract_id, location_id, due_date)
            created = order is None
            if created:
                order = self._build_maintenance_order(contract, location, units, due_date, as_of)
                self.db.add(order)
                self.db.flush()

            for unit in units:
                unit.next_service_date = advance_service_date(due_date, unit.frequency_months)

            generated.append(
                {
                    "orderId": order.id,
                    "orderNumber": order.order_number,
                    "contractId": contract_id,
                    "contractNumber": contract.contract_number,
                    "locationId": location_id,
                    "scheduledDate": due_date.isoformat(),
                    "unitCount": len(units),
                    "created": created,
                }
            )

        self.db.commit()
        logger.info(
            f"📅 Maintenance generation as of {as_of} (+{horizon}d): "
            f"{sum(1 for g in generated if g['created'])} new order(s), {len(generated)} group(s)"
        )
        return generated

    def _build_maintenance_order(
        self,
        contract: MaintenanceContract,
        location: Optional[ContractLocation],
        units: list[ContractUnit],
        due_date: date,
        as_of: date,
    ) -> ServiceOrder:
        location_name = location.location_name if location else None
        address = (
            (location.address if location else None)
            or (contract.client.address if contract.client else None)
            or location_name
            or "-"
        )
        unit_lines = "\n".join(
            f"- {u.room_name or 'Unit'}: {' '.join(p for p in (u.brand, u.model, u.capacity) if p) or u.unit_category}"
            for u in units
        )
        title = f"Maintenance {contract.contract_number}"
        if location_name:
            title = f"{title} - {location_name}"

        return ServiceOrder(
            tenant_id=contract.tenant_id,
            client_id=contract.client_id,
            contract_id=contract.id,
            contract_location_id=location.id if location else None,
            order_number=OrderRepository.next_order_number(self.db, contract.tenant_id, as_of),
            order_type="maintenance",
            priority="medium",
            status="listing",
            service_title=title[:255],
            service_description=f"Scheduled maintenance for {len(units)} unit(s):\n{unit_lines}",
            location_address=address,
            scheduled_date=due_date,
            source="contract",
            created_by=contract.created_by,
        )

    def upcoming_maintenance(self, tenant_id: int, days: int = 30, today: Optional[date] = None) -> list[dict]:
        """Units due within `days` (overdue ones included with negative days_until)"""
        today = today or local_date()
        units = self.repo.get_upcoming_units(self.db, tenant_id, today + timedelta(days=days))
        return [
            {
                "unitId": u.id,
                "contractId": u.contract_id,
                "contractNumber": u.contract.contract_number,
                "clientId": u.contract.client_id,
                "clientName": u.contract.client.name if u.contract.client else None,
                "locationId": u.location_id,
                "locationName": u.location.location_name if u.location else None,
                "roomName": u.room_name,
                "brand": u.brand,
                "capacity": u.capacity,
                "maintenanceFrequency": u.maintenance_frequency,
                "frequencyMonths": u.frequency_months,
                "nextServiceDate": u.next_service_date.isoformat(),
                "daysUntil": (u.next_service_date - today).days,
            }
            for u in units
        ]

    def reschedule_maintenance_order(
        self, order_id: int, new_date: date, reason: Optional[str], tenant_id: int
    ) -> ServiceOrder:
        order = (
            self.db.query(ServiceOrder)
            .filter(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .first()
        )
        if not order:
            raise HTTPException(status_code=404, detail="Service order not found")
        if order.source != "contract" or not order.contract_id:
            raise HTTPException(status_code=400, detail="Only contract maintenance orders can be rescheduled here")
        if order.status not in RESCHEDULABLE_STATUSES:
            raise HTTPException(
                status_code=409, detail=f"Order in status {order.status} can no longer be rescheduled"
            )

        previous = order.scheduled_date
        order.scheduled_date = new_date
        line = f"[Rescheduled {_iso(previous) or '-'} → {new_date.isoformat()}]"
        reason = clean_notes(reason)
        if reason:
            line = f"{line} {reason}"
        order.notes = f"{order.notes}\n{line}" if order.notes else line

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"📅 Order {order.order_number} rescheduled from {previous} to {new_date}")
        return order

    def expire_contracts(self, today: Optional[date] = None, tenant_id: Optional[int] = None) -> int:
        """Deactivate active contracts whose end date has passed"""
        today = today or local_date()
        expired = self.repo.get_expired(self.db, today, tenant_id)
        for contract in expired:
            contract.is_active = False
        self.db.commit()
        if expired:
            logger.info(f"⌛ Deactivated {len(expired)} expired contract(s)")
        return len(expired)

    # Contract requests

    def submit_request(self, tenant_slug: str, data: ContractRequestCreate) -> ContractRequest:
        """Public intake form; no authentication"""
        tenant = (
            self.db.query(Tenant)
            .filter(Tenant.slug == tenant_slug, Tenant.is_active.is_(True))
            .first()
        )
        if not tenant:
            raise HTTPException(status_code=404, detail="Company not found")

        missing = [
            label
            for label, value in (
                ("companyName", data.companyName),
                ("contactPerson", data.contactPerson),
                ("phone", data.phone),
            )
            if not value or not str(value).strip()
        ]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
        if not data.unitCount or data.unitCount <= 0:
            raise HTTPException(status_code=400, detail="unitCount must be greater than 0")
        if data.locationCount is not None and data.locationCount <= 0:
            raise HTTPException(status_code=400, detail="locationCount must be greater than 0")

        try:
            phone = validate_id_phone(data.phone)
            email = validate_email(data.email)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        req = ContractRequest(
            tenant_id=tenant.id,
            company_name=data.companyName.strip(),
            contact_person=data.contactPerson.strip(),
            phone=phone,
            email=email,
            address=data.address,
            unit_count=data.unitCount,
            location_count=data.locationCount or 1,
            preferred_frequency=data.preferredFrequency,
            notes=clean_notes(data.notes),
        )
        self.db.add(req)
        self.db.commit()
        self.db.refresh(req)
        logger.info(f"📨 Contract request {req.id} from {req.company_name} for tenant {tenant.slug}")
        return req

    def list_requests(self, tenant_id: int, status: Optional[str] = None) -> list[ContractRequest]:
        return self.repo.get_requests(self.db, tenant_id, status)

    def _pending_request(self, request_id: int, tenant_id: int) -> ContractRequest:
        req = self.repo.get_request(self.db, request_id, tenant_id)
        if not req:
            raise HTTPException(status_code=404, detail="Contract request not found")
        if req.status != "pending":
            raise HTTPException(status_code=409, detail=f"Request already {req.status}")
        return req

    def approve_request(
        self, request_id: int, data: ContractRequestApprove, tenant_id: int, user: User
    ) -> ContractRequest:
        """Approve and link the request to an existing client or a new corporate client"""
        req = self._pending_request(request_id, tenant_id)

        if data.clientId:
            client = (
                self.db.query(Client)
                .filter(Client.id == data.clientId, Client.tenant_id == tenant_id)
                .first()
            )
            if not client:
                raise HTTPException(status_code=404, detail="Client not found")
        else:
            client = Client(
                tenant_id=tenant_id,
                name=req.company_name,
                email=req.email,
                phone=req.phone,
                address=req.address,
                client_type="corporate",
                notes=f"PIC: {req.contact_person}",
            )
            self.db.add(client)
            self.db.flush()
            logger.info(f"🆕 Client {client.id} created from contract request {req.id}")

        req.status = "approved"
        req.client_id = client.id
        req.review_notes = clean_notes(data.notes)
        req.reviewed_by = user.id
        req.reviewed_at = utcnow()
        self.db.commit()
        self.db.refresh(req)
        logger.info(f"✅ Contract request {req.id} approved")
        return req

    def reject_request(self, request_id: int, reason: Optional[str], tenant_id: int, user: User) -> ContractRequest:
        reason = clean_notes(reason)
        if not reason:
            raise HTTPException(status_code=400, detail="A rejection reason is required")
        req = self._pending_request(request_id, tenant_id)

        req.status = "rejected"
        req.review_notes = reason
        req.reviewed_by = user.id
        req.reviewed_at = utcnow()
        self.db.commit()
        self.db.refresh(req)
        logger.info(f"🚫 Contract request {req.id} rejected")
        return req
