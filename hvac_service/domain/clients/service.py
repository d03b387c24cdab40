"""Client service - Business logic for client operations"""

import csv
import io
import logging
import secrets
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, INVITATION_MAX_AGE
from ...models import AcUnit, Client, ClientAuditLog, ClientProperty, User
from ...security_utils import PORTAL_SALT, generate_timed_token, verify_timed_token
from ...utils.business_time import utcnow
from .repository import ClientRepository
from .schemas import (
    AcUnitCreate,
    AcUnitUpdate,
    ClientCreate,
    ClientUpdate,
    PropertyCreate,
    PropertyUpdate,
)

logger = logging.getLogger(__name__)

CLIENT_FIELD_MAP = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "city": "city",
    "clientType": "client_type",
    "notes": "notes",
}

AC_UNIT_FIELD_MAP = {
    "propertyId": "property_id",
    "unitCategory": "unit_category",
    "brand": "brand",
    "model": "model",
    "capacity": "capacity",
    "roomName": "room_name",
    "serialNumber": "serial_number",
    "installDate": "install_date",
    "lastServiceDate": "last_service_date",
    "isActive": "is_active",
}


def client_to_dict(client: Client) -> dict:
    return {
        "id": client.id,
        "public_id": client.public_id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "address": client.address,
        "city": client.city,
        "clientType": client.client_type,
        "notes": client.notes,
        "portalEnabled": client.portal_enabled,
        "portalEmail": client.portal_email,
        "portalActivatedAt": client.portal_activated_at.isoformat() if client.portal_activated_at else None,
        "portalInvitationPending": bool(client.portal_invitation_token) and not client.portal_enabled,
        "created_at": client.created_at.isoformat() if client.created_at else None,
    }


def property_to_dict(prop: ClientProperty) -> dict:
    return {
        "id": prop.id,
        "clientId": prop.client_id,
        "name": prop.name,
        "address": prop.address,
        "city": prop.city,
        "propertyType": prop.property_type,
    }


def ac_unit_to_dict(unit: AcUnit) -> dict:
    return {
        "id": unit.id,
        "clientId": unit.client_id,
        "propertyId": unit.property_id,
        "unitCategory": unit.unit_category,
        "brand": unit.brand,
        "model": unit.model,
        "capacity": unit.capacity,
        "roomName": unit.room_name,
        "serialNumber": unit.serial_number,
        "installDate": unit.install_date.isoformat() if unit.install_date else None,
        "lastServiceDate": unit.last_service_date.isoformat() if unit.last_service_date else None,
        "isActive": unit.is_active,
    }


def audit_to_dict(entry: ClientAuditLog) -> dict:
    return {
        "id": entry.id,
        "action": entry.action,
        "changedFields": entry.changed_fields or [],
        "oldData": entry.old_data,
        "newData": entry.new_data,
        "changedBy": entry.changed_by,
        "changedByName": entry.staff.full_name if entry.staff else None,
        "changedAt": entry.changed_at.isoformat() if entry.changed_at else None,
    }


def _mapped(data: dict, field_map: dict) -> dict:
    return {field_map[k]: v for k, v in data.items() if k in field_map}


class ClientService:
    """Service class for client operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_clients(
        self, tenant_id: int, search: Optional[str] = None, client_type: Optional[str] = None
    ) -> list[Client]:
        return self.repo.get_clients(self.db, tenant_id, search, client_type)

    def get_client(self, client_id: int, tenant_id: int) -> Client:
        """Get a specific client, raises 404 if not found"""
        client = self.repo.get_client_by_id(self.db, client_id, tenant_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_client(self, data: ClientCreate, tenant_id: int, actor_id: Optional[int] = None) -> Client:
        """Create a new client"""
        values = _mapped(data.model_dump(), CLIENT_FIELD_MAP)
        client = self.repo.create_client(self.db, tenant_id, **values)
        self.repo.add_audit(
            self.db, client, "created", actor_id, new_data={k: v for k, v in values.items() if v is not None}
        )
        self.db.commit()
        logger.info(f"✅ Client created: {client.name} (ID: {client.id}) in tenant {tenant_id}")
        return client

    def update_client(
        self, client_id: int, data: ClientUpdate, tenant_id: int, actor_id: Optional[int] = None
    ) -> Client:
        """Update an existing client (only provided fields change)"""
        client = self.get_client(client_id, tenant_id)
        updates = _mapped(data.model_dump(exclude_unset=True), CLIENT_FIELD_MAP)
        changed = {
            key: value
            for key, value in updates.items()
            if value is not None and getattr(client, key) != value
        }
        if changed:
            self.repo.add_audit(
                self.db,
                client,
                "updated",
                actor_id,
                old_data={key: getattr(client, key) for key in changed},
                new_data=changed,
            )
        client = self.repo.update_client(self.db, client, **updates)
        logger.info(f"✅ Client {client_id} updated")
        return client

    def delete_client(self, client_id: int, tenant_id: int) -> dict:
        """Delete a client; refused while service orders reference it"""
        client = self.get_client(client_id, tenant_id)

        order_count = self.repo.count_orders(self.db, client.id)
        if order_count:
            raise HTTPException(
                status_code=409,
                detail=f"Client has {order_count} service order(s) and cannot be deleted",
            )

        self.repo.delete_client(self.db, client)
        logger.info(f"🗑️ Client {client_id} deleted from tenant {tenant_id}")
        return {"message": "Client deleted successfully"}

    def export_clients_csv(
        self, tenant_id: int, search: Optional[str] = None, client_type: Optional[str] = None
    ) -> StreamingResponse:
        """Export clients to CSV with optional filters"""
        clients = self.repo.get_clients(self.db, tenant_id, search, client_type)
        logger.info(f"📊 Exporting {len(clients)} clients for tenant {tenant_id}")

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(
            ["ID", "Name", "Type", "Email", "Phone", "Address", "City", "Notes", "Created Date"]
        )
        for client in clients:
            writer.writerow(
                [
                    client.id,
                    client.name or "",
                    client.client_type or "",
                    client.email or "",
                    client.phone or "",
                    client.address or "",
                    client.city or "",
                    client.notes or "",
                    (
                        client.created_at.strftime("%Y-%m-%d %H:%M:%S")
                        if client.created_at
                        else ""
                    ),
                ]
            )

        output.seek(0)
        filename = f"clients_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"✅ CSV export successful: {filename} ({len(clients)} clients)")

        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )

    def get_service_history(self, client_id: int, tenant_id: int) -> list[dict]:
        """Service orders of a client, newest first"""
        self.get_client(client_id, tenant_id)
        orders = self.repo.get_service_history(self.db, client_id, tenant_id)
        return [
            {
                "id": o.id,
                "orderNumber": o.order_number,
                "orderType": o.order_type,
                "status": o.status,
                "serviceTitle": o.service_title,
                "scheduledDate": o.scheduled_date.isoformat() if o.scheduled_date else None,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in orders
        ]

    # Properties

    def list_properties(self, client_id: int, tenant_id: int) -> list[dict]:
        self.get_client(client_id, tenant_id)
        return [property_to_dict(p) for p in self.repo.get_properties(self.db, client_id)]

    def create_property(self, client_id: int, data: PropertyCreate, tenant_id: int) -> dict:
        self.get_client(client_id, tenant_id)
        prop = ClientProperty(
            tenant_id=tenant_id,
            client_id=client_id,
            name=data.name,
            address=data.address,
            city=data.city,
            property_type=data.propertyType,
        )
        self.db.add(prop)
        self.db.commit()
        self.db.refresh(prop)
        logger.info(f"🏠 Property {prop.id} added to client {client_id}")
        return property_to_dict(prop)

    def _get_property(self, client_id: int, property_id: int, tenant_id: int) -> ClientProperty:
        self.get_client(client_id, tenant_id)
        prop = self.repo.get_property(self.db, property_id, client_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")
        return prop

    def update_property(
        self, client_id: int, property_id: int, data: PropertyUpdate, tenant_id: int
    ) -> dict:
        prop = self._get_property(client_id, property_id, tenant_id)
        field_map = {"name": "name", "address": "address", "city": "city", "propertyType": "property_type"}
        for key, value in _mapped(data.model_dump(exclude_unset=True), field_map).items():
            if value is not None:
                setattr(prop, key, value)
        self.db.commit()
        self.db.refresh(prop)
        return property_to_dict(prop)

    def delete_property(self, client_id: int, property_id: int, tenant_id: int) -> dict:
        prop = self._get_property(client_id, property_id, tenant_id)
        for unit in prop.ac_units:
            unit.property_id = None
        self.db.delete(prop)
        self.db.commit()
        logger.info(f"🗑️ Property {property_id} deleted from client {client_id}")
        return {"message": "Property deleted successfully"}

    # AC units

    def list_ac_units(self, client_id: int, tenant_id: int, include_inactive: bool = False) -> list[dict]:
        self.get_client(client_id, tenant_id)
        return [ac_unit_to_dict(u) for u in self.repo.get_ac_units(self.db, client_id, include_inactive)]

    def _check_property(self, client_id: int, property_id: Optional[int]) -> None:
        if property_id is not None and not self.repo.get_property(self.db, property_id, client_id):
            raise HTTPException(status_code=400, detail="Property does not belong to this client")

    def create_ac_unit(self, client_id: int, data: AcUnitCreate, tenant_id: int) -> dict:
        self.get_client(client_id, tenant_id)
        self._check_property(client_id, data.propertyId)
        unit = AcUnit(
            tenant_id=tenant_id,
            client_id=client_id,
            **_mapped(data.model_dump(), AC_UNIT_FIELD_MAP),
        )
        self.db.add(unit)
        self.db.commit()
        self.db.refresh(unit)
        logger.info(f"❄️ AC unit {unit.id} registered for client {client_id}")
        return ac_unit_to_dict(unit)

    def _get_ac_unit(self, client_id: int, unit_id: int, tenant_id: int) -> AcUnit:
        self.get_client(client_id, tenant_id)
        unit = self.repo.get_ac_unit(self.db, unit_id, client_id)
        if not unit:
            raise HTTPException(status_code=404, detail="AC unit not found")
        return unit

    def update_ac_unit(self, client_id: int, unit_id: int, data: AcUnitUpdate, tenant_id: int) -> dict:
        unit = self._get_ac_unit(client_id, unit_id, tenant_id)
        updates = data.model_dump(exclude_unset=True)
        if "propertyId" in updates:
            self._check_property(client_id, updates["propertyId"])
        for key, value in _mapped(updates, AC_UNIT_FIELD_MAP).items():
            if value is not None or key == "property_id":
                setattr(unit, key, value)
        self.db.commit()
        self.db.refresh(unit)
        return ac_unit_to_dict(unit)

    def delete_ac_unit(self, client_id: int, unit_id: int, tenant_id: int) -> dict:
        unit = self._get_ac_unit(client_id, unit_id, tenant_id)
        self.db.delete(unit)
        self.db.commit()
        logger.info(f"🗑️ AC unit {unit_id} deleted from client {client_id}")
        return {"message": "AC unit deleted successfully"}

    # Portal access

    def create_portal_invitation(self, client_id: int, tenant_id: int, actor_id: Optional[int] = None) -> dict:
        """Issue a portal link; a newer link replaces any earlier one"""
        client = self.get_client(client_id, tenant_id)
        if client.portal_enabled:
            raise HTTPException(status_code=409, detail="Client portal is already active")

        token = generate_timed_token(
            {"client_id": client.id, "tenant_id": tenant_id, "nonce": secrets.token_hex(4)}, PORTAL_SALT
        )
        client.portal_invitation_token = token
        client.portal_invited_at = utcnow()
        self.repo.add_audit(
            self.db,
            client,
            "portal_invited",
            actor_id,
            new_data={"portal_invited_at": client.portal_invited_at.isoformat()},
        )
        self.db.commit()
        logger.info(f"✉️ Portal invitation issued for client {client.id}")
        return {
            "token": token,
            "invitationUrl": f"{FRONTEND_URL}/client/activate?token={token}",
            "expiresInSeconds": INVITATION_MAX_AGE,
        }

    def activate_portal(self, token: str, user: User) -> dict:
        """Bind the signed-in user to the client named in the invitation"""
        payload = verify_timed_token(token, PORTAL_SALT, INVITATION_MAX_AGE)
        if not payload:
            raise HTTPException(status_code=400, detail="Invitation is invalid or has expired")

        client = self.repo.get_client_by_id(self.db, payload["client_id"], payload["tenant_id"])
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        if client.portal_enabled:
            raise HTTPException(status_code=409, detail="Client portal is already active")
        if client.portal_invitation_token != token:
            raise HTTPException(status_code=400, detail="Invitation has been replaced or withdrawn")
        if self.repo.get_portal_client(self.db, user.id):
            raise HTTPException(status_code=409, detail="This account already has portal access")

        client.portal_enabled = True
        client.portal_user_id = user.id
        client.portal_email = (user.email or "").lower() or None
        client.portal_activated_at = utcnow()
        client.portal_invitation_token = None
        self.repo.add_audit(
            self.db, client, "portal_activated", user.id, new_data={"portal_email": client.portal_email}
        )
        self.db.commit()
        self.db.refresh(client)
        logger.info(f"✅ Client portal activated for client {client.id} by user {user.id}")
        return client_to_dict(client)

    def disable_portal(self, client_id: int, tenant_id: int, actor_id: Optional[int] = None) -> dict:
        """Revoke portal access and any pending invitation"""
        client = self.get_client(client_id, tenant_id)
        if not client.portal_enabled and not client.portal_invitation_token:
            raise HTTPException(status_code=409, detail="Client portal is not active")

        old_email = client.portal_email
        client.portal_enabled = False
        client.portal_user_id = None
        client.portal_invitation_token = None
        self.repo.add_audit(
            self.db, client, "portal_disabled", actor_id, old_data={"portal_email": old_email}
        )
        self.db.commit()
        self.db.refresh(client)
        logger.info(f"🔒 Client portal disabled for client {client.id}")
        return client_to_dict(client)

    def get_portal_client(self, user: User) -> Client:
        client = self.repo.get_portal_client(self.db, user.id)
        if not client:
            raise HTTPException(status_code=403, detail="No client portal access")
        return client

    def get_audit_log(self, client_id: int, tenant_id: int) -> list[dict]:
        self.get_client(client_id, tenant_id)
        return [audit_to_dict(e) for e in self.repo.get_audit_log(self.db, client_id, tenant_id)]
