"""Client repository - Database operations for clients, properties and AC units"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import AcUnit, Client, ClientAuditLog, ClientProperty, ServiceOrder


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_clients(
        db: Session,
        tenant_id: int,
        search: Optional[str] = None,
        client_type: Optional[str] = None,
    ) -> list[Client]:
        """Get clients of a tenant, optionally searched by name/email/phone"""
        query = db.query(Client).filter(Client.tenant_id == tenant_id)

        if client_type:
            query = query.filter(Client.client_type == client_type)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Client.name.ilike(pattern),
                    Client.email.ilike(pattern),
                    Client.phone.ilike(pattern),
                )
            )

        return query.order_by(Client.name.asc()).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: int, tenant_id: int) -> Optional[Client]:
        """Get a specific client by ID"""
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def create_client(db: Session, tenant_id: int, **client_data) -> Client:
        """Create a new client"""
        client = Client(tenant_id=tenant_id, **client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        """Delete a client"""
        db.delete(client)
        db.commit()

    @staticmethod
    def count_orders(db: Session, client_id: int) -> int:
        return db.query(ServiceOrder).filter(ServiceOrder.client_id == client_id).count()

    @staticmethod
    def get_service_history(db: Session, client_id: int, tenant_id: int) -> list[ServiceOrder]:
        """Service orders of a client, newest first"""
        return (
            db.query(ServiceOrder)
            .filter(ServiceOrder.client_id == client_id, ServiceOrder.tenant_id == tenant_id)
            .order_by(ServiceOrder.scheduled_date.desc(), ServiceOrder.created_at.desc())
            .all()
        )

    # Properties

    @staticmethod
    def get_property(db: Session, property_id: int, client_id: int) -> Optional[ClientProperty]:
        return (
            db.query(ClientProperty)
            .filter(ClientProperty.id == property_id, ClientProperty.client_id == client_id)
            .first()
        )

    @staticmethod
    def get_properties(db: Session, client_id: int) -> list[ClientProperty]:
        return (
            db.query(ClientProperty)
            .filter(ClientProperty.client_id == client_id)
            .order_by(ClientProperty.name.asc())
            .all()
        )

    # AC units

    @staticmethod
    def get_ac_unit(db: Session, unit_id: int, client_id: int) -> Optional[AcUnit]:
        return db.query(AcUnit).filter(AcUnit.id == unit_id, AcUnit.client_id == client_id).first()

    @staticmethod
    def get_ac_units(db: Session, client_id: int, include_inactive: bool = False) -> list[AcUnit]:
        query = db.query(AcUnit).filter(AcUnit.client_id == client_id)
        if not include_inactive:
            query = query.filter(AcUnit.is_active.is_(True))
        return query.order_by(AcUnit.id.asc()).all()

    # Portal and audit

    @staticmethod
    def get_portal_client(db: Session, user_id: int) -> Optional[Client]:
        """The client whose portal account belongs to this user"""
        return (
            db.query(Client)
            .filter(Client.portal_user_id == user_id, Client.portal_enabled.is_(True))
            .first()
        )

    @staticmethod
    def add_audit(
        db: Session,
        client: Client,
        action: str,
        changed_by: Optional[int] = None,
        old_data: Optional[dict] = None,
        new_data: Optional[dict] = None,
    ) -> ClientAuditLog:
        """Queue an audit row in the caller's transaction (no commit)"""
        entry = ClientAuditLog(
            tenant_id=client.tenant_id,
            client_id=client.id,
            action=action,
            changed_fields=sorted((new_data or old_data or {}).keys()),
            old_data=old_data,
            new_data=new_data,
            changed_by=changed_by,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_audit_log(db: Session, client_id: int, tenant_id: int, limit: int = 100) -> list[ClientAuditLog]:
        return (
            db.query(ClientAuditLog)
            .options(joinedload(ClientAuditLog.staff))
            .filter(ClientAuditLog.client_id == client_id, ClientAuditLog.tenant_id == tenant_id)
            .order_by(ClientAuditLog.changed_at.desc(), ClientAuditLog.id.desc())
            .limit(limit)
            .all()
        )
