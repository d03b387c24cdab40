import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


# Roles a user can hold inside a tenant
ROLES = (
    "owner",
    "investor",
    "admin_finance",
    "admin_logistic",
    "tech_head",
    "technician",
    "helper",
    "magang",
    "sales_partner",
    "client",
)
ADMIN_ROLES = ("owner", "admin_finance", "admin_logistic")
MANAGER_ROLES = ADMIN_ROLES + ("tech_head",)
READ_ONLY_FIELD_ROLES = ("helper", "magang")

# Service order lifecycle
ORDER_STATUSES = (
    "listing",
    "scheduled",
    "in_progress",
    "completed",
    "approved",
    "complaint",
    "invoiced",
    "paid",
    "cancelled",
)
# Statuses reached once field work is done (reports and BAST allowed)
POST_COMPLETION_STATUSES = ("completed", "approved", "complaint", "invoiced", "paid")
ORDER_TYPES = (
    "installation",
    "maintenance",
    "repair",
    "survey",
    "troubleshooting",
    "konsultasi",
    "pengadaan",
)
PRIORITIES = ("low", "medium", "high", "urgent")
KANBAN_COLUMNS = (
    ("listing", "Listing"),
    ("scheduled", "Scheduled"),
    ("in_progress", "In Progress"),
    ("completed", "Completed"),
    ("approved", "BAST Approved"),
    ("invoiced", "Invoiced"),
)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, default=generate_public_id)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=False)
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    province = Column(String(255), nullable=True)
    postal_code = Column(String(20), nullable=True)
    subscription_status = Column(String(20), default="trial", nullable=False)  # trial, active, suspended, cancelled
    subscription_plan = Column(String(20), default="basic", nullable=False)  # basic, pro, enterprise
    subscription_started_at = Column(DateTime, nullable=True)
    subscription_expires_at = Column(DateTime, nullable=True)
    timezone = Column(String(64), default="Asia/Jakarta", nullable=False)
    business_hours = Column(JSON, nullable=True)  # {"monday": {"open": "08:00", "close": "17:00"}, ...}
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    roles = relationship("UserTenantRole", back_populates="tenant")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Null until the person signs in for the first time (members added by e-mail)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    phone_alt = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    active_tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    roles = relationship(
        "UserTenantRole", back_populates="user", foreign_keys="UserTenantRole.user_id"
    )


class UserTenantRole(Base):
    __tablename__ = "user_tenant_roles"
    __table_args__ = (UniqueConstraint("user_id", "tenant_id", name="uq_user_tenant"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_at = Column(DateTime, server_default=func.now())
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="roles", foreign_keys=[user_id])
    tenant = relationship("Tenant", back_populates="roles")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    client_type = Column(String(20), default="household", nullable=False)  # household, corporate
    notes = Column(Text, nullable=True)
    portal_enabled = Column(Boolean, default=False, nullable=False)
    portal_email = Column(String(255), nullable=True)
    portal_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    portal_invitation_token = Column(Text, nullable=True)
    portal_invited_at = Column(DateTime, nullable=True)
    portal_activated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    properties = relationship(
        "ClientProperty", back_populates="client", cascade="all, delete-orphan"
    )
    ac_units = relationship("AcUnit", back_populates="client", cascade="all, delete-orphan")
    orders = relationship("ServiceOrder", back_populates="client")
    contracts = relationship("MaintenanceContract", back_populates="client")


class ClientAuditLog(Base):
    """Field-level history of client records and portal access"""

    __tablename__ = "client_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(30), nullable=False)  # created, updated, portal_invited, portal_activated, portal_disabled
    changed_fields = Column(JSON, nullable=True)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    changed_at = Column(DateTime, server_default=func.now())

    staff = relationship("User", foreign_keys=[changed_by])


class ClientProperty(Base):
    __tablename__ = "client_properties"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    property_type = Column(String(50), nullable=True)  # house, office, shop, factory ...
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="properties")
    ac_units = relationship("AcUnit", back_populates="property")


class AcUnit(Base):
    __tablename__ = "ac_units"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("client_properties.id"), nullable=True)
    unit_category = Column(String(50), default="split", nullable=False)  # split, cassette, standing, central
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    capacity = Column(String(50), nullable=True)  # e.g. "1 PK", "2.5 PK"
    room_name = Column(String(255), nullable=True)
    serial_number = Column(String(100), nullable=True)
    install_date = Column(Date, nullable=True)
    last_service_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="ac_units")
    property = relationship("ClientProperty", back_populates="ac_units")


class Technician(Base):
    __tablename__ = "technicians"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    skills = Column(JSON, nullable=True)  # ["cleaning", "freon", "installation"]
    is_active = Column(Boolean, default=True, nullable=False)
    activated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    assignments = relationship("WorkOrderAssignment", back_populates="technician")


class ServiceOrder(Base):
    __tablename__ = "service_orders"
    __table_args__ = (UniqueConstraint("tenant_id", "order_number", name="uq_tenant_order_number"),)

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    contract_id = Column(Integer, ForeignKey("maintenance_contracts.id"), nullable=True)
    contract_location_id = Column(Integer, ForeignKey("contract_locations.id"), nullable=True)
    order_number = Column(String(30), nullable=False)
    order_type = Column(String(30), nullable=False)
    priority = Column(String(10), default="medium", nullable=False)

    # Status workflow: listing → scheduled → in_progress → completed → approved → invoiced → paid
    # complaint: BAST rejected by the client
    # cancelled: order dropped before execution
    status = Column(String(20), default="listing", nullable=False, index=True)

    service_title = Column(String(255), nullable=False)
    service_description = Column(Text, nullable=True)
    location_address = Column(String(500), nullable=False)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)

    requested_date = Column(Date, nullable=True)
    scheduled_date = Column(Date, nullable=True, index=True)
    scheduled_time = Column(String(8), nullable=True)  # HH:MM
    estimated_duration = Column(Integer, nullable=True)  # minutes

    notes = Column(Text, nullable=True)
    source = Column(String(20), default="manual", nullable=False)  # manual, contract, client_request
    is_survey = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="orders")
    contract = relationship("MaintenanceContract", back_populates="orders")
    assignments = relationship(
        "WorkOrderAssignment", back_populates="order", cascade="all, delete-orphan"
    )
    work_logs = relationship("TechnicianWorkLog", back_populates="order", cascade="all, delete-orphan")


class WorkOrderAssignment(Base):
    __tablename__ = "work_order_assignments"
    __table_args__ = (
        UniqueConstraint("service_order_id", "technician_id", name="uq_order_technician"),
    )

    id = Column(Integer, primary_key=True, index=True)
    service_order_id = Column(Integer, ForeignKey("service_orders.id"), nullable=False, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    role_in_order = Column(String(20), default="lead", nullable=False)  # lead, helper
    assignment_status = Column(String(20), default="assigned", nullable=False)  # assigned, in_progress, completed
    assigned_at = Column(DateTime, server_default=func.now())

    order = relationship("ServiceOrder", back_populates="assignments")
    technician = relationship("Technician", back_populates="assignments")


class MaintenanceContract(Base):
    __tablename__ = "maintenance_contracts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "contract_number", name="uq_tenant_contract_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    contract_number = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    frequency = Column(String(20), nullable=False)  # unit frequency or "mixed"
    frequency_months = Column(Integer, nullable=True)
    job_type = Column(String(100), nullable=True)
    job_category = Column(String(100), nullable=True)
    service_notes = Column(Text, nullable=True)
    total_cost_value = Column(Float, default=0, nullable=False)
    total_selling_value = Column(Float, default=0, nullable=False)
    total_margin = Column(Float, default=0, nullable=False)
    marketing_partner_name = Column(String(255), nullable=True)
    marketing_fee_percentage = Column(Float, default=100, nullable=True)
    room_count = Column(Integer, default=0, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="contracts")
    locations = relationship(
        "ContractLocation",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractLocation.id",
    )
    units = relationship(
        "ContractUnit", back_populates="contract", cascade="all, delete-orphan", order_by="ContractUnit.id"
    )
    orders = relationship("ServiceOrder", back_populates="contract")


class ContractLocation(Base):
    __tablename__ = "contract_locations"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("maintenance_contracts.id"), nullable=False, index=True)
    location_name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    province = Column(String(255), nullable=True)
    contact_person = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    contract = relationship("MaintenanceContract", back_populates="locations")
    units = relationship("ContractUnit", back_populates="location")


class ContractUnit(Base):
    __tablename__ = "contract_units"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("maintenance_contracts.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("contract_locations.id"), nullable=True)
    unit_category = Column(String(50), default="split", nullable=False)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    capacity = Column(String(50), nullable=True)
    room_name = Column(String(255), nullable=True)
    room_type = Column(String(50), nullable=True)
    maintenance_frequency = Column(String(20), default="monthly", nullable=False)
    frequency_months = Column(Integer, default=1, nullable=False)
    cost_price = Column(Float, default=0, nullable=False)
    selling_price = Column(Float, default=0, nullable=False)
    last_service_date = Column(Date, nullable=True)
    next_service_date = Column(Date, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    contract = relationship("MaintenanceContract", back_populates="units")
    location = relationship("ContractLocation", back_populates="units")


class ContractRequest(Base):
    """Public contract intake submitted from the landing page"""

    __tablename__ = "contract_requests"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    unit_count = Column(Integer, nullable=False)
    location_count = Column(Integer, default=1, nullable=False)
    preferred_frequency = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, approved, rejected
    review_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class WorkingHoursConfig(Base):
    __tablename__ = "working_hours_config"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), unique=True, nullable=False)
    work_start_time = Column(String(8), default="09:00:00", nullable=False)
    work_end_time = Column(String(8), default="17:00:00", nullable=False)
    overtime_rate_per_hour = Column(Float, default=5000, nullable=False)
    max_overtime_hours_per_day = Column(Integer, default=4, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
