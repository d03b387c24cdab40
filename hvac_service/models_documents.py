"""
Handover document models: SPK (work order report), BAST (handover certificate)
and uploaded documentation files
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class SpkReport(Base):
    __tablename__ = "spk_reports"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_order_id = Column(
        Integer, ForeignKey("service_orders.id"), unique=True, nullable=False, index=True
    )
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    work_description = Column(Text, nullable=True)
    findings = Column(Text, nullable=True)
    actions_taken = Column(Text, nullable=True)
    materials_used = Column(JSON, nullable=True)  # [{"name": "Freon R32", "qty": 1, "unit": "kg"}]
    condition_before = Column(Text, nullable=True)
    condition_after = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    completed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("ServiceOrder")


class Documentation(Base):
    __tablename__ = "documentation"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_order_id = Column(Integer, ForeignKey("service_orders.id"), nullable=False, index=True)
    spk_report_id = Column(Integer, ForeignKey("spk_reports.id"), nullable=True)
    file_type = Column(String(20), nullable=False)  # photo, video, document
    file_key = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=True)  # before, during, after, equipment, problem
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    uploaded_at = Column(DateTime, server_default=func.now())


class Bast(Base):
    """Berita Acara Serah Terima - client acceptance of completed work"""

    __tablename__ = "bast"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_order_id = Column(Integer, ForeignKey("service_orders.id"), nullable=False, index=True)
    spk_report_id = Column(Integer, ForeignKey("spk_reports.id"), nullable=True)
    bast_number = Column(String(30), nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    technician_name = Column(String(255), nullable=False)
    client_signature_key = Column(String(500), nullable=True)
    technician_signature_key = Column(String(500), nullable=True)
    client_approved_at = Column(DateTime, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("ServiceOrder")
    spk_report = relationship("SpkReport")
