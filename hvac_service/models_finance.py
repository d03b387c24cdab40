"""
Finance models: reimbursement categories and the expense claims staff submit
against them
"""

from sqlalchemy import (
    Boolean,
    Column,
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
from .models import generate_public_id

REIMBURSE_STATUSES = ("submitted", "approved", "rejected", "paid")
FINANCE_ROLES = ("owner", "admin_finance")


class ReimburseCategory(Base):
    __tablename__ = "reimburse_categories"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_reimburse_category_name"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ReimburseRequest(Base):
    __tablename__ = "reimburse_requests"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("reimburse_categories.id"), nullable=False)
    submitted_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    receipt_key = Column(String(500), nullable=False)
    receipt_content_type = Column(String(100), nullable=True)
    status = Column(String(20), default="submitted", nullable=False, index=True)
    submitted_at = Column(DateTime, server_default=func.now())
    decided_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    decided_at = Column(DateTime, nullable=True)
    decision_note = Column(Text, nullable=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    category = relationship("ReimburseCategory")
    submitter = relationship("User", foreign_keys=[submitted_by])
