"""
Field Execution Models - technician work logs, spareparts and daily attendance
"""

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


class TechnicianWorkLog(Base):
    """One log per technician per service order: check-in/out plus the technical report"""

    __tablename__ = "technician_work_logs"
    __table_args__ = (
        UniqueConstraint("service_order_id", "technician_id", name="uq_worklog_order_technician"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_order_id = Column(Integer, ForeignKey("service_orders.id"), nullable=False, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)

    # Check-in / check-out
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    check_out_lat = Column(Float, nullable=True)
    check_out_lng = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    photo_before_url = Column(String(500), nullable=True)
    photo_after_url = Column(String(500), nullable=True)

    # Technical report (BAST fields)
    nama_personal = Column(String(255), nullable=True)  # client PIC
    nama_instansi = Column(String(255), nullable=True)  # client organisation
    no_telephone = Column(String(50), nullable=True)
    alamat_lokasi = Column(String(500), nullable=True)
    jenis_pekerjaan = Column(String(255), nullable=True)
    rincian_pekerjaan = Column(Text, nullable=True)
    rincian_kerusakan = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    problem = Column(Text, nullable=True)
    tindakan = Column(Text, nullable=True)  # action taken
    biaya = Column(Float, nullable=True)  # cost
    lama_kerja = Column(Float, nullable=True)  # hours worked
    jarak_tempuh = Column(Float, nullable=True)  # km travelled
    lain_lain = Column(Text, nullable=True)
    catatan_perbaikan = Column(Text, nullable=True)
    catatan_rekomendasi = Column(Text, nullable=True)

    # Documentation: storage keys/URLs with a caption at the same index
    documentation_photos = Column(JSON, nullable=True)
    photo_captions = Column(JSON, nullable=True)

    # Signatures: data URLs (PNG) as captured on the device
    signature_technician = Column(Text, nullable=True)
    signature_client = Column(Text, nullable=True)
    signature_technician_name = Column(String(255), nullable=True)
    signature_client_name = Column(String(255), nullable=True)
    signature_date = Column(DateTime, nullable=True)

    report_type = Column(String(20), nullable=True)  # bast
    report_pdf_key = Column(String(500), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("ServiceOrder", back_populates="work_logs")
    technician = relationship("Technician")
    spareparts = relationship(
        "WorkOrderSparepart", back_populates="work_log", cascade="all, delete-orphan"
    )


class WorkOrderSparepart(Base):
    __tablename__ = "work_order_spareparts"

    id = Column(Integer, primary_key=True, index=True)
    work_log_id = Column(Integer, ForeignKey("technician_work_logs.id"), nullable=False, index=True)
    sparepart_name = Column(String(255), nullable=False)
    quantity = Column(Float, default=1, nullable=False)
    unit = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    work_log = relationship("TechnicianWorkLog", back_populates="spareparts")


class DailyAttendance(Base):
    __tablename__ = "daily_attendance"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", "date", name="uq_attendance_day"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # business-timezone calendar date
    clock_in_time = Column(DateTime, nullable=True)  # UTC
    clock_out_time = Column(DateTime, nullable=True)
    work_start_time = Column(DateTime, nullable=True)
    work_end_time = Column(DateTime, nullable=True)
    total_work_hours = Column(Float, nullable=True)
    is_late = Column(Boolean, default=False, nullable=False)
    is_early_leave = Column(Boolean, default=False, nullable=False)
    is_auto_checkout = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User")
