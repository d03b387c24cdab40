"""Work log service - Technician check-in/out, technical reports and report PDFs"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...config import FRONTEND_URL, REPORT_LINK_MAX_AGE
from ...models import POST_COMPLETION_STATUSES, READ_ONLY_FIELD_ROLES, ServiceOrder
from ...models_worklog import TechnicianWorkLog, WorkOrderSparepart
from ...security_utils import REPORT_LINK_SALT, generate_timed_token, verify_timed_token
from ...services.report_pdf import TechnicalReportPDFGenerator
from ...shared.validators import clean_notes
from ...utils.business_time import utcnow
from ...utils.geo import distance_m, travel_distance_km
from ..technicians.repository import TechnicianRepository
from .repository import WorkLogRepository
from .schemas import CheckInRequest, CheckOutRequest, TechnicalReportSubmit

logger = logging.getLogger(__name__)

REPORT_FIELDS = (
    "nama_personal",
    "nama_instansi",
    "no_telephone",
    "alamat_lokasi",
    "jenis_pekerjaan",
    "rincian_pekerjaan",
    "rincian_kerusakan",
    "start_time",
    "end_time",
    "problem",
    "tindakan",
    "biaya",
    "lama_kerja",
    "jarak_tempuh",
    "lain_lain",
    "catatan_perbaikan",
    "catatan_rekomendasi",
    "documentation_photos",
    "photo_captions",
    "signature_technician",
    "signature_client",
    "signature_technician_name",
    "signature_client_name",
    "signature_date",
    "report_type",
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def work_log_to_dict(log: TechnicianWorkLog) -> dict:
    data = {
        "id": log.id,
        "orderId": log.service_order_id,
        "technicianId": log.technician_id,
        "technicianName": log.technician.full_name if log.technician else None,
        "checkInTime": _iso(log.check_in_time),
        "checkOutTime": _iso(log.check_out_time),
        "checkInLat": log.location_lat,
        "checkInLng": log.location_lng,
        "checkOutLat": log.check_out_lat,
        "checkOutLng": log.check_out_lng,
        "notes": log.notes,
        "photoBeforeUrl": log.photo_before_url,
        "photoAfterUrl": log.photo_after_url,
        "completedAt": _iso(log.completed_at),
        "spareparts": [
            {"name": sp.sparepart_name, "quantity": sp.quantity, "unit": sp.unit, "notes": sp.notes}
            for sp in log.spareparts
        ],
    }
    for field in REPORT_FIELDS:
        value = getattr(log, field)
        data[field] = _iso(value) if field in ("start_time", "end_time", "signature_date") else value
    return data


def hours_between(start, end) -> float:
    """Elapsed hours rounded to 2 decimals"""
    return round((end - start).total_seconds() / 3600, 2)


def build_report_data(order: ServiceOrder, log: TechnicianWorkLog) -> dict:
    """Pre-computed fields for the technical report PDF"""
    technician_name = log.technician.full_name if log.technician else ""
    return {
        "order_number": order.order_number,
        "service_title": order.service_title,
        "client_name": log.nama_instansi or (order.client.name if order.client else ""),
        "location": log.alamat_lokasi or order.location_address,
        "scheduled_date": order.scheduled_date or (log.check_in_time.date() if log.check_in_time else None),
        "technician_name": technician_name,
        "problem": log.problem,
        "tindakan": log.tindakan,
        "rincian_pekerjaan": log.rincian_pekerjaan,
        "rincian_kerusakan": log.rincian_kerusakan,
        "lama_kerja": log.lama_kerja,
        "jarak_tempuh": log.jarak_tempuh,
        "spareparts": [
            {"name": sp.sparepart_name, "quantity": sp.quantity, "unit": sp.unit, "notes": sp.notes}
            for sp in log.spareparts
        ],
        "photos": log.documentation_photos or [],
        "photo_captions": log.photo_captions or [],
        "signature_technician": log.signature_technician,
        "signature_client": log.signature_client,
        "signature_technician_name": log.signature_technician_name or technician_name,
        "signature_client_name": log.signature_client_name,
        "signature_date": log.signature_date or log.completed_at,
    }


class WorkLogService:
    """Service class for technician field work"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WorkLogRepository()

    def _get_order(self, order_id: int, tenant_id: int) -> ServiceOrder:
        order = self.repo.get_order(self.db, order_id, tenant_id)
        if not order:
            raise HTTPException(status_code=404, detail="Service order not found")
        return order

    def _field_technician(self, ctx: TenantContext, order_id: int):
        """Technician profile of the caller plus their assignment on the order"""
        if ctx.role in READ_ONLY_FIELD_ROLES:
            raise HTTPException(status_code=403, detail="Your role has read-only access to field work")

        technician = TechnicianRepository.get_by_user(self.db, ctx.user.id, ctx.tenant_id)
        if not technician or not technician.is_active:
            raise HTTPException(status_code=403, detail="No active technician profile for this user")

        assignment = self.repo.get_assignment(self.db, order_id, technician.id)
        if not assignment:
            raise HTTPException(status_code=403, detail="You are not assigned to this order")
        return technician, assignment

    def check_in(self, order_id: int, data: CheckInRequest, ctx: TenantContext) -> dict:
        order = self._get_order(order_id, ctx.tenant_id)
        technician, assignment = self._field_technician(ctx, order_id)

        if order.status == "cancelled":
            raise HTTPException(status_code=409, detail="Order has been cancelled")

        log = self.repo.get_work_log(self.db, order_id, technician.id)
        if log and log.check_in_time:
            raise HTTPException(status_code=409, detail="Already checked in for this order")
        if not log:
            log = TechnicianWorkLog(
                tenant_id=ctx.tenant_id, service_order_id=order_id, technician_id=technician.id
            )
            self.db.add(log)

        log.check_in_time = utcnow()
        log.location_lat = data.lat
        log.location_lng = data.lng
        log.notes = clean_notes(data.notes)

        assignment.assignment_status = "in_progress"
        if order.status in ("listing", "scheduled"):
            order.status = "in_progress"

        self.db.commit()
        self.db.refresh(log)

        distance = distance_m(order.location_lat, order.location_lng, data.lat, data.lng)
        logger.info(
            f"📍 Technician {technician.id} checked in to order {order.order_number}"
            + (f" ({distance} m from site)" if distance is not None else "")
        )
        return {
            "success": True,
            "workLog": work_log_to_dict(log),
            "orderStatus": order.status,
            "distanceFromSiteM": distance,
        }

    def check_out(self, order_id: int, data: CheckOutRequest, ctx: TenantContext) -> dict:
        order = self._get_order(order_id, ctx.tenant_id)
        technician, assignment = self._field_technician(ctx, order_id)

        log = self.repo.get_work_log(self.db, order_id, technician.id)
        if not log or not log.check_in_time:
            raise HTTPException(status_code=409, detail="You have not checked in to this order")
        if log.check_out_time:
            raise HTTPException(status_code=409, detail="Already checked out from this order")

        log.check_out_time = utcnow()
        log.check_out_lat = data.lat
        log.check_out_lng = data.lng
        notes = clean_notes(data.notes)
        if notes:
            log.notes = f"{log.notes}\n{notes}" if log.notes else notes
        if data.photoBeforeUrl:
            log.photo_before_url = data.photoBeforeUrl
        if data.photoAfterUrl:
            log.photo_after_url = data.photoAfterUrl
        if data.lamaKerja is not None:
            log.lama_kerja = data.lamaKerja
        elif log.lama_kerja is None:
            log.lama_kerja = hours_between(log.check_in_time, log.check_out_time)

        assignment.assignment_status = "completed"
        if order.status in ("scheduled", "in_progress"):
            order.status = "completed"

        self.db.commit()
        self.db.refresh(log)
        logger.info(
            f"🏁 Technician {technician.id} checked out of order {order.order_number} "
            f"after {log.lama_kerja} h"
        )
        return {"success": True, "workLog": work_log_to_dict(log), "orderStatus": order.status}

    def submit_technical_report(self, order_id: int, data: TechnicalReportSubmit, ctx: TenantContext) -> dict:
        """Create or replace the caller's technical report on the order"""
        order = self._get_order(order_id, ctx.tenant_id)
        technician, _ = self._field_technician(ctx, order_id)

        if not (data.problem or "").strip() or not (data.tindakan or "").strip():
            raise HTTPException(status_code=400, detail="problem and tindakan are required")
        if (data.signature_technician or data.signature_client) and not (
            (data.signature_technician_name or "").strip() and (data.signature_client_name or "").strip()
        ):
            raise HTTPException(
                status_code=400, detail="Technician and client names are required with signatures"
            )

        log = self.repo.get_work_log(self.db, order_id, technician.id)
        if not log:
            log = TechnicianWorkLog(
                tenant_id=ctx.tenant_id, service_order_id=order_id, technician_id=technician.id
            )
            self.db.add(log)

        values = data.model_dump(include=set(REPORT_FIELDS))
        if values.get("jarak_tempuh") is None and len(data.travel_points) >= 2:
            values["jarak_tempuh"] = travel_distance_km(
                [(p.lat, p.lng) for p in data.travel_points]
            )
        if (data.signature_technician or data.signature_client) and not values.get("signature_date"):
            values["signature_date"] = utcnow()
        for field, value in values.items():
            setattr(log, field, value)
        log.completed_at = utcnow()

        log.spareparts.clear()
        for part in data.spareparts:
            log.spareparts.append(
                WorkOrderSparepart(
                    sparepart_name=part.name, quantity=part.quantity, unit=part.unit, notes=part.notes
                )
            )

        self.db.commit()
        self.db.refresh(log)
        logger.info(f"📝 Technical report saved for order {order.order_number} by technician {technician.id}")
        return work_log_to_dict(log)

    def get_work_log(self, order_id: int, ctx: TenantContext, technician_id: Optional[int] = None) -> dict:
        """Managers may read any technician's log; others read their own"""
        self._get_order(order_id, ctx.tenant_id)
        if technician_id is None or not ctx.is_manager:
            technician = TechnicianRepository.get_by_user(self.db, ctx.user.id, ctx.tenant_id)
            if not technician:
                raise HTTPException(status_code=404, detail="Work log not found")
            technician_id = technician.id

        log = self.repo.get_work_log(self.db, order_id, technician_id)
        if not log:
            raise HTTPException(status_code=404, detail="Work log not found")
        return work_log_to_dict(log)

    def list_order_work_logs(self, order_id: int, tenant_id: int) -> list[dict]:
        self._get_order(order_id, tenant_id)
        return [work_log_to_dict(log) for log in self.repo.get_order_work_logs(self.db, order_id)]

    # Report PDF

    def _report_log(self, order: ServiceOrder, technician_id: Optional[int] = None) -> TechnicianWorkLog:
        """Work log carrying the technical report (lead technician first)"""
        logs = [log for log in self.repo.get_order_work_logs(self.db, order.id) if log.problem]
        if technician_id is not None:
            logs = [log for log in logs if log.technician_id == technician_id]
        if not logs:
            raise HTTPException(status_code=404, detail="No technical report submitted for this order")

        lead_ids = {a.technician_id for a in order.assignments if a.role_in_order == "lead"}
        logs.sort(key=lambda log: (log.technician_id not in lead_ids, log.id))
        return logs[0]

    def report_pdf(self, order_id: int, tenant_id: int, technician_id: Optional[int] = None) -> tuple[bytes, str]:
        order = self._get_order(order_id, tenant_id)
        log = self._report_log(order, technician_id)
        pdf_bytes = TechnicalReportPDFGenerator(build_report_data(order, log)).generate()
        return pdf_bytes, f"laporan-teknis-{order.order_number}.pdf"

    def create_report_link(self, order_id: int, tenant_id: int) -> dict:
        order = self._get_order(order_id, tenant_id)
        token = generate_timed_token({"order_id": order.id, "tenant_id": tenant_id}, REPORT_LINK_SALT)
        return {
            "token": token,
            "url": f"{FRONTEND_URL}/report/{token}",
            "expiresInSeconds": REPORT_LINK_MAX_AGE,
        }

    def public_report_pdf(self, token: str) -> tuple[bytes, str]:
        """Client portal download; only once field work is finished"""
        payload = verify_timed_token(token, REPORT_LINK_SALT, REPORT_LINK_MAX_AGE)
        if not payload:
            raise HTTPException(status_code=404, detail="Report link is invalid or has expired")

        order = self.repo.get_order(self.db, payload["order_id"], payload["tenant_id"])
        if not order:
            raise HTTPException(status_code=404, detail="Report not found")
        if order.status not in POST_COMPLETION_STATUSES:
            raise HTTPException(status_code=403, detail="Report is not available until the work is completed")
        return self.report_pdf(order.id, payload["tenant_id"])

    @staticmethod
    def travel_distance(points: list[tuple[float, float]]) -> float:
        return travel_distance_km(points)

