"""Work log schemas - technician check-in/out and the technical report form

Report fields keep the names printed on the paper BAST form.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class CheckInRequest(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = None


class CheckOutRequest(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = None
    photoBeforeUrl: Optional[str] = None
    photoAfterUrl: Optional[str] = None
    lamaKerja: Optional[float] = Field(None, ge=0)


class SparepartIn(BaseModel):
    name: str
    quantity: float = 1
    unit: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Sparepart name is required")
        return v.strip()

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError("Quantity must be greater than 0")
        return v


class TechnicalReportSubmit(BaseModel):
    """Technical report; problem and tindakan are checked by the service"""

    nama_personal: Optional[str] = None
    nama_instansi: Optional[str] = None
    no_telephone: Optional[str] = None
    alamat_lokasi: Optional[str] = None
    jenis_pekerjaan: Optional[str] = None
    rincian_pekerjaan: Optional[str] = None
    rincian_kerusakan: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    problem: Optional[str] = None
    tindakan: Optional[str] = None
    biaya: Optional[float] = Field(None, ge=0)
    lama_kerja: Optional[float] = Field(None, ge=0)
    jarak_tempuh: Optional[float] = Field(None, ge=0)
    travel_points: list[GeoPoint] = []
    lain_lain: Optional[str] = None
    catatan_perbaikan: Optional[str] = None
    catatan_rekomendasi: Optional[str] = None
    documentation_photos: list[str] = []
    photo_captions: list[str] = []
    signature_technician: Optional[str] = None
    signature_client: Optional[str] = None
    signature_technician_name: Optional[str] = None
    signature_client_name: Optional[str] = None
    signature_date: Optional[datetime] = None
    report_type: str = "bast"
    spareparts: list[SparepartIn] = []


class TravelDistanceRequest(BaseModel):
    points: list[GeoPoint]
