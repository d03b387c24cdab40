"""Document schemas - SPK reports, documentation uploads and BAST"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DOCUMENTATION_CATEGORIES = ("before", "during", "after", "equipment", "problem")


class MaterialItem(BaseModel):
    name: str
    qty: float = Field(1, gt=0)
    unit: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Material name is required")
        return v.strip()


class SpkBase(BaseModel):
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    workDescription: Optional[str] = None
    findings: Optional[str] = None
    actionsTaken: Optional[str] = None
    materialsUsed: Optional[list[MaterialItem]] = None
    conditionBefore: Optional[str] = None
    conditionAfter: Optional[str] = None
    recommendations: Optional[str] = None

    @model_validator(mode="after")
    def validate_period(self):
        if self.startTime and self.endTime and self.endTime < self.startTime:
            raise ValueError("endTime must be after startTime")
        return self


class SpkCreate(SpkBase):
    pass


class SpkUpdate(SpkBase):
    pass


class BastCreate(BaseModel):
    clientName: Optional[str] = None
    technicianName: Optional[str] = None


class BastApprove(BaseModel):
    clientSignature: Optional[str] = None
    technicianSignature: Optional[str] = None


class BastReject(BaseModel):
    reason: Optional[str] = None
