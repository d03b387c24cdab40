"""Contract domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_id_phone
from .calculations import CUSTOM_FREQUENCY, MAINTENANCE_FREQUENCIES


class WizardLocation(BaseModel):
    locationName: str
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    contactPerson: Optional[str] = None
    contactPhone: Optional[str] = None

    @field_validator("locationName")
    @classmethod
    def validate_location_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Location name is required")
        return v.strip()

    @field_validator("contactPhone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v


class WizardUnit(BaseModel):
    """AC unit under contract; locationIndex points into the payload's locations"""

    locationIndex: int = 0
    unitCategory: str = "split"
    brand: Optional[str] = None
    model: Optional[str] = None
    capacity: Optional[str] = None
    roomName: Optional[str] = None
    roomType: Optional[str] = None
    maintenanceFrequency: str = "monthly"
    frequencyMonths: Optional[int] = None
    costPrice: float = 0
    sellingPrice: float = 0
    lastServiceDate: Optional[date] = None

    @field_validator("maintenanceFrequency")
    @classmethod
    def validate_frequency(cls, v):
        if v not in MAINTENANCE_FREQUENCIES:
            raise ValueError(f"maintenanceFrequency must be one of: {', '.join(MAINTENANCE_FREQUENCIES)}")
        return v

    @field_validator("costPrice", "sellingPrice")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Prices cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_custom_months(self):
        if self.maintenanceFrequency == CUSTOM_FREQUENCY and (
            not self.frequencyMonths or self.frequencyMonths < 1
        ):
            raise ValueError("Custom frequency requires frequencyMonths of at least 1")
        return self


class ContractWizardPayload(BaseModel):
    """Accumulated wizard state submitted in one request"""

    clientId: int
    contractNumber: str
    startDate: date
    endDate: date
    jobType: Optional[str] = None
    jobCategory: Optional[str] = None
    serviceNotes: Optional[str] = None
    marketingPartnerName: Optional[str] = None
    marketingFeePercentage: Optional[float] = 100
    locations: list[WizardLocation]
    units: list[WizardUnit]

    @field_validator("contractNumber")
    @classmethod
    def validate_contract_number(cls, v):
        if not v or not v.strip():
            raise ValueError("Contract number is required")
        return v.strip()

    @field_validator("locations")
    @classmethod
    def validate_locations(cls, v):
        if not v:
            raise ValueError("At least one location is required")
        return v

    @field_validator("units")
    @classmethod
    def validate_units(cls, v):
        if not v:
            raise ValueError("At least one unit is required")
        return v

    @model_validator(mode="after")
    def validate_period(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must be on or after startDate")
        return self


class ContractUpdate(BaseModel):
    """Header fields only; locations and units are fixed at creation"""

    contractNumber: Optional[str] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    jobType: Optional[str] = None
    jobCategory: Optional[str] = None
    serviceNotes: Optional[str] = None
    marketingPartnerName: Optional[str] = None
    marketingFeePercentage: Optional[float] = None
    isActive: Optional[bool] = None


class GenerateOrdersRequest(BaseModel):
    asOf: Optional[date] = None
    horizonDays: Optional[int] = None

    @field_validator("horizonDays")
    @classmethod
    def validate_horizon(cls, v):
        if v is not None and not 0 <= v <= 90:
            raise ValueError("horizonDays must be between 0 and 90")
        return v


class RescheduleRequest(BaseModel):
    orderId: int
    newDate: date
    reason: Optional[str] = None


# Contract requests (public intake). Required fields are checked by the
# service so that missing values answer 400 like the intake form expects.


class ContractRequestCreate(BaseModel):
    companyName: Optional[str] = None
    contactPerson: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    unitCount: Optional[int] = None
    locationCount: Optional[int] = 1
    preferredFrequency: Optional[str] = None
    notes: Optional[str] = None


class ContractRequestApprove(BaseModel):
    clientId: Optional[int] = None
    notes: Optional[str] = None


class ContractRequestReject(BaseModel):
    reason: Optional[str] = None
