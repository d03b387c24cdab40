"""Client domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_id_phone

CLIENT_TYPES = ("household", "corporate")
UNIT_CATEGORIES = ("split", "cassette", "standing", "central", "window", "vrv")


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    clientType: str = "household"
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Client name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_client_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v

    @field_validator("clientType")
    @classmethod
    def validate_client_type(cls, v):
        if v not in CLIENT_TYPES:
            raise ValueError(f"clientType must be one of: {', '.join(CLIENT_TYPES)}")
        return v


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    clientType: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_client_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v

    @field_validator("clientType")
    @classmethod
    def validate_client_type(cls, v):
        if v is not None and v not in CLIENT_TYPES:
            raise ValueError(f"clientType must be one of: {', '.join(CLIENT_TYPES)}")
        return v


class PropertyCreate(BaseModel):
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    propertyType: Optional[str] = None


class PropertyUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    propertyType: Optional[str] = None


class AcUnitCreate(BaseModel):
    """Schema for registering an AC unit at a client"""

    propertyId: Optional[int] = None
    unitCategory: str = "split"
    brand: Optional[str] = None
    model: Optional[str] = None
    capacity: Optional[str] = None
    roomName: Optional[str] = None
    serialNumber: Optional[str] = None
    installDate: Optional[date] = None
    lastServiceDate: Optional[date] = None

    @field_validator("unitCategory")
    @classmethod
    def validate_category(cls, v):
        if v not in UNIT_CATEGORIES:
            raise ValueError(f"unitCategory must be one of: {', '.join(UNIT_CATEGORIES)}")
        return v


class AcUnitUpdate(BaseModel):
    propertyId: Optional[int] = None
    unitCategory: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    capacity: Optional[str] = None
    roomName: Optional[str] = None
    serialNumber: Optional[str] = None
    installDate: Optional[date] = None
    lastServiceDate: Optional[date] = None
    isActive: Optional[bool] = None

    @field_validator("unitCategory")
    @classmethod
    def validate_category(cls, v):
        if v is not None and v not in UNIT_CATEGORIES:
            raise ValueError(f"unitCategory must be one of: {', '.join(UNIT_CATEGORIES)}")
        return v


class PortalActivation(BaseModel):
    token: str
