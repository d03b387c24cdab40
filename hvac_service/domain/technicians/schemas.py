"""Technician domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_id_phone


class TechnicianCreate(BaseModel):
    fullName: str
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: list[str] = []

    @field_validator("fullName")
    @classmethod
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Full name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_technician_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v


class TechnicianUpdate(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: Optional[list[str]] = None
    isActive: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_technician_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v


class ActivationRequest(BaseModel):
    token: str
