"""Tenant domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import ROLES
from ...shared.validators import validate_email, validate_id_phone


def _check_role(v):
    if v not in ROLES:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    return v


class TenantCreate(BaseModel):
    """Schema for registering a new company"""

    name: str
    contactEmail: str
    contactPhone: str
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Company name is required")
        return v.strip()

    @field_validator("contactEmail")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)

    @field_validator("contactPhone")
    @classmethod
    def validate_contact_phone(cls, v):
        return validate_id_phone(v)


class TenantUpdate(BaseModel):
    """Schema for updating company details (only provided fields change)"""

    name: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None
    logoUrl: Optional[str] = None
    timezone: Optional[str] = None
    businessHours: Optional[dict] = None

    @field_validator("contactEmail")
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)

    @field_validator("contactPhone")
    @classmethod
    def validate_contact_phone(cls, v):
        return validate_id_phone(v)


class SwitchTenantRequest(BaseModel):
    tenantId: int


class MemberAdd(BaseModel):
    """Schema for adding a team member by e-mail"""

    email: str
    role: str
    fullName: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_member_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_id_phone(v)
        return v


class MemberRoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class InvitationCreate(BaseModel):
    email: str
    role: str

    @field_validator("email")
    @classmethod
    def validate_invite_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class InvitationAccept(BaseModel):
    token: str
