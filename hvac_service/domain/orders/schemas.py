"""Service order schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import KANBAN_COLUMNS, ORDER_STATUSES, ORDER_TYPES, PRIORITIES
from ...shared.validators import TIME_PATTERN


def _check_choice(value, choices, field):
    if value is not None and value not in choices:
        raise ValueError(f"{field} must be one of: {', '.join(choices)}")
    return value


def _check_time(value):
    if value and not TIME_PATTERN.match(value):
        raise ValueError("Time must be HH:MM")
    return value[:5] if value else value


def _check_required_text(value):
    if value is not None and not value.strip():
        raise ValueError("Field is required")
    return value.strip() if value is not None else value


def _check_duration(value):
    if value is not None and value <= 0:
        raise ValueError("estimatedDuration must be positive minutes")
    return value


class OrderCreate(BaseModel):
    """Schema for creating a service order"""

    clientId: int
    orderType: str
    priority: str = "medium"
    serviceTitle: str
    serviceDescription: Optional[str] = None
    locationAddress: str
    locationLat: Optional[float] = None
    locationLng: Optional[float] = None
    requestedDate: Optional[date] = None
    scheduledDate: Optional[date] = None
    scheduledTime: Optional[str] = None
    estimatedDuration: Optional[int] = None
    notes: Optional[str] = None
    isSurvey: bool = False
    technicianIds: list[int] = []
    leadTechnicianId: Optional[int] = None

    @field_validator("orderType")
    @classmethod
    def validate_order_type(cls, v):
        return _check_choice(v, ORDER_TYPES, "orderType")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        return _check_choice(v, PRIORITIES, "priority")

    @field_validator("serviceTitle", "locationAddress")
    @classmethod
    def validate_required_text(cls, v):
        return _check_required_text(v)

    @field_validator("scheduledTime")
    @classmethod
    def validate_scheduled_time(cls, v):
        return _check_time(v)

    @field_validator("estimatedDuration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)


class OrderUpdate(BaseModel):
    """Schema for updating order details; status has its own endpoint"""

    clientId: Optional[int] = None
    orderType: Optional[str] = None
    priority: Optional[str] = None
    serviceTitle: Optional[str] = None
    serviceDescription: Optional[str] = None
    locationAddress: Optional[str] = None
    locationLat: Optional[float] = None
    locationLng: Optional[float] = None
    requestedDate: Optional[date] = None
    scheduledDate: Optional[date] = None
    scheduledTime: Optional[str] = None
    estimatedDuration: Optional[int] = None
    notes: Optional[str] = None
    isSurvey: Optional[bool] = None

    @field_validator("orderType")
    @classmethod
    def validate_order_type(cls, v):
        return _check_choice(v, ORDER_TYPES, "orderType")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        return _check_choice(v, PRIORITIES, "priority")

    @field_validator("scheduledTime")
    @classmethod
    def validate_scheduled_time(cls, v):
        return _check_time(v)

    @field_validator("serviceTitle", "locationAddress")
    @classmethod
    def validate_required_text(cls, v):
        return _check_required_text(v)

    @field_validator("estimatedDuration")
    @classmethod
    def validate_duration(cls, v):
        return _check_duration(v)


class AssignTechniciansRequest(BaseModel):
    technicianIds: list[int]
    leadTechnicianId: Optional[int] = None

    @field_validator("technicianIds")
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError("At least one technician is required")
        return list(dict.fromkeys(v))


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_choice(v, ORDER_STATUSES, "status")


class MoveCardRequest(BaseModel):
    column: str

    @field_validator("column")
    @classmethod
    def validate_column(cls, v):
        return _check_choice(v, [c for c, _ in KANBAN_COLUMNS], "column")
