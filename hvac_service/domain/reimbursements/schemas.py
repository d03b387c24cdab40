"""Reimbursement schemas - categories and finance decisions"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import clean_notes


class CategoryCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Category name is required")
        if len(v.strip()) > 100:
            raise ValueError("Category name must be at most 100 characters")
        return v.strip()


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Category name is required")
        return v.strip() if v is not None else v


class DecisionRequest(BaseModel):
    note: Optional[str] = None

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        return clean_notes(v)
