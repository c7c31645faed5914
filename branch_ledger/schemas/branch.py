"""Pydantic schemas for branch and staff reference data."""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class BranchCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    province: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=30)


class BranchResponse(BaseModel):
    id: uuid.UUID
    name: str
    province: str | None
    address: str | None
    phone: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class StaffCreateRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr | None = None
    branch_id: uuid.UUID | None = None


class StaffResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str | None
    branch_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
