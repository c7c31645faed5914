"""
Pydantic schemas for transaction endpoints.

Amounts are decimals with two fractional digits (e.g. 1500.50 AFN). They
are sent and returned as JSON numbers or strings; responses serialize them
as strings so no precision is lost.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class TransactionCreateRequest(BaseModel):
    """Request body for POST /transactions."""
    from_branch_id: uuid.UUID
    to_branch_id: uuid.UUID
    from_staff_id: uuid.UUID
    to_staff_id: uuid.UUID
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2, description="Must be positive")
    currency: str | None = Field(None, min_length=3, max_length=3)
    transfer_method: str | None = Field(None, max_length=50)
    transaction_date: date
    received_date: date | None = None
    status: Literal["pending", "confirmed"] = "pending"
    confirmation_code: str | None = Field(None, max_length=50)
    purpose: str = Field(min_length=1)
    notes: str | None = None

    @field_validator("purpose")
    @classmethod
    def purpose_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Purpose is required")
        return value


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /transactions/{id}/status."""
    status: Literal["pending", "confirmed", "cancelled"]


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: uuid.UUID
    transaction_number: str
    from_branch_id: uuid.UUID
    to_branch_id: uuid.UUID
    from_staff_id: uuid.UUID
    to_staff_id: uuid.UUID
    amount: Decimal
    currency: str
    transfer_method: str
    transaction_date: date
    received_date: date | None
    status: str
    confirmation_code: str | None
    purpose: str
    notes: str | None
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
