"""
Pydantic schemas for branch budgets.

spent_amount is never accepted from clients: it is derived from confirmed
transactions and only ever appears in responses.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class BudgetCreateRequest(BaseModel):
    """Request body for POST /budgets."""
    branch_id: uuid.UUID
    budget_period: Literal["monthly", "yearly"]
    year: int = Field(ge=2000, le=2100)
    month: int | None = Field(None, ge=1, le=12)
    allocated_amount: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    notes: str | None = None

    @model_validator(mode="after")
    def month_matches_period(self):
        """Monthly budgets need a month; yearly budgets must not have one."""
        if self.budget_period == "monthly" and self.month is None:
            raise ValueError("Monthly budgets require a month")
        if self.budget_period == "yearly" and self.month is not None:
            raise ValueError("Yearly budgets cannot have a month")
        return self


class BudgetUpdateRequest(BaseModel):
    """Request body for PATCH /budgets/{id}. Only sent fields change."""
    budget_period: Literal["monthly", "yearly"] | None = None
    year: int | None = Field(None, ge=2000, le=2100)
    month: int | None = Field(None, ge=1, le=12)
    allocated_amount: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    notes: str | None = None


class BudgetResponse(BaseModel):
    id: uuid.UUID
    branch_id: uuid.UUID
    budget_period: str
    year: int
    month: int | None
    allocated_amount: Decimal
    spent_amount: Decimal
    remaining_amount: Decimal
    percentage_spent: float
    currency: str
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
