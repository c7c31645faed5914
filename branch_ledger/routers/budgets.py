"""
Budgets router — allocations per branch and period.

Endpoints:
  POST   /budgets        — [Admin] Create a budget (spend filled from the ledger)
  GET    /budgets        — List budgets
  GET    /budgets/{id}   — Get one budget
  PATCH  /budgets/{id}   — [Admin] Edit allocation, period, currency or notes
  DELETE /budgets/{id}   — [Admin] Delete a budget

spent_amount is read-only here; it follows the confirmed transactions.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.config import settings
from branch_ledger.database import get_db
from branch_ledger.dependencies import get_caller, require_admin
from branch_ledger.schemas.budget import BudgetCreateRequest, BudgetResponse, BudgetUpdateRequest
from branch_ledger.security import Caller
from branch_ledger.services import budget_service

router = APIRouter()


@router.post(
    "",
    response_model=BudgetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a budget",
)
async def create_budget(
    request: BudgetCreateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a monthly or yearly budget for a branch.

    The spent amount starts at the sum of confirmed transfers already
    received by the branch in that period and currency.
    """
    return await budget_service.create_budget(
        db,
        caller,
        branch_id=request.branch_id,
        budget_period=request.budget_period,
        year=request.year,
        month=request.month,
        allocated_amount=request.allocated_amount,
        currency=request.currency or settings.DEFAULT_CURRENCY,
        notes=request.notes,
    )


@router.get("", response_model=list[BudgetResponse], summary="List budgets")
async def list_budgets(
    branch_id: uuid.UUID | None = Query(None),
    year: int | None = Query(None),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.list_budgets(db, branch_id=branch_id, year=year)


@router.get("/{budget_id}", response_model=BudgetResponse, summary="Get a budget")
async def get_budget(
    budget_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.get_budget(db, budget_id)


@router.patch("/{budget_id}", response_model=BudgetResponse, summary="[Admin] Edit a budget")
async def update_budget(
    budget_id: uuid.UUID,
    request: BudgetUpdateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = request.model_dump(exclude_unset=True)
    return await budget_service.update_budget(db, caller, budget_id, changes)


@router.delete(
    "/{budget_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a budget",
)
async def delete_budget(
    budget_id: uuid.UUID,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await budget_service.delete_budget(db, caller, budget_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
