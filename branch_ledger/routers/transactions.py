"""
Transactions router — recording inter-branch transfers and changing their status.

Endpoints:
  POST   /transactions                      — [Admin] Record a transfer
  GET    /transactions                      — List transfers (filters + pagination)
  GET    /transactions/{id}                 — Get a single transfer
  PATCH  /transactions/{id}/status          — [Admin] Set status
  POST   /transactions/{id}/toggle-status   — [Admin] Flip pending <-> confirmed
  DELETE /transactions/{id}                 — [Admin] Delete a transfer

Every mutation that changes whether a transfer is confirmed also refreshes
the receiving branch's budgets before the request commits.
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.config import settings
from branch_ledger.database import get_db
from branch_ledger.dependencies import get_caller, require_admin
from branch_ledger.schemas.transaction import (
    StatusUpdateRequest,
    TransactionCreateRequest,
    TransactionResponse,
)
from branch_ledger.security import Caller
from branch_ledger.services import transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Record a transfer",
)
async def create_transaction(
    request: TransactionCreateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a transfer between two branches.

    - **amount**: Positive, up to two decimal places
    - **currency**: Defaults to the configured currency (AFN)
    - **status**: "pending" (default) or "confirmed"; a confirmed transfer
      counts toward the receiving branch's budgets immediately
    """
    return await transaction_service.create_transaction(
        db,
        caller,
        from_branch_id=request.from_branch_id,
        to_branch_id=request.to_branch_id,
        from_staff_id=request.from_staff_id,
        to_staff_id=request.to_staff_id,
        amount=request.amount,
        purpose=request.purpose,
        transaction_date=request.transaction_date,
        currency=request.currency or settings.DEFAULT_CURRENCY,
        transfer_method=request.transfer_method or settings.DEFAULT_TRANSFER_METHOD,
        status=request.status,
        received_date=request.received_date,
        confirmation_code=request.confirmation_code,
        notes=request.notes,
    )


@router.get("", response_model=list[TransactionResponse], summary="List transfers")
async def list_transactions(
    status: Literal["pending", "confirmed", "cancelled"] | None = Query(None),
    branch_id: uuid.UUID | None = Query(None, description="Sent from or received by this branch"),
    search: str | None = Query(None, description="Number, code, purpose, notes, branch or staff name, or date"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """List transfers, newest transfer date first."""
    return await transaction_service.list_transactions(
        db,
        status_filter=status,
        branch_id=branch_id,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse, summary="Get a transfer")
async def get_transaction(
    transaction_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, transaction_id)


@router.patch(
    "/{transaction_id}/status",
    response_model=TransactionResponse,
    summary="[Admin] Set a transfer's status",
)
async def update_status(
    transaction_id: uuid.UUID,
    request: StatusUpdateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a transfer through pending / confirmed / cancelled.

    Cancelled is final. Returns 409 with the current and requested status
    when the move is not allowed.
    """
    return await transaction_service.set_status(db, caller, transaction_id, request.status)


@router.post(
    "/{transaction_id}/toggle-status",
    response_model=TransactionResponse,
    summary="[Admin] Flip pending <-> confirmed",
)
async def toggle_status(
    transaction_id: uuid.UUID,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.toggle_status(db, caller, transaction_id)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a transfer",
)
async def delete_transaction(
    transaction_id: uuid.UUID,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await transaction_service.delete_transaction(db, caller, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
