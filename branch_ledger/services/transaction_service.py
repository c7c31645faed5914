"""
Transaction service — recording inter-branch transfers and their status.

This module handles:
  - Creating transfers (validated server-side, even though the UI also validates)
  - The status state machine
  - Deleting transfers
  - Listing and reading transfers

State machine:

    pending  <──────> confirmed
       │                  │
       └──> cancelled <───┘        (cancelled is terminal)

  The UI exposes a toggle between pending and confirmed; cancellation is a
  separate explicit action. Setting a transaction to the status it already
  has is a no-op.

Budget coupling:
  Only confirmed transactions count toward budgets. Whenever a create,
  status change or delete changes whether a row counts as confirmed, the
  destination buckets are recomputed from scratch through budget_service.
  The status write and the recompute are flushed in the same session, so
  they commit together.
"""

import logging
import random
import string
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, cast, select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from branch_ledger.exceptions import (
    BranchNotFoundError,
    InvalidStatusTransitionError,
    StaffNotFoundError,
    TransactionNotFoundError,
    TransactionValidationError,
)
from branch_ledger.models.branch import Branch, StaffProfile
from branch_ledger.models.transaction import Transaction, TransactionStatus
from branch_ledger.security import Caller, ensure_can_mutate_ledger
from branch_ledger.services import budget_service

logger = logging.getLogger(__name__)

PENDING = TransactionStatus.PENDING.value
CONFIRMED = TransactionStatus.CONFIRMED.value
CANCELLED = TransactionStatus.CANCELLED.value

# Allowed target statuses for each current status
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({PENDING, CANCELLED}),
    CANCELLED: frozenset(),
}

# Statuses a caller may choose when recording a new transfer
INITIAL_STATUSES = frozenset({PENDING, CONFIRMED})


def _generate_transaction_number(on: date) -> str:
    """TXN-<yyyymmdd>-<6 random digits>, e.g. TXN-20250315-482913."""
    suffix = "".join(random.choices(string.digits, k=6))
    return f"TXN-{on:%Y%m%d}-{suffix}"


async def _unique_transaction_number(db: AsyncSession, on: date) -> str:
    for _ in range(10):
        number = _generate_transaction_number(on)
        existing = await db.execute(
            select(Transaction.id).where(Transaction.transaction_number == number)
        )
        if existing.first() is None:
            return number
    # A million numbers per day; exhausting ten draws is effectively impossible
    raise RuntimeError("Failed to generate a unique transaction number")


async def _ensure_exists(db: AsyncSession, model, object_id: uuid.UUID, error_cls) -> None:
    if await db.get(model, object_id) is None:
        raise error_cls(object_id)


async def create_transaction(
    db: AsyncSession,
    caller: Caller,
    from_branch_id: uuid.UUID,
    to_branch_id: uuid.UUID,
    from_staff_id: uuid.UUID,
    to_staff_id: uuid.UUID,
    amount: Decimal,
    purpose: str,
    transaction_date: date,
    currency: str = "AFN",
    transfer_method: str = "MoneyGram",
    status: str = PENDING,
    received_date: date | None = None,
    confirmation_code: str | None = None,
    notes: str | None = None,
) -> Transaction:
    """
    Record a new transfer between branches.

    Args:
        db: Database session.
        caller: Who is recording the transfer (must be an admin).
        from_branch_id / to_branch_id: Sending and receiving branches.
        from_staff_id / to_staff_id: Sender and receiver.
        amount: Positive decimal amount.
        purpose: Required free-text reason.
        transaction_date: Date the transfer was initiated.
        currency: 3-letter currency code.
        transfer_method: Free-form label (MoneyGram, Western Union, Hawala...).
        status: "pending" (default) or "confirmed".
        received_date, confirmation_code, notes: Optional details.

    Returns:
        The created Transaction.

    Raises:
        UnauthorizedAccessError: If the caller is not an admin.
        TransactionValidationError: Non-positive amount, empty purpose,
            missing date, or a disallowed initial status.
        BranchNotFoundError / StaffNotFoundError: Unknown references.
    """
    ensure_can_mutate_ledger(caller)

    if amount is None or amount <= 0:
        raise TransactionValidationError("Amount must be greater than zero")
    if not purpose or not purpose.strip():
        raise TransactionValidationError("Purpose is required")
    if transaction_date is None:
        raise TransactionValidationError("Transaction date is required")
    if status not in INITIAL_STATUSES:
        raise TransactionValidationError(
            f"New transactions must be 'pending' or 'confirmed', not '{status}'"
        )

    await _ensure_exists(db, Branch, from_branch_id, BranchNotFoundError)
    await _ensure_exists(db, Branch, to_branch_id, BranchNotFoundError)
    await _ensure_exists(db, StaffProfile, from_staff_id, StaffNotFoundError)
    await _ensure_exists(db, StaffProfile, to_staff_id, StaffNotFoundError)

    txn = Transaction(
        transaction_number=await _unique_transaction_number(db, transaction_date),
        from_branch_id=from_branch_id,
        to_branch_id=to_branch_id,
        from_staff_id=from_staff_id,
        to_staff_id=to_staff_id,
        amount=amount,
        currency=currency.upper(),
        transfer_method=transfer_method,
        transaction_date=transaction_date,
        received_date=received_date,
        status=status,
        confirmation_code=confirmation_code or None,
        purpose=purpose.strip(),
        notes=notes or None,
        created_by=caller.user_id,
    )
    db.add(txn)
    await db.flush()

    logger.info(
        "Recorded transaction %s amount=%s %s status=%s",
        txn.transaction_number, txn.amount, txn.currency, txn.status,
    )

    if txn.is_confirmed:
        await budget_service.recompute_for_destination(
            db, txn.to_branch_id, txn.transaction_date, txn.currency
        )
    return txn


async def get_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> Transaction:
    txn = await db.get(Transaction, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


async def set_status(
    db: AsyncSession,
    caller: Caller,
    transaction_id: uuid.UUID,
    new_status: str,
) -> Transaction:
    """
    Move a transaction to a new status.

    Same status is a no-op. A change that crosses into or out of
    "confirmed" recomputes the destination branch's budgets.

    Raises:
        UnauthorizedAccessError: If the caller is not an admin.
        TransactionNotFoundError: If the transaction doesn't exist.
        InvalidStatusTransitionError: If the state machine forbids the move.
    """
    ensure_can_mutate_ledger(caller)
    txn = await get_transaction(db, transaction_id)

    current = txn.status
    if new_status == current:
        return txn
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransitionError(current, new_status)

    was_confirmed = txn.is_confirmed
    txn.status = new_status
    txn.updated_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info(
        "Transaction %s status %s -> %s", txn.transaction_number, current, new_status
    )

    if was_confirmed != txn.is_confirmed:
        await budget_service.recompute_for_destination(
            db, txn.to_branch_id, txn.transaction_date, txn.currency
        )
    return txn


async def toggle_status(
    db: AsyncSession,
    caller: Caller,
    transaction_id: uuid.UUID,
) -> Transaction:
    """Flip pending <-> confirmed (the status button in the transaction list)."""
    ensure_can_mutate_ledger(caller)
    txn = await get_transaction(db, transaction_id)
    if txn.status == PENDING:
        return await set_status(db, caller, transaction_id, CONFIRMED)
    if txn.status == CONFIRMED:
        return await set_status(db, caller, transaction_id, PENDING)
    raise InvalidStatusTransitionError(txn.status, "toggle")


async def delete_transaction(
    db: AsyncSession,
    caller: Caller,
    transaction_id: uuid.UUID,
) -> None:
    """
    Delete a transaction, reversing any budget effect it had.

    The recompute runs after the row is gone, so the deleted amount drops
    out of the aggregation.
    """
    ensure_can_mutate_ledger(caller)
    txn = await get_transaction(db, transaction_id)

    was_confirmed = txn.is_confirmed
    number = txn.transaction_number
    branch_id, txn_date, currency = txn.to_branch_id, txn.transaction_date, txn.currency

    await db.delete(txn)
    await db.flush()
    logger.info("Deleted transaction %s", number)

    if was_confirmed:
        await budget_service.recompute_for_destination(db, branch_id, txn_date, currency)


async def list_transactions(
    db: AsyncSession,
    status_filter: str | None = None,
    branch_id: uuid.UUID | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """
    List transactions, newest transfer date first.

    Args:
        status_filter: Only this status ("pending", "confirmed", "cancelled").
        branch_id: Only transfers sent from or received by this branch.
        search: Case-insensitive match on transaction number, confirmation
                code, purpose, notes, either branch name, either staff
                name, or either date (as 2025-03-15, a fragment such as
                2025-03, or as 15/03/2025).
        limit / offset: Pagination.
    """
    query = (
        select(Transaction)
        .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if branch_id is not None:
        query = query.where(
            or_(Transaction.from_branch_id == branch_id, Transaction.to_branch_id == branch_id)
        )
    if search:
        query = _apply_search(query, search.strip())

    result = await db.execute(query)
    return list(result.scalars().all())


def _apply_search(query, search: str):
    from_branch = aliased(Branch)
    to_branch = aliased(Branch)
    from_staff = aliased(StaffProfile)
    to_staff = aliased(StaffProfile)

    pattern = f"%{search}%"
    conditions = [
        Transaction.transaction_number.ilike(pattern),
        Transaction.confirmation_code.ilike(pattern),
        Transaction.purpose.ilike(pattern),
        Transaction.notes.ilike(pattern),
        from_branch.name.ilike(pattern),
        to_branch.name.ilike(pattern),
        from_staff.full_name.ilike(pattern),
        to_staff.full_name.ilike(pattern),
        cast(Transaction.transaction_date, String).ilike(pattern),
        cast(Transaction.received_date, String).ilike(pattern),
    ]

    # The dashboard displays dates as DD/MM/YYYY
    try:
        on = datetime.strptime(search, "%d/%m/%Y").date()
    except ValueError:
        on = None
    if on is not None:
        conditions.append(Transaction.transaction_date == on)
        conditions.append(Transaction.received_date == on)

    return (
        query
        .outerjoin(from_branch, Transaction.from_branch_id == from_branch.id)
        .outerjoin(to_branch, Transaction.to_branch_id == to_branch.id)
        .outerjoin(from_staff, Transaction.from_staff_id == from_staff.id)
        .outerjoin(to_staff, Transaction.to_staff_id == to_staff.id)
        .where(or_(*conditions))
    )
