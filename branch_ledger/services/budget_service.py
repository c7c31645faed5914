"""
Budget service — budget CRUD and the spent-amount accrual engine.

spent_amount on a Budget is DERIVED. It always equals:

    SUM(amount) over transactions where
        to_branch_id     = budget.branch_id
        status           = 'confirmed'
        currency         = budget.currency
        transaction_date within the budget period (the month, or the whole year)

Full recomputation:
  recompute() re-runs that aggregation against the ledger and overwrites
  spent_amount. It is never adjusted by adding or subtracting a delta, so a
  missed or repeated call cannot leave the value drifted: calling it again
  always converges on the ledger's truth. The transaction service calls it
  after every create/status change/delete that touches a confirmed row.

A transaction can land in two buckets: the monthly budget for its
(year, month) and the yearly budget for its year. recompute_for_destination()
refreshes both.

If no budget row matches, recompute() does nothing — budgets are only ever
created by an operator. create_budget() runs the first recompute itself, so a
budget created after its transactions starts with the correct spend.
"""

import calendar
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.exceptions import (
    BranchNotFoundError,
    BudgetNotFoundError,
    DuplicateBudgetError,
    TransactionValidationError,
)
from branch_ledger.models.branch import Branch
from branch_ledger.models.budget import Budget, BudgetPeriod
from branch_ledger.models.transaction import Transaction, TransactionStatus
from branch_ledger.security import Caller, ensure_can_mutate_ledger

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class BudgetPeriodKey:
    """Identifies a budget bucket: ("monthly", 2025, 3) or ("yearly", 2025, None)."""
    budget_period: str
    year: int
    month: int | None = None

    @classmethod
    def monthly(cls, year: int, month: int) -> "BudgetPeriodKey":
        return cls(BudgetPeriod.MONTHLY.value, year, month)

    @classmethod
    def yearly(cls, year: int) -> "BudgetPeriodKey":
        return cls(BudgetPeriod.YEARLY.value, year, None)

    def date_bounds(self) -> tuple[date, date]:
        """Inclusive first and last calendar day covered by this bucket."""
        if self.budget_period == BudgetPeriod.YEARLY.value:
            return date(self.year, 1, 1), date(self.year, 12, 31)
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, 1), date(self.year, self.month, last_day)


def _as_decimal(value) -> Decimal:
    # SQLite hands sums back through float; normalise to 2dp
    return Decimal(str(value or 0)).quantize(_CENTS)


def _key_filter(query, branch_id: uuid.UUID, key: BudgetPeriodKey, currency: str):
    query = query.where(
        Budget.branch_id == branch_id,
        Budget.budget_period == key.budget_period,
        Budget.year == key.year,
        Budget.currency == currency,
    )
    if key.month is None:
        return query.where(Budget.month.is_(None))
    return query.where(Budget.month == key.month)


# ---------------------------------------------------------------------------
# Accrual engine
# ---------------------------------------------------------------------------

async def confirmed_total(
    db: AsyncSession,
    branch_id: uuid.UUID,
    key: BudgetPeriodKey,
    currency: str,
) -> Decimal:
    """Sum of confirmed transactions into a branch for a bucket and currency."""
    first_day, last_day = key.date_bounds()
    result = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount), 0))
        .where(
            Transaction.to_branch_id == branch_id,
            Transaction.status == TransactionStatus.CONFIRMED.value,
            Transaction.currency == currency,
            Transaction.transaction_date >= first_day,
            Transaction.transaction_date <= last_day,
        )
    )
    return _as_decimal(result.scalar())


async def recompute(
    db: AsyncSession,
    branch_id: uuid.UUID,
    key: BudgetPeriodKey,
    currency: str,
) -> Decimal | None:
    """
    Recompute spent_amount for the budget(s) matching a bucket.

    Args:
        db: Database session.
        branch_id: The destination branch.
        key: The monthly or yearly bucket.
        currency: Budget currency.

    Returns:
        The new spent amount, or None if no budget matches (nothing written).
    """
    result = await db.execute(_key_filter(select(Budget), branch_id, key, currency))
    budgets = list(result.scalars().all())
    if not budgets:
        return None

    total = await confirmed_total(db, branch_id, key, currency)
    for budget in budgets:
        budget.spent_amount = total
    await db.flush()

    logger.info(
        "Recomputed budget spend branch=%s period=%s/%s/%s currency=%s spent=%s",
        branch_id, key.budget_period, key.year, key.month, currency, total,
    )
    return total


async def recompute_for_destination(
    db: AsyncSession,
    branch_id: uuid.UUID,
    transaction_date: date,
    currency: str,
) -> None:
    """Recompute both buckets (month and year) a transaction can count toward."""
    await recompute(
        db, branch_id,
        BudgetPeriodKey.monthly(transaction_date.year, transaction_date.month),
        currency,
    )
    await recompute(db, branch_id, BudgetPeriodKey.yearly(transaction_date.year), currency)


# ---------------------------------------------------------------------------
# Budget CRUD
# ---------------------------------------------------------------------------

def _normalise_key(budget_period: str, year: int, month: int | None) -> BudgetPeriodKey:
    if budget_period == BudgetPeriod.YEARLY.value:
        return BudgetPeriodKey.yearly(year)
    if budget_period == BudgetPeriod.MONTHLY.value:
        if month is None or not 1 <= month <= 12:
            raise TransactionValidationError("Monthly budgets require a month between 1 and 12")
        return BudgetPeriodKey.monthly(year, month)
    raise TransactionValidationError(f"Unknown budget period '{budget_period}'")


async def _ensure_unique(
    db: AsyncSession,
    branch_id: uuid.UUID,
    key: BudgetPeriodKey,
    currency: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    query = _key_filter(select(Budget.id), branch_id, key, currency)
    if exclude_id is not None:
        query = query.where(Budget.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise DuplicateBudgetError()


async def create_budget(
    db: AsyncSession,
    caller: Caller,
    branch_id: uuid.UUID,
    budget_period: str,
    year: int,
    allocated_amount: Decimal,
    currency: str,
    month: int | None = None,
    notes: str | None = None,
) -> Budget:
    """
    Create a budget and populate its spend from the existing ledger.

    Raises:
        UnauthorizedAccessError: If the caller is not an admin.
        BranchNotFoundError: If the branch doesn't exist.
        DuplicateBudgetError: If the bucket already has a budget in this currency.
    """
    ensure_can_mutate_ledger(caller)

    if await db.get(Branch, branch_id) is None:
        raise BranchNotFoundError(branch_id)

    key = _normalise_key(budget_period, year, month)
    currency = currency.upper()
    await _ensure_unique(db, branch_id, key, currency)

    budget = Budget(
        branch_id=branch_id,
        budget_period=key.budget_period,
        year=key.year,
        month=key.month,
        allocated_amount=allocated_amount,
        spent_amount=Decimal("0"),
        currency=currency,
        notes=notes,
    )
    db.add(budget)
    await db.flush()

    await recompute(db, branch_id, key, currency)
    return budget


async def get_budget(db: AsyncSession, budget_id: uuid.UUID) -> Budget:
    budget = await db.get(Budget, budget_id)
    if budget is None:
        raise BudgetNotFoundError(budget_id)
    return budget


async def list_budgets(
    db: AsyncSession,
    branch_id: uuid.UUID | None = None,
    year: int | None = None,
) -> list[Budget]:
    """List budgets, newest period first."""
    query = select(Budget).order_by(Budget.year.desc(), Budget.month.desc())
    if branch_id is not None:
        query = query.where(Budget.branch_id == branch_id)
    if year is not None:
        query = query.where(Budget.year == year)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_budget(
    db: AsyncSession,
    caller: Caller,
    budget_id: uuid.UUID,
    changes: dict,
) -> Budget:
    """
    Apply operator edits to a budget.

    Editable: budget_period, year, month, allocated_amount, currency, notes.
    spent_amount is not editable; it is recomputed for the (possibly new)
    bucket after the edit.
    """
    ensure_can_mutate_ledger(caller)
    budget = await get_budget(db, budget_id)

    budget_period = changes.get("budget_period") or budget.budget_period
    year = changes.get("year") or budget.year
    month = changes.get("month", budget.month)
    if budget_period == BudgetPeriod.YEARLY.value:
        month = None
    currency = (changes.get("currency") or budget.currency).upper()
    key = _normalise_key(budget_period, year, month)

    if (key.budget_period, key.year, key.month, currency) != (
        budget.budget_period, budget.year, budget.month, budget.currency
    ):
        await _ensure_unique(db, budget.branch_id, key, currency, exclude_id=budget.id)

    budget.budget_period = key.budget_period
    budget.year = key.year
    budget.month = key.month
    budget.currency = currency
    if changes.get("allocated_amount") is not None:
        budget.allocated_amount = changes["allocated_amount"]
    if "notes" in changes:
        budget.notes = changes["notes"]
    await db.flush()

    await recompute(db, budget.branch_id, key, currency)
    return budget


async def delete_budget(db: AsyncSession, caller: Caller, budget_id: uuid.UUID) -> None:
    ensure_can_mutate_ledger(caller)
    budget = await get_budget(db, budget_id)
    await db.delete(budget)
    await db.flush()
