"""
Report service — selecting transactions for a period and rendering the PDF.

generate_report() is the read side of the pipeline:

  1. Select every transaction whose transaction_date falls inside the
     resolved period (both ends inclusive), optionally scoped to one branch
     (sent from OR received by it) and optionally to one currency.
  2. Refuse an empty selection (NoTransactionsFoundError). The caller
     decides whether that is an error (interactive) or a skip (scheduled).
  3. Summarize: count, per-currency totals, and a single currency label.
  4. Render the PDF.

Currencies:
  A report does not add AFN to USD. When the selection spans more than one
  currency the summary's currency is "MIXED", total_amount is the plain sum
  of amounts, and the PDF header prints one total per currency. Passing a
  currency filter yields a single-currency report instead.

Persisting the result is report_archive's job.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from branch_ledger.exceptions import BranchNotFoundError, NoTransactionsFoundError
from branch_ledger.models.branch import Branch
from branch_ledger.models.transaction import Transaction
from branch_ledger.services.report_pdf import ReportRow, render_report_pdf
from branch_ledger.services.report_period import ResolvedPeriod

logger = logging.getLogger(__name__)

ALL_BRANCHES = "All Branches"
MIXED_CURRENCY = "MIXED"


@dataclass
class ReportSummary:
    transaction_count: int
    total_amount: Decimal
    currency: str
    currency_totals: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class ReportContent:
    """A rendered report that has not been stored yet."""
    pdf_bytes: bytes
    summary: ReportSummary
    branch_id: uuid.UUID | None
    branch_name: str
    period: ResolvedPeriod
    generated_at: datetime
    currency_filter: str | None = None


async def select_transactions(
    db: AsyncSession,
    period: ResolvedPeriod,
    branch_id: uuid.UUID | None = None,
    currency: str | None = None,
) -> list[Transaction]:
    """
    Transactions dated inside the period, oldest first, with names loaded.

    Args:
        period: Inclusive interval; compared on calendar dates.
        branch_id: None for all branches, else rows sent from or to it.
        currency: Optional single-currency filter.
    """
    query = (
        select(Transaction)
        .options(
            selectinload(Transaction.from_branch),
            selectinload(Transaction.to_branch),
            selectinload(Transaction.from_staff),
            selectinload(Transaction.to_staff),
        )
        .where(
            Transaction.transaction_date >= period.start_date,
            Transaction.transaction_date <= period.end_date,
        )
        .order_by(Transaction.transaction_date.asc(), Transaction.created_at.asc())
    )
    if branch_id is not None:
        query = query.where(
            or_(Transaction.from_branch_id == branch_id, Transaction.to_branch_id == branch_id)
        )
    if currency:
        query = query.where(Transaction.currency == currency.upper())

    result = await db.execute(query)
    return list(result.scalars().all())


def summarize(transactions: list[Transaction]) -> ReportSummary:
    """Count and totals. Currency order follows first appearance by date."""
    totals: dict[str, Decimal] = {}
    for txn in transactions:
        totals[txn.currency] = totals.get(txn.currency, Decimal("0")) + Decimal(txn.amount)

    if len(totals) == 1:
        currency = next(iter(totals))
    else:
        currency = MIXED_CURRENCY

    return ReportSummary(
        transaction_count=len(transactions),
        total_amount=sum(totals.values(), Decimal("0")),
        currency=currency,
        currency_totals=totals,
    )


def _to_row(txn: Transaction) -> ReportRow:
    return ReportRow(
        transaction_date=txn.transaction_date,
        from_branch=txn.from_branch.name if txn.from_branch else None,
        to_branch=txn.to_branch.name if txn.to_branch else None,
        from_staff=txn.from_staff.full_name if txn.from_staff else None,
        to_staff=txn.to_staff.full_name if txn.to_staff else None,
        confirmation_code=txn.confirmation_code,
        amount=Decimal(txn.amount),
        currency=txn.currency,
        status=txn.status,
    )


async def resolve_branch_name(db: AsyncSession, branch_id: uuid.UUID | None) -> str:
    if branch_id is None:
        return ALL_BRANCHES
    branch = await db.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFoundError(branch_id)
    return branch.name


async def generate_report(
    db: AsyncSession,
    period: ResolvedPeriod,
    branch_id: uuid.UUID | None = None,
    currency: str | None = None,
    now: datetime | None = None,
) -> ReportContent:
    """
    Build the PDF report for a scope and period.

    Args:
        db: Database session.
        period: Resolved report period.
        branch_id: Branch scope, or None for all branches.
        currency: Optional single-currency filter.
        now: Generation timestamp (defaults to the current UTC time).

    Returns:
        The rendered bytes with summary and scope details.

    Raises:
        BranchNotFoundError: If branch_id does not exist.
        NoTransactionsFoundError: If nothing matches.
    """
    branch_name = await resolve_branch_name(db, branch_id)
    transactions = await select_transactions(db, period, branch_id, currency)

    logger.info(
        "Report selection branch=%s period=%s (%s..%s) found=%d",
        branch_name, period.label, period.start_date, period.end_date, len(transactions),
    )
    if not transactions:
        raise NoTransactionsFoundError()

    summary = summarize(transactions)
    generated_at = now or datetime.now(timezone.utc)

    pdf_bytes = render_report_pdf(
        rows=[_to_row(txn) for txn in transactions],
        branch_name=branch_name,
        period_description=period.description,
        currency_totals=summary.currency_totals,
        generated_at=generated_at,
    )

    return ReportContent(
        pdf_bytes=pdf_bytes,
        summary=summary,
        branch_id=branch_id,
        branch_name=branch_name,
        period=period,
        generated_at=generated_at,
        currency_filter=currency.upper() if currency else None,
    )


async def preview(
    db: AsyncSession,
    period: ResolvedPeriod,
    currency: str | None = None,
) -> list[tuple[uuid.UUID | None, str, ReportSummary]]:
    """
    What each scope of a run would contain, without rendering anything.

    Returns (branch_id, branch_name, summary) for "All Branches" first and
    then every branch by name, including branches with no transactions.
    """
    transactions = await select_transactions(db, period, currency=currency)

    result = await db.execute(select(Branch.id, Branch.name).order_by(Branch.name))
    scopes = [(None, ALL_BRANCHES, summarize(transactions))]
    for branch_id, name in result.all():
        scoped = [
            txn for txn in transactions
            if txn.from_branch_id == branch_id or txn.to_branch_id == branch_id
        ]
        scopes.append((branch_id, name, summarize(scoped)))
    return scopes
