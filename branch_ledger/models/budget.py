"""
Budget model — money allocated to a branch for a month or a year.

allocated_amount is entered by an operator. spent_amount is DERIVED: it is
only ever written by the budget accrual engine (services/budget_service.py)
as the sum of confirmed transactions into the branch for the period and
currency. No endpoint accepts spent_amount as input.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, CheckConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from branch_ledger.database import Base


class BudgetPeriod(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Budget(Base):
    __tablename__ = "branch_budgets"

    __table_args__ = (
        CheckConstraint("allocated_amount >= 0", name="ck_budgets_non_negative_allocated"),
        CheckConstraint("spent_amount >= 0", name="ck_budgets_non_negative_spent"),
        # month is present iff the budget is monthly
        CheckConstraint(
            "(budget_period = 'monthly' AND month BETWEEN 1 AND 12) "
            "OR (budget_period = 'yearly' AND month IS NULL)",
            name="ck_budgets_month_matches_period",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    branch_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )

    # "monthly" or "yearly"
    budget_period: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)

    allocated_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )

    spent_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def remaining_amount(self) -> Decimal:
        return self.allocated_amount - self.spent_amount

    @property
    def percentage_spent(self) -> float:
        if not self.allocated_amount:
            return 0.0
        return round(float(self.spent_amount / self.allocated_amount * 100), 1)
