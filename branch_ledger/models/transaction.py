"""
Transaction model — an inter-branch money transfer.

Each row records money sent from one branch (and staff member) to another,
usually through a remittance service such as MoneyGram or Western Union.

Key fields:
  - amount: Always non-negative; the direction is implied by from/to branch
  - currency: 3-letter code (AFN, USD, ...)
  - transaction_date: The calendar date the transfer was initiated. Reports
    and budgets bucket by this date, never by created_at.
  - status: "pending", "confirmed" or "cancelled"
  - confirmation_code: External tracking token (MTCN) from the transfer service

Status field:
  Only CONFIRMED transactions count toward the destination branch's budget
  spend. Operators toggle between pending and confirmed as transfers are
  collected; cancelled is terminal.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Numeric, Date, DateTime, ForeignKey, CheckConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from branch_ledger.database import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_non_negative_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Human-facing reference shown in lists and confirmation prompts
    transaction_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
    )

    from_branch_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )
    to_branch_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )

    from_staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_profiles.id"),
        nullable=False,
    )
    to_staff_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff_profiles.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    transfer_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Indexed for date-range queries (reports, budget recompute)
    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    received_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=TransactionStatus.PENDING.value,
        index=True,
    )

    confirmation_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    purpose: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # The user who recorded the transfer
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

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

    # --- Relationships ---
    # Loaded explicitly with selectinload() where names are needed (reports)
    from_branch: Mapped["Branch"] = relationship(foreign_keys=[from_branch_id])
    to_branch: Mapped["Branch"] = relationship(foreign_keys=[to_branch_id])
    from_staff: Mapped["StaffProfile"] = relationship(foreign_keys=[from_staff_id])
    to_staff: Mapped["StaffProfile"] = relationship(foreign_keys=[to_staff_id])

    @property
    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED.value
