"""
GeneratedReport model — the registry of rendered PDF reports.

The PDF bytes live in the blob store under file_path; this row is the
source of truth for "does this report exist". There is at most one row per
(branch_id, report_period, currency_filter): regenerating a report updates
the row in place and overwrites the blob at the same path.

branch_id NULL means the report covers all branches.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from branch_ledger.database import Base


class ReportStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class GeneratedReport(Base):
    __tablename__ = "generated_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("branches.id"),
        nullable=True,
        index=True,
    )

    # The period resolution mode: "single", "yearly" or "range"
    report_type: Mapped[str] = mapped_column(String(10), nullable=False)

    # Canonical label: "2025-03", "2025" or "2025-01_to_2025-06"
    report_period: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
    )

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2),
        nullable=False,
        default=Decimal("0"),
    )
    # Currency the selection was restricted to; NULL for an unfiltered report
    currency_filter: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Single currency code, or "MIXED" when the selection spans currencies
    currency: Mapped[str] = mapped_column(String(5), nullable=False)
    # {"AFN": "1500.00", "USD": "20.00"}
    currency_totals: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # NULL for scheduled runs
    generated_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ReportStatus.COMPLETED.value,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
