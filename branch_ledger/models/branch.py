"""
Branch and staff profile models.

Branches are the physical locations that send and receive money; they scope
budgets, transactions and reports. Staff profiles are the people named as
sender and receiver on a transaction. Both tables are plain reference data
for the ledger — only their display names appear in reports.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from branch_ledger.database import Base


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Display name; also used (spaces -> underscores) in report file names
    name: Mapped[str] = mapped_column(
        String(150),
        unique=True,
        nullable=False,
    )

    province: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class StaffProfile(Base):
    __tablename__ = "staff_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Home branch (optional — head-office staff may have none)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("branches.id"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
