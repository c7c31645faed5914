"""
User model — the authentication identity.

Each User represents a login credential (email + hashed password) with a
role. Only the role matters to the ledger core: ADMIN users may mutate
transactions, budgets and reports; STAFF users have read access.

The password is stored as an Argon2id hash — never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from branch_ledger.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the organization.

    Inherits from str so the enum value serializes naturally to JSON.
    """
    ADMIN = "admin"     # Manages the ledger, budgets and reports
    STAFF = "staff"     # Read-only access to ledger data


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Email is the login identifier — must be unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # New signups are STAFF; admins are provisioned by an operator
    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.STAFF,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
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
