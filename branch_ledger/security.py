"""
Security utilities: password hashing, JWT tokens, and the cron shared secret.

Four concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext wraps Argon2id and handles scheme migration

2. JWT TOKENS
   - After login, the user receives a signed JWT containing their user ID
   - Signed with SECRET_KEY using HS256, expiring after
     ACCESS_TOKEN_EXPIRE_MINUTES

3. CRON SECRET
   - The report scheduler is a machine caller with no user session. It
     presents CRON_SECRET in the X-Cron-Secret header, compared in
     constant time.

4. CALLER CAPABILITY
   - Services receive a Caller value describing who is acting; they check
     its rights instead of reading any global session state.
"""

import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from branch_ledger.config import settings
from branch_ledger.exceptions import UnauthorizedAccessError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Cron shared secret
# ---------------------------------------------------------------------------


def verify_cron_secret(presented: str | None) -> bool:
    """Return True if the presented X-Cron-Secret matches CRON_SECRET."""
    if not presented:
        return False
    return hmac.compare_digest(presented.encode(), settings.CRON_SECRET.encode())


# ---------------------------------------------------------------------------
# 4. Caller capability
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Caller:
    """
    The identity a service call is made on behalf of.

    Built by the dependency layer (from a JWT or the cron secret) and passed
    explicitly into every service function that mutates the ledger or
    generates reports. Services never look up "the current user" on their own.

    Attributes:
        user_id: The authenticated user, or None for the scheduler.
        is_admin: True for ADMIN users.
        via_cron: True when authenticated with the cron shared secret.
    """
    user_id: uuid.UUID | None
    is_admin: bool = False
    via_cron: bool = False

    @classmethod
    def cron(cls) -> "Caller":
        return cls(user_id=None, is_admin=False, via_cron=True)

    @property
    def can_mutate_ledger(self) -> bool:
        """Transactions and budgets are mutated by admins only."""
        return self.is_admin

    @property
    def can_generate_reports(self) -> bool:
        return self.is_admin or self.via_cron


def ensure_can_mutate_ledger(caller: Caller) -> None:
    """Raise UnauthorizedAccessError unless the caller may change ledger data."""
    if not caller.can_mutate_ledger:
        raise UnauthorizedAccessError("Admin access required to modify transactions and budgets")


def ensure_can_generate_reports(caller: Caller) -> None:
    """Raise UnauthorizedAccessError unless the caller may generate or delete reports."""
    if not caller.can_generate_reports:
        raise UnauthorizedAccessError("Admin access required to manage reports")
