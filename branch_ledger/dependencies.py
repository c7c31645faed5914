"""
FastAPI dependencies for authentication, authorization and injected services.

Dependency chain:

  get_current_user (JWT -> User)
      ├── get_caller        (User -> Caller)              [any authenticated user]
      └── require_admin     (User -> Caller)              [ADMIN role]

  get_report_caller  (X-Cron-Secret OR admin JWT -> Caller)
  require_cron       (X-Cron-Secret -> Caller)

Services never read the request; they receive the Caller produced here.

get_clock supplies the current time for default report periods; tests
override it, as they do services.report_storage.get_blob_store.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.database import get_db
from branch_ledger.models.user import User, UserType
from branch_ledger.security import Caller, decode_access_token, verify_cron_secret


# auto_error=False so endpoints that also accept the cron secret can
# decide for themselves what a missing token means.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_token(token: str, db: AsyncSession) -> User:
    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise _credentials_exception()
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise _credentials_exception()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise _credentials_exception()
    return user


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is missing, invalid, or the user
                           doesn't exist or is deactivated.
    """
    if not token:
        raise _credentials_exception("Not authenticated")
    return await _user_from_token(token, db)


async def get_caller(user: User = Depends(get_current_user)) -> Caller:
    """Any authenticated user, as a Caller."""
    return Caller(user_id=user.id, is_admin=user.user_type == UserType.ADMIN)


async def require_admin(user: User = Depends(get_current_user)) -> Caller:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return Caller(user_id=user.id, is_admin=True)


async def get_report_caller(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    """
    Authenticate a report generation request.

    A valid X-Cron-Secret identifies the scheduler. Otherwise a bearer
    token is required and its user must be an ADMIN.

    Raises:
        HTTPException 401: No valid secret and no valid token.
        HTTPException 403: Authenticated user is not an admin.
    """
    if verify_cron_secret(x_cron_secret):
        return Caller.cron()

    if not token:
        if x_cron_secret:
            raise _credentials_exception("Invalid cron secret")
        raise _credentials_exception("Missing authorization header")

    user = await _user_from_token(token, db)
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required to generate reports",
        )
    return Caller(user_id=user.id, is_admin=True)


async def require_cron(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
) -> Caller:
    """Only the scheduler, authenticated with the shared secret."""
    if not verify_cron_secret(x_cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid cron secret",
        )
    return Caller.cron()


def get_clock() -> Callable[[], datetime]:
    """Source of "now" for default report periods."""
    return lambda: datetime.now(timezone.utc)
