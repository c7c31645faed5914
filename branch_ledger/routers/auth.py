"""
Authentication router — signup and login endpoints.

These are the only public (unauthenticated) endpoints besides /health.

Endpoints:
  POST /auth/signup  — Register a STAFF user and get a token
  POST /auth/login   — Authenticate and get a token

Plaintext passwords exist only in memory during request processing; they
are hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.database import get_db
from branch_ledger.schemas.auth import (
    UserSignupRequest,
    UserLoginRequest,
    TokenResponse,
    SignupResponse,
)
from branch_ledger.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(
    request: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new staff user.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **full_name**: Required

    New users can read the ledger. Recording or changing transactions,
    budgets and reports requires an operator to promote the user to ADMIN.
    """
    user, token = await auth_service.signup(
        db=db,
        email=request.email,
        password=request.password,
        full_name=request.full_name,
    )

    return SignupResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        user_type=user.user_type.value,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token for the Authorization header:

        Authorization: Bearer <token>
    """
    _, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )

    return TokenResponse(token=token)
