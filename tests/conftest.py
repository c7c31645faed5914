"""
Test fixtures for the Branch Ledger test suite.

This module provides shared fixtures used across all test files:

  - db_engine: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - admin_client: Test client with a pre-registered ADMIN user and JWT
  - staff_headers: Authorization header of a plain STAFF user
  - cron_headers: The scheduler's X-Cron-Secret header
  - blob_store: Report store rooted in the test's tmp_path
  - ledger: Two branches with one staff member each, created through the API

Key design decisions:
  - Environment variables for required settings are set before the app
    is imported.
  - get_db, get_blob_store and get_clock are overridden, so requests hit
    the in-memory database, write PDFs under tmp_path and see a fixed
    "now" (2025-04-15, so the default report month is March 2025).
  - Helper sessions are only opened between requests: the in-memory
    database is a single shared connection.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from branch_ledger.config import settings
from branch_ledger.database import Base, enable_sqlite_savepoints, get_db
from branch_ledger.dependencies import get_clock
from branch_ledger.main import app
from branch_ledger.models.user import User, UserType
from branch_ledger.services.report_storage import LocalBlobStore, get_blob_store


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

FIXED_NOW = datetime(2025, 4, 15, 9, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory for direct database checks between requests."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "reports")


@pytest_asyncio.fixture
async def client(session_factory, blob_store):
    """
    Async HTTP test client with the test database, store and clock injected.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _signup(client: AsyncClient, email: str, password: str, full_name: str) -> dict:
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    return response.json()


@pytest_asyncio.fixture
async def admin_client(client, session_factory):
    """
    Test client with a pre-registered ADMIN user and JWT token.

    Signs up normally, then updates user_type to ADMIN directly in the
    database: admins are provisioned by an operator, not self-service.
    """
    data = await _signup(client, "admin@example.com", "AdminPass123!", "Finance Admin")
    user_id = uuid.UUID(data["user_id"])

    async with session_factory() as session:
        await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    login_response = await client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    admin_token = login_response.json()["token"]
    client.headers["Authorization"] = f"Bearer {admin_token}"
    return client


@pytest_asyncio.fixture
async def staff_headers(client):
    """Authorization header for a plain STAFF user (read-only on the ledger)."""
    data = await _signup(client, "staff@example.com", "StaffPass123!", "Branch Clerk")
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def cron_headers():
    return {"X-Cron-Secret": settings.CRON_SECRET}


# ---------------------------------------------------------------------------
# Ledger data helpers
# ---------------------------------------------------------------------------

async def _create_branch(client: AsyncClient, name: str) -> dict:
    response = await client.post("/branches", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


async def _create_staff(client: AsyncClient, full_name: str, branch_id: str) -> dict:
    response = await client.post("/staff", json={"full_name": full_name, "branch_id": branch_id})
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def ledger(admin_client):
    """Branches A ("Kabul Main") and B ("Herat"), each with one staff member."""
    a = await _create_branch(admin_client, "Kabul Main")
    b = await _create_branch(admin_client, "Herat")
    a_staff = await _create_staff(admin_client, "Ahmad Karimi", a["id"])
    b_staff = await _create_staff(admin_client, "Nasir Ahmadzai", b["id"])
    return {"a": a, "b": b, "a_staff": a_staff, "b_staff": b_staff}


@pytest.fixture
def make_transaction(admin_client, ledger):
    """
    Record a transfer from ledger["a"] to ledger["b"] via the API.

    Defaults: 300 AFN on 2025-03-15, pending. Any field can be overridden.
    """

    async def _make(**overrides) -> dict:
        body = {
            "from_branch_id": ledger["a"]["id"],
            "to_branch_id": ledger["b"]["id"],
            "from_staff_id": ledger["a_staff"]["id"],
            "to_staff_id": ledger["b_staff"]["id"],
            "amount": "300",
            "currency": "AFN",
            "transaction_date": "2025-03-15",
            "status": "pending",
            "purpose": "Staff salaries",
        }
        body.update(overrides)
        response = await admin_client.post("/transactions", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
