"""
Branch and staff reference data.

These tables belong to the wider school-management system; the ledger only
needs them to exist so transactions, budgets and reports can reference them
and print their names. Creation is admin-only, reads are open to any
authenticated user.

Branch names double as report file names ("Kabul Main" is stored as
"Kabul_Main_2025-03.pdf"), so two names that differ only in spacing or
underscores would share one report. They count as duplicates, and so does
the "All Branches" scope name.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.exceptions import BranchNotFoundError, DuplicateBranchError
from branch_ledger.models.branch import Branch, StaffProfile
from branch_ledger.security import Caller, ensure_can_mutate_ledger
from branch_ledger.services.report_archive import storage_name
from branch_ledger.services.report_service import ALL_BRANCHES


async def create_branch(
    db: AsyncSession,
    caller: Caller,
    name: str,
    province: str | None = None,
    address: str | None = None,
    phone: str | None = None,
) -> Branch:
    ensure_can_mutate_ledger(caller)
    name = name.strip()
    key = storage_name(name).casefold()

    taken = {storage_name(ALL_BRANCHES).casefold()}
    result = await db.execute(select(Branch.name))
    taken.update(storage_name(existing).casefold() for existing in result.scalars())
    if key in taken:
        raise DuplicateBranchError(name)

    branch = Branch(name=name, province=province, address=address, phone=phone)
    db.add(branch)
    await db.flush()
    return branch


async def list_branches(db: AsyncSession) -> list[Branch]:
    result = await db.execute(select(Branch).order_by(Branch.name))
    return list(result.scalars().all())


async def create_staff(
    db: AsyncSession,
    caller: Caller,
    full_name: str,
    email: str | None = None,
    branch_id: uuid.UUID | None = None,
) -> StaffProfile:
    ensure_can_mutate_ledger(caller)
    if branch_id is not None and await db.get(Branch, branch_id) is None:
        raise BranchNotFoundError(branch_id)

    staff = StaffProfile(full_name=full_name, email=email, branch_id=branch_id)
    db.add(staff)
    await db.flush()
    return staff


async def list_staff(db: AsyncSession, branch_id: uuid.UUID | None = None) -> list[StaffProfile]:
    query = select(StaffProfile).order_by(StaffProfile.full_name)
    if branch_id is not None:
        query = query.where(StaffProfile.branch_id == branch_id)
    result = await db.execute(query)
    return list(result.scalars().all())
