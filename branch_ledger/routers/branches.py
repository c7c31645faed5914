"""
Branches router — the branch and staff directory.

Endpoints:
  POST /branches       — [Admin] Create a branch
  GET  /branches       — List branches by name
  POST /staff          — [Admin] Create a staff profile
  GET  /staff          — List staff, optionally for one branch
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.database import get_db
from branch_ledger.dependencies import get_caller, require_admin
from branch_ledger.schemas.branch import (
    BranchCreateRequest,
    BranchResponse,
    StaffCreateRequest,
    StaffResponse,
)
from branch_ledger.security import Caller
from branch_ledger.services import branch_service

router = APIRouter()


@router.post(
    "/branches",
    response_model=BranchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a branch",
)
async def create_branch(
    request: BranchCreateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await branch_service.create_branch(
        db,
        caller,
        name=request.name,
        province=request.province,
        address=request.address,
        phone=request.phone,
    )


@router.get("/branches", response_model=list[BranchResponse], summary="List branches")
async def list_branches(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await branch_service.list_branches(db)


@router.post(
    "/staff",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a staff profile",
)
async def create_staff(
    request: StaffCreateRequest,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await branch_service.create_staff(
        db,
        caller,
        full_name=request.full_name,
        email=request.email,
        branch_id=request.branch_id,
    )


@router.get("/staff", response_model=list[StaffResponse], summary="List staff")
async def list_staff(
    branch_id: uuid.UUID | None = Query(None),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await branch_service.list_staff(db, branch_id=branch_id)
