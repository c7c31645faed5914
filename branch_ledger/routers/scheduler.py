"""
Scheduler router — the monthly cron trigger.

  POST /monthly-report-scheduler   — X-Cron-Secret required

Generates last month's report for "All Branches" and for every branch, in
process, and returns one result per scope. Individual scope failures are
reported in the results; the request itself still succeeds.
"""

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.database import get_db
from branch_ledger.dependencies import get_clock, require_cron
from branch_ledger.schemas.report import (
    GeneratedReportResponse,
    SchedulerRequest,
    SchedulerResponse,
    SchedulerResult,
)
from branch_ledger.security import Caller
from branch_ledger.services.report_scheduler import run_scheduled_reports
from branch_ledger.services.report_storage import LocalBlobStore, get_blob_store

router = APIRouter()


def _to_result(outcome: dict) -> SchedulerResult:
    report = outcome.get("report")
    return SchedulerResult(
        branch=outcome["branch"],
        success=outcome["success"],
        skipped=outcome.get("skipped", False),
        message=outcome.get("message"),
        error=outcome.get("error"),
        report=GeneratedReportResponse.model_validate(report) if report is not None else None,
    )


@router.post(
    "/monthly-report-scheduler",
    response_model=SchedulerResponse,
    summary="Run the monthly report job",
)
async def monthly_report_scheduler(
    request: SchedulerRequest | None = Body(None),
    caller: Caller = Depends(require_cron),
    clock: Callable[[], datetime] = Depends(get_clock),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate the monthly reports for all branches.

    The period is the calendar month before now unless year and month are
    given in the body.
    """
    request = request or SchedulerRequest()
    outcomes = await run_scheduled_reports(
        db,
        blob_store,
        caller,
        now=clock(),
        year=request.year,
        month=request.month,
    )
    return SchedulerResponse(
        success=True,
        message="Monthly reports generation completed",
        results=[_to_result(outcome) for outcome in outcomes],
    )
