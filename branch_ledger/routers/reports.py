"""
Reports router — on-demand generation and the report registry.

Endpoints:
  POST   /generate-monthly-reports   — Generate and store one report
                                       (X-Cron-Secret, or an ADMIN bearer token)
  GET    /reports                    — List registry rows
  GET    /reports/preview            — Per-scope counts for a period, no PDF
  GET    /reports/{id}               — Get one registry row
  GET    /reports/{id}/download      — The stored PDF
  DELETE /reports/{id}               — [Admin] Delete the PDF and its row

Interactive vs. automated generation:
  A request is automated when it carries the cron secret or sets
  isAutomated. For automated requests an empty period is not an error; the
  response is 200 with skipped=true. A storage failure during an automated
  request is written to the registry as a failed report and answered with
  a 500 body, so the failure row still commits.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Literal

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.database import get_db
from branch_ledger.dependencies import get_caller, get_clock, get_report_caller, require_admin
from branch_ledger.exceptions import NoTransactionsFoundError, ReportNotFoundError, StorageError
from branch_ledger.models.generated_report import ReportStatus
from branch_ledger.schemas.report import (
    GenerateReportRequest,
    GenerateReportResponse,
    GeneratedReportResponse,
    ReportPreviewResponse,
    ReportPreviewScope,
)
from branch_ledger.security import Caller
from branch_ledger.services import report_archive, report_service
from branch_ledger.services.report_period import ResolvedPeriod, default_report_month, resolve_period
from branch_ledger.services.report_scheduler import generate_and_store
from branch_ledger.services.report_storage import LocalBlobStore, get_blob_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_request_period(request: GenerateReportRequest, now: datetime) -> ResolvedPeriod:
    if request.report_type is None:
        # Plain calls (the monthly cron) mean one month, last month by default
        default_year, default_month = default_report_month(now)
        return resolve_period(
            "single",
            year=request.year if request.year is not None else default_year,
            month=request.month if request.month is not None else default_month,
        )
    return resolve_period(
        request.report_type,
        year=request.year,
        month=request.month,
        start_year=request.start_year,
        start_month=request.start_month,
        end_year=request.end_year,
        end_month=request.end_month,
    )


@router.post(
    "/generate-monthly-reports",
    response_model=GenerateReportResponse,
    summary="Generate and store a transaction report",
)
async def generate_monthly_report(
    request: GenerateReportRequest,
    caller: Caller = Depends(get_report_caller),
    clock: Callable[[], datetime] = Depends(get_clock),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate the PDF report for one branch (or all branches) and one period.

    - **reportType**: "single" (year + month), "yearly" (year) or "range"
      (startYear/startMonth to endYear/endMonth). Omitted means a single
      month: the given year/month, or the previous calendar month.
    - **branchId**: Omit for an "All Branches" report.
    - **currency**: Optional; restricts the report to one currency.

    Regenerating the same branch, period and currency filter replaces the
    stored PDF and updates the existing registry row. A currency-filtered
    report is stored next to the unfiltered one, not over it.
    """
    now = clock()
    period = _resolve_request_period(request, now)
    automated = caller.via_cron or request.is_automated

    try:
        report = await generate_and_store(
            db,
            blob_store,
            caller,
            period,
            branch_id=request.branch_id,
            currency=request.currency,
            now=now,
        )
    except NoTransactionsFoundError as exc:
        if not automated:
            raise
        logger.info("Automated report for %s skipped: %s", period.label, exc.detail)
        return GenerateReportResponse(success=True, skipped=True, message=exc.detail)
    except StorageError as exc:
        if not automated:
            raise
        branch_name = await report_service.resolve_branch_name(db, request.branch_id)
        async with db.begin_nested():
            await report_archive.record_failure(
                db, request.branch_id, branch_name, period, exc.detail,
                currency_filter=request.currency,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "error_type": exc.error_type},
        )

    return GenerateReportResponse(
        success=True,
        report=GeneratedReportResponse.model_validate(report),
    )


@router.get("/reports", response_model=list[GeneratedReportResponse], summary="List reports")
async def list_reports(
    branch_id: uuid.UUID | None = Query(None),
    report_period: str | None = Query(None, description="e.g. 2025-03, 2025, 2025-01_to_2025-06"),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Registry rows, most recently generated first."""
    return await report_archive.list_reports(db, branch_id=branch_id, report_period=report_period)


@router.get(
    "/reports/preview",
    response_model=ReportPreviewResponse,
    summary="Preview per-branch transaction counts for a period",
)
async def preview_reports(
    report_type: Literal["single", "yearly", "range"] | None = Query(None, alias="reportType"),
    year: int | None = Query(None),
    month: int | None = Query(None),
    start_year: int | None = Query(None, alias="startYear"),
    start_month: int | None = Query(None, alias="startMonth"),
    end_year: int | None = Query(None, alias="endYear"),
    end_month: int | None = Query(None, alias="endMonth"),
    currency: str | None = Query(None, min_length=3, max_length=3),
    caller: Caller = Depends(get_caller),
    clock: Callable[[], datetime] = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    How many transactions each scope would report for the period: "All
    Branches" first, then every branch by name. Takes the same period
    parameters as report generation. Nothing is rendered or stored.
    """
    request = GenerateReportRequest(
        report_type=report_type,
        year=year,
        month=month,
        start_year=start_year,
        start_month=start_month,
        end_year=end_year,
        end_month=end_month,
        currency=currency,
    )
    period = _resolve_request_period(request, clock())
    scopes = await report_service.preview(db, period, currency=request.currency)

    return ReportPreviewResponse(
        period=period.label,
        description=period.description,
        scopes=[
            ReportPreviewScope(
                branch_id=branch_id,
                branch=name,
                transaction_count=summary.transaction_count,
                total_amount=summary.total_amount,
                currency=summary.currency if summary.transaction_count else None,
                currency_totals=summary.currency_totals,
            )
            for branch_id, name, summary in scopes
        ],
    )


@router.get("/reports/{report_id}", response_model=GeneratedReportResponse, summary="Get a report")
async def get_report(
    report_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    return await report_archive.get_report(db, report_id)


@router.get(
    "/reports/{report_id}/download",
    response_class=Response,
    summary="Download a report PDF",
)
async def download_report(
    report_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    report = await report_archive.get_report(db, report_id)
    if report.status != ReportStatus.COMPLETED.value:
        # Failed generations have a registry row but no file
        raise ReportNotFoundError(report_id)

    content = await report_archive.download(blob_store, report)
    return Response(
        content=content,
        media_type=report_archive.PDF_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{report.file_name}"'},
    )


@router.delete(
    "/reports/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a report",
)
async def delete_report(
    report_id: uuid.UUID,
    caller: Caller = Depends(require_admin),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    await report_archive.remove(db, blob_store, caller, report_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
