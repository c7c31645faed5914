"""
Report jobs — generate-and-store, and the scheduled run over every branch.

generate_and_store() is the full pipeline for one scope: resolve the branch,
select and render (report_service), then upload and register
(report_archive). Both the HTTP endpoint and the scheduler call it.

run_scheduled_reports() is what the cron trigger runs. It produces one
report per scope — "All Branches" first, then each branch by name — for a
single period (the previous calendar month unless one is given). Scopes are
independent:

  - no transactions  -> {"branch", "success": True, "skipped": True, "message"}
  - any other error  -> {"branch", "success": False, "error"}; logged, and
                        recorded as a failed registry row when possible
  - success          -> {"branch", "success": True, "report": GeneratedReport}

One scope failing never stops the remaining scopes. Each scope runs inside
its own SAVEPOINT, so a failure rolls back only that scope's writes.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.exceptions import LedgerAPIError, NoTransactionsFoundError
from branch_ledger.models.branch import Branch
from branch_ledger.models.generated_report import GeneratedReport
from branch_ledger.security import Caller, ensure_can_generate_reports
from branch_ledger.services import report_archive, report_service
from branch_ledger.services.report_period import ResolvedPeriod, default_report_month, resolve_period
from branch_ledger.services.report_storage import LocalBlobStore

logger = logging.getLogger(__name__)


async def generate_and_store(
    db: AsyncSession,
    blob_store: LocalBlobStore,
    caller: Caller,
    period: ResolvedPeriod,
    branch_id: uuid.UUID | None = None,
    currency: str | None = None,
    now: datetime | None = None,
) -> GeneratedReport:
    """
    Generate one report and persist it.

    Raises:
        UnauthorizedAccessError: Caller may not generate reports.
        NoTransactionsFoundError: Empty selection.
        BranchNotFoundError: Unknown branch scope.
        StorageError: Upload or registry failure.
    """
    ensure_can_generate_reports(caller)
    content = await report_service.generate_report(
        db, period, branch_id=branch_id, currency=currency, now=now
    )
    return await report_archive.store(db, blob_store, content, generated_by=caller.user_id)


async def run_scheduled_reports(
    db: AsyncSession,
    blob_store: LocalBlobStore,
    caller: Caller,
    now: datetime,
    year: int | None = None,
    month: int | None = None,
) -> list[dict]:
    """
    Generate the monthly report for all branches combined and for each branch.

    Args:
        db: Database session.
        blob_store: Report object store.
        caller: Must be allowed to generate reports (the cron identity).
        now: Invocation time; decides the default period.
        year, month: Explicit period; both default to the previous month.

    Returns:
        One result dict per scope, in processing order.
    """
    ensure_can_generate_reports(caller)

    default_year, default_month = default_report_month(now)
    period = resolve_period("single", year=year or default_year, month=month or default_month)

    result = await db.execute(select(Branch.id, Branch.name).order_by(Branch.name))
    scopes: list[tuple[uuid.UUID | None, str]] = [(None, report_service.ALL_BRANCHES)]
    scopes.extend((branch_id, name) for branch_id, name in result.all())

    logger.info("Scheduled report run for %s over %d scopes", period.label, len(scopes))

    results: list[dict] = []
    for branch_id, branch_name in scopes:
        try:
            async with db.begin_nested():
                report = await generate_and_store(
                    db, blob_store, caller, period, branch_id=branch_id, now=now
                )
        except NoTransactionsFoundError as exc:
            logger.info("Skipping %s for %s: %s", branch_name, period.label, exc.detail)
            results.append({
                "branch": branch_name,
                "success": True,
                "skipped": True,
                "message": exc.detail,
            })
            continue
        except Exception as exc:
            logger.error(
                "Scheduled report failed for %s (%s)", branch_name, period.label, exc_info=True
            )
            message = exc.detail if isinstance(exc, LedgerAPIError) else str(exc)
            await _record_failure_quietly(db, branch_id, branch_name, period, message)
            results.append({"branch": branch_name, "success": False, "error": message})
            continue

        results.append({"branch": branch_name, "success": True, "report": report})

    succeeded = sum(1 for r in results if r["success"] and not r.get("skipped"))
    logger.info(
        "Scheduled report run for %s finished: %d generated, %d skipped, %d failed",
        period.label,
        succeeded,
        sum(1 for r in results if r.get("skipped")),
        sum(1 for r in results if not r["success"]),
    )
    return results


async def _record_failure_quietly(
    db: AsyncSession,
    branch_id: uuid.UUID | None,
    branch_name: str,
    period: ResolvedPeriod,
    message: str,
) -> None:
    try:
        async with db.begin_nested():
            await report_archive.record_failure(db, branch_id, branch_name, period, message)
    except Exception:
        logger.error("Could not record failed report for %s", branch_name, exc_info=True)
