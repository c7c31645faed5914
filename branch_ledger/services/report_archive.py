"""
Report archive — storing rendered reports and keeping the registry.

Every stored report has two parts:

  - the PDF object in the blob store, at a deterministic key:
        {period_label}/{branch_name_with_underscores}_{period_label}.pdf
    or, for a single-currency report,
        {period_label}/{branch_name_with_underscores}_{period_label}_{CUR}.pdf
  - one GeneratedReport registry row, unique per
    (branch_id, report_period, currency_filter)

Regenerating a report for the same branch, period and filter overwrites the object
and updates the existing registry row instead of adding a second one.

Ordering and compensation:
  The upload happens first. If it fails, no registry row is written. If the
  registry write fails after a fresh upload, the uploaded object is removed
  again before the error propagates. When the row already existed, the
  object is left alone: the row still points at it.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from branch_ledger.config import settings
from branch_ledger.exceptions import ReportNotFoundError, StorageError
from branch_ledger.models.generated_report import GeneratedReport, ReportStatus
from branch_ledger.security import Caller, ensure_can_generate_reports
from branch_ledger.services.report_period import ResolvedPeriod
from branch_ledger.services.report_service import ReportContent
from branch_ledger.services.report_storage import LocalBlobStore

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


_WHITESPACE = re.compile(r"\s+")


def storage_name(name: str) -> str:
    """Branch name as it appears in object keys: "Kabul Main" -> "Kabul_Main"."""
    return _WHITESPACE.sub("_", name.strip())


def report_file_name(
    branch_name: str,
    period_label: str,
    currency_filter: str | None = None,
) -> str:
    stem = f"{storage_name(branch_name)}_{period_label}"
    if currency_filter:
        stem = f"{stem}_{currency_filter.upper()}"
    return f"{stem}.pdf"


def report_object_key(
    branch_name: str,
    period_label: str,
    currency_filter: str | None = None,
) -> str:
    """Blob key, e.g. "2025-03/Kabul_Main_2025-03.pdf" or "..._2025-03_USD.pdf"."""
    return f"{period_label}/{report_file_name(branch_name, period_label, currency_filter)}"


async def find_registry_entry(
    db: AsyncSession,
    branch_id: uuid.UUID | None,
    period_label: str,
    currency_filter: str | None = None,
) -> GeneratedReport | None:
    query = select(GeneratedReport).where(GeneratedReport.report_period == period_label)
    if branch_id is None:
        query = query.where(GeneratedReport.branch_id.is_(None))
    else:
        query = query.where(GeneratedReport.branch_id == branch_id)
    if currency_filter:
        query = query.where(GeneratedReport.currency_filter == currency_filter.upper())
    else:
        query = query.where(GeneratedReport.currency_filter.is_(None))
    result = await db.execute(query)
    return result.scalars().first()


def _totals_as_strings(totals: dict[str, Decimal]) -> dict[str, str]:
    return {code: str(amount) for code, amount in totals.items()}


async def store(
    db: AsyncSession,
    blob_store: LocalBlobStore,
    content: ReportContent,
    generated_by: uuid.UUID | None = None,
) -> GeneratedReport:
    """
    Upload a rendered report and upsert its registry row.

    Args:
        db: Database session.
        blob_store: Where the PDF goes.
        content: Output of report_service.generate_report().
        generated_by: User who requested it (None for scheduled runs).

    Returns:
        The completed registry row.

    Raises:
        StorageError: Upload failure (nothing recorded) or registry failure
            (fresh upload removed again).
    """
    period = content.period
    file_name = report_file_name(content.branch_name, period.label, content.currency_filter)
    key = report_object_key(content.branch_name, period.label, content.currency_filter)

    existing = await find_registry_entry(
        db, content.branch_id, period.label, content.currency_filter
    )

    await blob_store.upload(key, content.pdf_bytes, content_type=PDF_CONTENT_TYPE, upsert=True)

    fields = dict(
        branch_id=content.branch_id,
        report_type=period.mode,
        report_period=period.label,
        file_name=file_name,
        file_path=key,
        file_size=len(content.pdf_bytes),
        transaction_count=content.summary.transaction_count,
        total_amount=content.summary.total_amount,
        currency_filter=content.currency_filter,
        currency=content.summary.currency,
        currency_totals=_totals_as_strings(content.summary.currency_totals),
        generated_by=generated_by,
        generated_at=content.generated_at,
        status=ReportStatus.COMPLETED.value,
        error_message=None,
    )

    try:
        async with db.begin_nested():
            if existing is None:
                report = GeneratedReport(**fields)
                db.add(report)
            else:
                report = existing
                for name, value in fields.items():
                    setattr(report, name, value)
            await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Registry write failed for %s", key, exc_info=True)
        if existing is None:
            try:
                await blob_store.remove(key)
            except StorageError:
                logger.warning("Could not remove orphaned report object %s", key)
        raise StorageError(f"Failed to record report {file_name}: {exc}") from exc

    logger.info(
        "Stored report %s (%d transactions, %s %s)",
        key, report.transaction_count, report.total_amount, report.currency,
    )
    return report


async def record_failure(
    db: AsyncSession,
    branch_id: uuid.UUID | None,
    branch_name: str,
    period: ResolvedPeriod,
    error_message: str,
    currency_filter: str | None = None,
) -> GeneratedReport | None:
    """
    Record a failed automated generation.

    A completed report for the same branch, period and filter is never replaced by
    a failure marker; in that case nothing is written and None is returned.
    """
    existing = await find_registry_entry(db, branch_id, period.label, currency_filter)
    if existing is not None and existing.status == ReportStatus.COMPLETED.value:
        logger.warning(
            "Keeping completed report %s despite failed regeneration: %s",
            existing.file_path, error_message,
        )
        return None

    report = existing or GeneratedReport(
        branch_id=branch_id,
        report_period=period.label,
        currency_filter=currency_filter.upper() if currency_filter else None,
    )
    report.report_type = period.mode
    report.file_name = report_file_name(branch_name, period.label, currency_filter)
    report.file_path = report_object_key(branch_name, period.label, currency_filter)
    report.file_size = 0
    report.transaction_count = 0
    report.total_amount = Decimal("0")
    report.currency = settings.DEFAULT_CURRENCY
    report.currency_totals = {}
    report.generated_by = None
    report.generated_at = datetime.now(timezone.utc)
    report.status = ReportStatus.FAILED.value
    report.error_message = error_message
    if existing is None:
        db.add(report)
    await db.flush()
    return report


async def list_reports(
    db: AsyncSession,
    branch_id: uuid.UUID | None = None,
    report_period: str | None = None,
) -> list[GeneratedReport]:
    """Registry rows, most recently generated first."""
    query = select(GeneratedReport).order_by(GeneratedReport.generated_at.desc())
    if branch_id is not None:
        query = query.where(GeneratedReport.branch_id == branch_id)
    if report_period is not None:
        query = query.where(GeneratedReport.report_period == report_period)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_report(db: AsyncSession, report_id: uuid.UUID) -> GeneratedReport:
    report = await db.get(GeneratedReport, report_id)
    if report is None:
        raise ReportNotFoundError(report_id)
    return report


async def download(blob_store: LocalBlobStore, report: GeneratedReport) -> bytes:
    return await blob_store.download(report.file_path)


async def remove(
    db: AsyncSession,
    blob_store: LocalBlobStore,
    caller: Caller,
    report_id: uuid.UUID,
) -> None:
    """
    Delete a report: the object first, then the registry row.

    The registry row is removed even if the object cannot be, since the
    registry decides whether a report exists.
    """
    ensure_can_generate_reports(caller)
    report = await get_report(db, report_id)

    try:
        await blob_store.remove(report.file_path)
    except StorageError:
        logger.warning("Could not remove report object %s", report.file_path, exc_info=True)

    await db.delete(report)
    await db.flush()
    logger.info("Deleted report %s", report.file_path)
