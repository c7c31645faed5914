"""
Pydantic schemas for report generation and the report registry.

The generate endpoint keeps the camelCase field names the dashboard and the
scheduler already send (branchId, reportType, startYear...); snake_case
names are accepted too.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class GenerateReportRequest(BaseModel):
    """Request body for POST /generate-monthly-reports."""
    model_config = ConfigDict(populate_by_name=True)

    branch_id: uuid.UUID | None = Field(None, alias="branchId")
    report_type: Literal["single", "yearly", "range"] | None = Field(None, alias="reportType")
    year: int | None = None
    month: int | None = None
    start_year: int | None = Field(None, alias="startYear")
    start_month: int | None = Field(None, alias="startMonth")
    end_year: int | None = Field(None, alias="endYear")
    end_month: int | None = Field(None, alias="endMonth")
    is_automated: bool = Field(False, alias="isAutomated")
    currency: str | None = Field(None, min_length=3, max_length=3)


class SchedulerRequest(BaseModel):
    """Optional body for POST /monthly-report-scheduler; defaults to last month."""
    year: int | None = None
    month: int | None = Field(None, ge=1, le=12)


class GeneratedReportResponse(BaseModel):
    """One registry row."""
    id: uuid.UUID
    branch_id: uuid.UUID | None
    report_type: str
    report_period: str
    file_name: str
    file_path: str
    file_size: int
    transaction_count: int
    currency_filter: str | None = None
    total_amount: Decimal
    currency: str
    currency_totals: dict[str, Decimal]
    generated_by: uuid.UUID | None
    generated_at: datetime
    status: str
    error_message: str | None

    model_config = {"from_attributes": True}


class ReportPreviewScope(BaseModel):
    """Transaction count and totals one scope would report."""
    branch_id: uuid.UUID | None
    branch: str
    transaction_count: int
    total_amount: Decimal
    currency: str | None
    currency_totals: dict[str, Decimal]


class ReportPreviewResponse(BaseModel):
    """Response for GET /reports/preview."""
    period: str
    description: str
    scopes: list[ReportPreviewScope]


class GenerateReportResponse(BaseModel):
    success: bool = True
    report: GeneratedReportResponse | None = None
    skipped: bool = False
    message: str | None = None


class SchedulerResult(BaseModel):
    """Outcome for one scope of a scheduled run."""
    branch: str
    success: bool
    skipped: bool = False
    message: str | None = None
    error: str | None = None
    report: GeneratedReportResponse | None = None


class SchedulerResponse(BaseModel):
    success: bool = True
    message: str
    results: list[SchedulerResult]
