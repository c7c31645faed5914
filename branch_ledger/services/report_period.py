"""
Report period resolution.

Turns a report mode plus its fields into an inclusive interval and a
canonical label. Everything here is pure: the "current" period is derived
from a `now` argument, never from the wall clock, so callers (and tests)
control it.

    resolve_period("single", year=2025, month=3)
        -> 2025-03-01 00:00:00 .. 2025-03-31 23:59:59, label "2025-03"
    resolve_period("yearly", year=2025)
        -> 2025-01-01 00:00:00 .. 2025-12-31 23:59:59, label "2025"
    resolve_period("range", start_year=2025, start_month=1, end_year=2025, end_month=6)
        -> 2025-01-01 00:00:00 .. 2025-06-30 23:59:59, label "2025-01_to_2025-06"
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime

from branch_ledger.exceptions import InvalidPeriodError

REPORT_MODES = ("single", "yearly", "range")


@dataclass(frozen=True)
class ResolvedPeriod:
    """An inclusive report interval with its label and display text."""
    mode: str
    start: datetime
    end: datetime
    label: str
    description: str

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1)


def _month_end(year: int, month: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59)


def _require(value: int | None, name: str, mode: str) -> int:
    if value is None:
        raise InvalidPeriodError(f"'{name}' is required for {mode} reports")
    return value


def _check_month(month: int, name: str = "month") -> None:
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"'{name}' must be between 1 and 12, got {month}")


def resolve_period(
    mode: str,
    year: int | None = None,
    month: int | None = None,
    start_year: int | None = None,
    start_month: int | None = None,
    end_year: int | None = None,
    end_month: int | None = None,
) -> ResolvedPeriod:
    """
    Resolve a report mode into an inclusive interval.

    Args:
        mode: "single", "yearly" or "range".
        year, month: Used by "single" (both) and "yearly" (year only).
        start_year, start_month, end_year, end_month: Used by "range".

    Returns:
        A ResolvedPeriod whose end is 23:59:59 on the last day.

    Raises:
        InvalidPeriodError: Unknown mode, missing field, month outside 1-12,
            or a range whose end month precedes its start month.
    """
    if mode == "single":
        year = _require(year, "year", mode)
        month = _require(month, "month", mode)
        _check_month(month)
        return ResolvedPeriod(
            mode=mode,
            start=_month_start(year, month),
            end=_month_end(year, month),
            label=f"{year}-{month:02d}",
            description=f"{calendar.month_name[month]} {year}",
        )

    if mode == "yearly":
        year = _require(year, "year", mode)
        return ResolvedPeriod(
            mode=mode,
            start=_month_start(year, 1),
            end=_month_end(year, 12),
            label=f"{year}",
            description=f"Year {year}",
        )

    if mode == "range":
        start_year = _require(start_year, "startYear", mode)
        start_month = _require(start_month, "startMonth", mode)
        end_year = _require(end_year, "endYear", mode)
        end_month = _require(end_month, "endMonth", mode)
        _check_month(start_month, "startMonth")
        _check_month(end_month, "endMonth")
        if (end_year, end_month) < (start_year, start_month):
            raise InvalidPeriodError(
                f"Range end {end_year}-{end_month:02d} is before "
                f"start {start_year}-{start_month:02d}"
            )
        return ResolvedPeriod(
            mode=mode,
            start=_month_start(start_year, start_month),
            end=_month_end(end_year, end_month),
            label=f"{start_year}-{start_month:02d}_to_{end_year}-{end_month:02d}",
            description=(
                f"{calendar.month_abbr[start_month]} {start_year} to "
                f"{calendar.month_abbr[end_month]} {end_year}"
            ),
        )

    raise InvalidPeriodError(
        f"Unknown report type '{mode}'; expected one of {', '.join(REPORT_MODES)}"
    )


def default_report_month(now: datetime) -> tuple[int, int]:
    """Return (year, month) of the calendar month before `now`."""
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1
