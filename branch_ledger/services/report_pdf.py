"""
PDF layout for transaction reports (reportlab canvas).

Page geometry is fixed so that regenerating the same period produces the
same layout:

    page 595 x 842 pt, 50 pt margins
    header block: title, branch, period, count, total(s), rule
    column header row, then one 15 pt row per transaction
    a new page starts when the cursor drops below margin + 50
    continuation pages repeat the column header
    closing rule and "Generated on" footer

Pagination is planned up front by plan_pages(), a pure function of the row
count (and the number of total lines in the header), and the renderer
follows that plan exactly.
"""

import io
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas

PAGE_WIDTH = 595
PAGE_HEIGHT = 842
MARGIN = 50
ROW_HEIGHT = 15
# Start a new page once the cursor is below this line
PAGE_BREAK_Y = MARGIN + 50

COLUMN_HEADERS = ["Date", "Branch From-To", "Sender - Receiver", "MTCN", "Amount", "Status"]
COLUMN_WIDTHS = [40, 70, 185, 65, 65, 40]

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

TITLE = "Monthly Transaction Report"

_DARK = Color(0.1, 0.1, 0.1)
_HEADER_TEXT = Color(0.2, 0.2, 0.2)
_BODY_TEXT = Color(0.3, 0.3, 0.3)
_MUTED = Color(0.5, 0.5, 0.5)
_RULE = Color(0.8, 0.8, 0.8)

# Vertical advance after each header element
_TITLE_GAP = 30
_BRANCH_GAP = 20
_PERIOD_GAP = 30
_COUNT_GAP = 18
_TOTAL_GAP = 18
_HEADER_RULE_GAP = 35 - _TOTAL_GAP   # extra space after the last total line
_RULE_GAP = 20
_COLUMN_HEADER_GAP = 18


@dataclass(frozen=True)
class ReportRow:
    """One transaction as displayed in the report table."""
    transaction_date: date
    from_branch: str | None
    to_branch: str | None
    from_staff: str | None
    to_staff: str | None
    confirmation_code: str | None
    amount: Decimal
    currency: str
    status: str


def truncate(text: str, max_length: int, keep: int) -> str:
    """Cut `text` to `keep` chars plus ".." when it is longer than `max_length`."""
    if len(text) > max_length:
        return text[:keep] + ".."
    return text


def format_amount(amount: Decimal) -> str:
    """Thousands separators; decimals only when the amount has cents."""
    if amount == amount.to_integral_value():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def row_cells(row: ReportRow) -> list[str]:
    """The six display strings for a table row, truncated to fit their columns."""
    from_branch = row.from_branch or "N/A"
    to_branch = row.to_branch or "N/A"
    branch_pair = f"{from_branch[:7]} - {to_branch[:7]}"
    staff_pair = f"{row.from_staff or 'N/A'} - {row.to_staff or 'N/A'}"
    code = row.confirmation_code or "N/A"

    return [
        row.transaction_date.strftime("%d/%m/%Y"),
        truncate(branch_pair, 15, 13),
        truncate(staff_pair, 38, 36),
        truncate(code, 11, 9),
        f"{format_amount(row.amount)} {row.currency}",
        row.status[:5].upper(),
    ]


def _first_table_y(total_lines: int) -> float:
    """Cursor position of the first data row on page one."""
    y = PAGE_HEIGHT - MARGIN
    y -= _TITLE_GAP + _BRANCH_GAP + _PERIOD_GAP + _COUNT_GAP
    y -= _TOTAL_GAP * total_lines + _HEADER_RULE_GAP
    y -= _RULE_GAP + _COLUMN_HEADER_GAP
    return y


def plan_pages(row_count: int, total_lines: int = 1) -> list[int]:
    """
    Number of table rows on each page.

    Args:
        row_count: Transactions in the report.
        total_lines: Lines used for totals in the header (one per currency).

    Returns:
        Rows per page, e.g. [35, 45, 3]. Always at least one page.
    """
    pages = [0]
    y = _first_table_y(total_lines)
    for _ in range(row_count):
        if y < PAGE_BREAK_Y:
            pages.append(0)
            y = PAGE_HEIGHT - MARGIN - _COLUMN_HEADER_GAP
        pages[-1] += 1
        y -= ROW_HEIGHT
    return pages


class _ReportCanvas:
    """Stateful drawing cursor over a reportlab canvas."""

    def __init__(self, buffer: io.BytesIO, title: str):
        self.canvas = canvas.Canvas(buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT), invariant=1)
        self.canvas.setTitle(title)
        self.canvas.setAuthor("Branch Ledger")
        self.y = PAGE_HEIGHT - MARGIN

    def text(self, value: str, x: float, size: float, font: str = FONT, color: Color = _BODY_TEXT):
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self.y, value)

    def rule(self):
        self.canvas.setStrokeColor(_RULE)
        self.canvas.setLineWidth(1)
        self.canvas.line(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y)

    def columns(self, values: list[str], size: float, font: str, color: Color):
        x = MARGIN
        for value, width in zip(values, COLUMN_WIDTHS):
            self.text(value, x, size, font, color)
            x += width

    def new_page(self):
        self.canvas.showPage()
        self.y = PAGE_HEIGHT - MARGIN

    def save(self):
        self.canvas.save()


def render_report_pdf(
    rows: list[ReportRow],
    branch_name: str,
    period_description: str,
    currency_totals: dict[str, Decimal],
    generated_at: datetime,
) -> bytes:
    """
    Render the transaction report.

    Args:
        rows: Transactions ordered by date ascending.
        branch_name: Branch display name or "All Branches".
        period_description: Human period text ("March 2025").
        currency_totals: Total per currency; one header line per entry.
        generated_at: Timestamp printed in the footer.

    Returns:
        The PDF document bytes.
    """
    buffer = io.BytesIO()
    doc = _ReportCanvas(buffer, f"{TITLE} - {branch_name} - {period_description}")

    doc.text(TITLE, MARGIN, 20, FONT_BOLD, _DARK)
    doc.y -= _TITLE_GAP
    doc.text(f"Branch: {branch_name}", MARGIN, 12)
    doc.y -= _BRANCH_GAP
    doc.text(f"Period: {period_description}", MARGIN, 12)
    doc.y -= _PERIOD_GAP

    doc.text(f"Total Transactions: {len(rows)}", MARGIN, 11, FONT_BOLD, _DARK)
    doc.y -= _COUNT_GAP

    total_lines = max(len(currency_totals), 1)
    if not currency_totals:
        doc.text("Total Amount: 0", MARGIN, 11, FONT_BOLD, _DARK)
        doc.y -= _TOTAL_GAP
    for code, total in currency_totals.items():
        doc.text(f"Total Amount: {format_amount(total)} {code}", MARGIN, 11, FONT_BOLD, _DARK)
        doc.y -= _TOTAL_GAP
    doc.y -= _HEADER_RULE_GAP

    doc.rule()
    doc.y -= _RULE_GAP
    doc.columns(COLUMN_HEADERS, 8, FONT_BOLD, _HEADER_TEXT)
    doc.y -= _COLUMN_HEADER_GAP

    remaining = iter(rows)
    for page_index, page_rows in enumerate(plan_pages(len(rows), total_lines)):
        if page_index > 0:
            doc.new_page()
            doc.columns(COLUMN_HEADERS, 8, FONT_BOLD, _HEADER_TEXT)
            doc.y -= _COLUMN_HEADER_GAP
        for _ in range(page_rows):
            doc.columns(row_cells(next(remaining)), 6, FONT, _BODY_TEXT)
            doc.y -= ROW_HEIGHT

    # Closing rule + footer need 30pt below the cursor
    if doc.y - 30 < MARGIN:
        doc.new_page()
    doc.y -= 10
    doc.rule()
    doc.y -= 20
    doc.text(
        f"Generated on: {generated_at.strftime('%d/%m/%Y, %H:%M:%S')}",
        MARGIN, 8, FONT, _MUTED,
    )

    doc.save()
    return buffer.getvalue()
