"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like NoTransactionsFoundError)
without importing HTTP concepts. The handler registered here translates them
into HTTP responses with a consistent body:

    {"error": "human readable message", "error_type": "no_transactions"}

Exception hierarchy:
    LedgerAPIError (base)
    ├── BranchNotFoundError / StaffNotFoundError          — 404
    ├── TransactionNotFoundError / BudgetNotFoundError    — 404
    ├── ReportNotFoundError                               — 404
    ├── UnauthorizedAccessError                           — 403
    ├── InvalidCredentialsError                           — 401
    ├── InvalidStatusTransitionError                      — 409
    ├── DuplicateBudgetError / DuplicateEmailError        — 409
    ├── DuplicateBranchError                              — 409
    ├── TransactionValidationError                        — 400
    ├── InvalidPeriodError                                — 400
    ├── NoTransactionsFoundError                          — 400
    └── StorageError                                      — 500
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerAPIError(Exception):
    """Base exception for all Branch Ledger domain errors."""

    status_code: int = 400
    error_type: str = "ledger_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class BranchNotFoundError(LedgerAPIError):
    """Raised when a referenced branch does not exist."""

    status_code = 404
    error_type = "branch_not_found"

    def __init__(self, branch_id: uuid.UUID):
        self.branch_id = branch_id
        super().__init__(f"Branch {branch_id} not found")


class StaffNotFoundError(LedgerAPIError):
    """Raised when a referenced staff profile does not exist."""

    status_code = 404
    error_type = "staff_not_found"

    def __init__(self, staff_id: uuid.UUID):
        self.staff_id = staff_id
        super().__init__(f"Staff member {staff_id} not found")


class TransactionNotFoundError(LedgerAPIError):
    status_code = 404
    error_type = "transaction_not_found"

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class BudgetNotFoundError(LedgerAPIError):
    status_code = 404
    error_type = "budget_not_found"

    def __init__(self, budget_id: uuid.UUID):
        self.budget_id = budget_id
        super().__init__(f"Budget {budget_id} not found")


class ReportNotFoundError(LedgerAPIError):
    status_code = 404
    error_type = "report_not_found"

    def __init__(self, report_id: uuid.UUID):
        self.report_id = report_id
        super().__init__(f"Report {report_id} not found")


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------

class UnauthorizedAccessError(LedgerAPIError):
    """Raised when a caller lacks the rights for the requested mutation."""

    status_code = 403
    error_type = "unauthorized_access"

    def __init__(self, detail: str = "You are not allowed to perform this action"):
        super().__init__(detail)


class InvalidCredentialsError(LedgerAPIError):
    """Raised when login credentials are incorrect."""

    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


class DuplicateEmailError(LedgerAPIError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


# ---------------------------------------------------------------------------
# Ledger rules
# ---------------------------------------------------------------------------

class TransactionValidationError(LedgerAPIError):
    """Raised when a transaction fails server-side validation."""

    error_type = "invalid_transaction"


class InvalidStatusTransitionError(LedgerAPIError):
    """
    Raised when a status change is not allowed by the transaction state machine.

    Attributes:
        current: The status the transaction is currently in.
        requested: The status the caller asked for.
    """

    status_code = 409
    error_type = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change transaction status from '{current}' to '{requested}'"
        )


class DuplicateBranchError(LedgerAPIError):
    status_code = 409
    error_type = "duplicate_branch"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Branch '{name}' already exists")


class DuplicateBudgetError(LedgerAPIError):
    """Raised when a budget already exists for the branch, period and currency."""

    status_code = 409
    error_type = "duplicate_budget"

    def __init__(self, detail: str = "A budget already exists for this branch, period and currency"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class InvalidPeriodError(LedgerAPIError):
    """Raised when a report period cannot be resolved (missing fields, reversed range)."""

    error_type = "invalid_period"


class NoTransactionsFoundError(LedgerAPIError):
    """Raised when a report selection is empty."""

    error_type = "no_transactions"

    def __init__(self):
        super().__init__("No transactions found for this period")


class StorageError(LedgerAPIError):
    """Raised when the blob store fails to write, read or delete an artifact."""

    status_code = 500
    error_type = "storage_error"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every LedgerAPIError subclass carries its own status code and error type,
    so a single handler keeps the response format consistent.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(LedgerAPIError)
    async def ledger_error_handler(
        request: Request, exc: LedgerAPIError
    ) -> JSONResponse:
        content = {"error": exc.detail, "error_type": exc.error_type}
        if isinstance(exc, InvalidStatusTransitionError):
            content["current_status"] = exc.current
            content["requested_status"] = exc.requested
        return JSONResponse(status_code=exc.status_code, content=content)
