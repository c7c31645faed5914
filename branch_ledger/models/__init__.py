"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from branch_ledger.models directly
"""

from branch_ledger.models.user import User, UserType  # noqa: F401
from branch_ledger.models.branch import Branch, StaffProfile  # noqa: F401
from branch_ledger.models.transaction import Transaction, TransactionStatus  # noqa: F401
from branch_ledger.models.budget import Budget, BudgetPeriod  # noqa: F401
from branch_ledger.models.generated_report import GeneratedReport, ReportStatus  # noqa: F401
