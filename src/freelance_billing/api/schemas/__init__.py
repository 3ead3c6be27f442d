"""API request and response schemas."""

from freelance_billing.api.schemas.expenses import (
    CreateExpenseRequest,
    ExpenseListResponse,
    ExpenseResponse,
)
from freelance_billing.api.schemas.monthly_closures import (
    CreateMonthlyClosureRequest,
    MonthlyClosureListResponse,
    MonthlyClosureResponse,
)

__all__ = [
    "CreateExpenseRequest",
    "CreateMonthlyClosureRequest",
    "ExpenseListResponse",
    "ExpenseResponse",
    "MonthlyClosureListResponse",
    "MonthlyClosureResponse",
]
