"""ORM models for the freelance_billing domain."""

from freelance_billing.db.models.client import Client
from freelance_billing.db.models.expense import Expense
from freelance_billing.db.models.monthly_closure import ClosureStatus, MonthlyClosure
from freelance_billing.db.models.monthly_closure_client import MonthlyClosureClient
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.db.models.task import Task, TaskStatus
from freelance_billing.db.models.user import User

__all__ = [
    "Client",
    "ClosureStatus",
    "Expense",
    "MonthlyClosure",
    "MonthlyClosureClient",
    "MonthlyClosureExpense",
    "Task",
    "TaskStatus",
    "User",
]
