"""Helpers to recognize which unique constraint an IntegrityError violated."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


@dataclass(frozen=True, slots=True)
class UniqueConstraintRef:
    """Constraint name plus the column list SQLite reports instead of it."""

    name: str
    table: str
    columns: tuple[str, ...]

    @property
    def sqlite_signature(self) -> str:
        return ", ".join(f"{self.table}.{column}" for column in self.columns)


CLOSURE_PERIOD_UNIQUE = UniqueConstraintRef(
    name="uq_monthly_closures_user_period",
    table="monthly_closures",
    columns=("user_id", "month", "year"),
)

CLOSURE_EXPENSE_UNIQUE = UniqueConstraintRef(
    name="uq_monthly_closure_expenses_closure_expense",
    table="monthly_closure_expenses",
    columns=("monthly_closure_id", "expense_id"),
)


def violates(error: IntegrityError, constraint: UniqueConstraintRef) -> bool:
    """Return whether the database error was raised by the given constraint."""

    error_text = str(error.orig)
    return constraint.name in error_text or constraint.sqlite_signature in error_text
