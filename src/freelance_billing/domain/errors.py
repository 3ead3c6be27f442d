"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_REQUEST",
            message=message
            or compose_error_message(
                cause="Request data violates business rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class ClosureNotFoundError(DomainError):
    """Raised when a closure does not exist for the requesting user."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CLOSURE_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Monthly closure was not found.",
                action="Check the closure id and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class ClosureExpenseNotFoundError(DomainError):
    """Raised when an expense line item is not attached to the closure."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CLOSURE_EXPENSE_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Expense line item was not found in this closure.",
                action="Check the closure expense id and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class ExpenseNotFoundError(DomainError):
    """Raised when a registry expense is missing, inactive or foreign."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="EXPENSE_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Expense was not found among your active expenses.",
                action="Select an active registered expense or enter it manually.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class DuplicateClosureError(DomainError):
    """Raised when the user already has a closure for the period."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DUPLICATE_CLOSURE",
            message=message
            or compose_error_message(
                cause="A monthly closure already exists for this month and year.",
                action="Open the existing closure instead of creating a new one.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class DuplicateExpenseError(DomainError):
    """Raised when the same registry expense is attached twice to a closure."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DUPLICATE_EXPENSE",
            message=message
            or compose_error_message(
                cause="This registered expense is already attached to the closure.",
                action="Edit the existing line item instead of adding it again.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class ClosureClosedError(DomainError):
    """Raised when a mutation targets a closed closure."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CLOSURE_CLOSED",
            message=message
            or compose_error_message(
                cause="The monthly closure is closed.",
                action="Reopen the closure before changing it.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class InvalidClosureStateTransitionError(DomainError):
    """Raised when a lifecycle transition is not valid from current state."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=message
            or compose_error_message(
                cause="Closure status does not allow this transition.",
                action="Refresh the closure status and retry.",
            ),
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            details=details or {},
        )


class ClosureBlockedError(DomainError):
    """Raised when closing a period that still has unresolved tasks."""

    def __init__(
        self,
        *,
        pending_tasks_count: int,
        tasks_without_hours_count: int,
        message: str | None = None,
    ) -> None:
        blockers: list[str] = []
        if pending_tasks_count > 0:
            blockers.append(f"{pending_tasks_count} pending task(s)")
        if tasks_without_hours_count > 0:
            blockers.append(f"{tasks_without_hours_count} task(s) without hours")
        super().__init__(
            code="CLOSURE_BLOCKED",
            message=message
            or compose_error_message(
                cause=f"The period still has {' and '.join(blockers)}.",
                action=(
                    "Complete pending tasks and register hours for every task "
                    "of the period, then close again."
                ),
            ),
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            details={
                "pending_tasks_count": pending_tasks_count,
                "tasks_without_hours_count": tasks_without_hours_count,
            },
        )

    @property
    def pending_tasks_count(self) -> int:
        return int(self.details["pending_tasks_count"])

    @property
    def tasks_without_hours_count(self) -> int:
        return int(self.details["tasks_without_hours_count"])
