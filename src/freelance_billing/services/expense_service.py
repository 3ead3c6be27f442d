"""Expense registry service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from freelance_billing.db.models.expense import Expense
from freelance_billing.domain.errors import (
    ExpenseNotFoundError,
    InvalidRequestError,
    compose_error_message,
)
from freelance_billing.domain.money import MAX_MONEY, quantize_money

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by expense service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class ExpenseRepositoryProtocol(Protocol):
    """Expense repository contract consumed by expense service."""

    def list_for_user(
        self,
        *,
        user_id: UUID,
        include_inactive: bool = False,
    ) -> list[Expense]: ...

    def get_for_user(self, *, expense_id: UUID, user_id: UUID) -> Expense | None: ...

    def add(self, expense: Expense) -> Expense: ...


@dataclass(slots=True, frozen=True)
class CreateExpenseInput:
    """Input model for registry expense creation."""

    user_id: UUID
    name: str
    amount: Decimal
    description: str | None = None
    is_recurring: bool = False


@dataclass(slots=True, frozen=True)
class UpdateExpenseInput:
    """Input model for registry expense partial update."""

    user_id: UUID
    expense_id: UUID
    name: str | None = None
    description: str | None = None
    clear_description: bool = False
    amount: Decimal | None = None
    is_recurring: bool | None = None
    is_active: bool | None = None


def _validate_name(name: str) -> str:
    trimmed = name.strip()
    if not MIN_NAME_LENGTH <= len(trimmed) <= MAX_NAME_LENGTH:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=(
                    f"Expense name must have between {MIN_NAME_LENGTH} and "
                    f"{MAX_NAME_LENGTH} characters."
                ),
                action="Provide a short descriptive name.",
            )
        )
    return trimmed


def _validate_amount(amount: Decimal) -> Decimal:
    value = quantize_money(amount)
    if value <= Decimal("0"):
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Expense amount must be greater than zero.",
                action="Provide a positive decimal amount with two digits.",
            )
        )
    if value > MAX_MONEY:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Expense amount exceeds {MAX_MONEY}.",
                action="Provide a smaller amount.",
            )
        )
    return value


class ExpenseService:
    """Coordinates expense registry use cases.

    Registry changes never touch expense line items already copied into
    monthly closures.
    """

    def __init__(
        self,
        *,
        expense_repository: ExpenseRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._expense_repository = expense_repository
        self._session = session

    def list_expenses(
        self,
        *,
        user_id: UUID,
        include_inactive: bool = False,
    ) -> list[Expense]:
        return self._expense_repository.list_for_user(
            user_id=user_id,
            include_inactive=include_inactive,
        )

    def get_expense(self, *, user_id: UUID, expense_id: UUID) -> Expense:
        expense = self._expense_repository.get_for_user(
            expense_id=expense_id,
            user_id=user_id,
        )
        if expense is None:
            raise ExpenseNotFoundError(
                message=compose_error_message(
                    cause="Expense was not found.",
                    action="Check the expense id and retry.",
                )
            )
        return expense

    def create_expense(self, payload: CreateExpenseInput) -> Expense:
        """Register one expense, active by default."""

        expense = Expense(
            user_id=payload.user_id,
            name=_validate_name(payload.name),
            description=(payload.description or "").strip() or None,
            amount=_validate_amount(payload.amount),
            is_recurring=payload.is_recurring,
            is_active=True,
        )
        try:
            self._expense_repository.add(expense)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "expense_created",
            extra={
                "expense_id": str(expense.id),
                "user_id": str(payload.user_id),
                "is_recurring": expense.is_recurring,
            },
        )
        return expense

    def update_expense(self, payload: UpdateExpenseInput) -> Expense:
        """Apply provided fields only."""

        try:
            expense = self.get_expense(
                user_id=payload.user_id,
                expense_id=payload.expense_id,
            )
            if payload.name is not None:
                expense.name = _validate_name(payload.name)
            if payload.clear_description:
                expense.description = None
            elif payload.description is not None:
                expense.description = payload.description.strip() or None
            if payload.amount is not None:
                expense.amount = _validate_amount(payload.amount)
            if payload.is_recurring is not None:
                expense.is_recurring = payload.is_recurring
            if payload.is_active is not None:
                expense.is_active = payload.is_active
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("expense_updated", extra={"expense_id": str(expense.id)})
        return expense

    def deactivate_expense(self, *, user_id: UUID, expense_id: UUID) -> None:
        """Soft-delete: the expense stops being selectable for new closures."""

        try:
            expense = self.get_expense(user_id=user_id, expense_id=expense_id)
            expense.is_active = False
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("expense_deactivated", extra={"expense_id": str(expense_id)})
