"""Bridge between the live expense registry and closure expense line items."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from freelance_billing.db.integrity import CLOSURE_EXPENSE_UNIQUE, violates
from freelance_billing.db.models.expense import Expense
from freelance_billing.db.models.monthly_closure import MonthlyClosure
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.domain.errors import (
    ClosureClosedError,
    ClosureExpenseNotFoundError,
    ClosureNotFoundError,
    DuplicateExpenseError,
    ExpenseNotFoundError,
    InvalidRequestError,
    compose_error_message,
)
from freelance_billing.domain.money import MAX_MONEY, quantize_money

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ExpenseRegistryProtocol(Protocol):
    """Expense registry contract consumed by snapshot manager."""

    def get_active_for_user(
        self,
        *,
        expense_id: UUID,
        user_id: UUID,
    ) -> Expense | None: ...

    def list_active_by_ids(
        self,
        *,
        user_id: UUID,
        expense_ids: Sequence[UUID],
    ) -> list[Expense]: ...

    def list_active_recurring(self, *, user_id: UUID) -> list[Expense]: ...


class ClosureExpenseRepositoryProtocol(Protocol):
    """Closure repository contract consumed by snapshot manager."""

    def get_for_update(
        self,
        *,
        closure_id: UUID,
        user_id: UUID,
    ) -> MonthlyClosure | None: ...

    def get_expense_snapshot(
        self,
        *,
        closure_id: UUID,
        expense_snapshot_id: UUID,
    ) -> MonthlyClosureExpense | None: ...

    def has_registry_expense(self, *, closure_id: UUID, expense_id: UUID) -> bool: ...

    def add_expense_snapshot(
        self, snapshot: MonthlyClosureExpense
    ) -> MonthlyClosureExpense: ...

    def delete_expense_snapshot(self, snapshot: MonthlyClosureExpense) -> None: ...


@dataclass(slots=True, frozen=True)
class RegistryExpenseSelection:
    """Expense picked from the registry, optionally with a custom amount."""

    expense_id: UUID
    amount: Decimal | None = None


@dataclass(slots=True, frozen=True)
class ManualExpenseSelection:
    """Expense typed in for one closure without a registry entry."""

    name: str
    amount: Decimal
    description: str | None = None


ExpenseSelection = RegistryExpenseSelection | ManualExpenseSelection


@dataclass(slots=True, frozen=True)
class ExpenseSnapshotDraft:
    """Resolved expense line item ready to be persisted into a closure."""

    expense_id: UUID | None
    name: str
    description: str | None
    amount: Decimal

    def to_model(self, closure_id: UUID | None = None) -> MonthlyClosureExpense:
        snapshot = MonthlyClosureExpense(
            expense_id=self.expense_id,
            name=self.name,
            description=self.description,
            amount=self.amount,
        )
        if closure_id is not None:
            snapshot.monthly_closure_id = closure_id
        return snapshot


@dataclass(slots=True, frozen=True)
class UpdateClosureExpenseInput:
    """Input model for editing one closure expense line item."""

    user_id: UUID
    closure_id: UUID
    expense_snapshot_id: UUID
    amount: Decimal | None = None
    name: str | None = None
    description: str | None = None
    clear_description: bool = False


def _check_max_amount(value: Decimal) -> Decimal:
    if value > MAX_MONEY:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Expense amount exceeds {MAX_MONEY}.",
                action="Provide a smaller amount.",
            )
        )
    return value


def _positive_amount(amount: Decimal) -> Decimal:
    value = quantize_money(amount)
    if value <= Decimal("0"):
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Expense amount must be greater than zero.",
                action="Provide a positive decimal amount with two digits.",
            )
        )
    return _check_max_amount(value)


def _non_negative_amount(amount: Decimal) -> Decimal:
    value = quantize_money(amount)
    if value < Decimal("0"):
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Expense amount cannot be negative.",
                action="Provide zero or a positive decimal amount.",
            )
        )
    return _check_max_amount(value)


def _clean_name(name: str) -> str:
    trimmed = name.strip()
    if len(trimmed) < 2:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Expense name must have at least two characters.",
                action="Provide a descriptive expense name.",
            )
        )
    return trimmed


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    trimmed = description.strip()
    return trimmed or None


class ExpenseSnapshotManager:
    """Resolves expense drafts for new closures and edits open closure items."""

    def __init__(
        self,
        *,
        expense_repository: ExpenseRegistryProtocol,
        closure_repository: ClosureExpenseRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._expense_repository = expense_repository
        self._closure_repository = closure_repository
        self._session = session

    def seed_for_new_closure(
        self,
        *,
        user_id: UUID,
        selections: Sequence[ExpenseSelection] = (),
    ) -> list[ExpenseSnapshotDraft]:
        """Resolve explicit selections, then append unselected recurring ones.

        Does not write anything; the caller persists the drafts together
        with the closure.
        """

        registry_ids = [
            selection.expense_id
            for selection in selections
            if isinstance(selection, RegistryExpenseSelection)
        ]
        duplicated_ids = sorted(
            {str(item) for item in registry_ids if registry_ids.count(item) > 1}
        )
        if duplicated_ids:
            raise DuplicateExpenseError(
                message=compose_error_message(
                    cause="The same registered expense was selected more than once.",
                    action="Select each registered expense a single time.",
                ),
                details={"expense_ids": duplicated_ids},
            )

        registry_by_id = {
            expense.id: expense
            for expense in self._expense_repository.list_active_by_ids(
                user_id=user_id,
                expense_ids=registry_ids,
            )
        }
        missing_ids = sorted(
            str(item) for item in registry_ids if item not in registry_by_id
        )
        if missing_ids:
            raise ExpenseNotFoundError(details={"expense_ids": missing_ids})

        drafts: list[ExpenseSnapshotDraft] = []
        for selection in selections:
            if isinstance(selection, RegistryExpenseSelection):
                drafts.append(
                    self._draft_from_registry(
                        registry_by_id[selection.expense_id],
                        selection.amount,
                    )
                )
            else:
                drafts.append(self._draft_from_manual(selection))

        selected_ids = set(registry_by_id)
        for expense in self._expense_repository.list_active_recurring(
            user_id=user_id
        ):
            if expense.id in selected_ids:
                continue
            drafts.append(self._draft_from_registry(expense, None))

        return drafts

    def add_expense(
        self,
        *,
        user_id: UUID,
        closure_id: UUID,
        selection: ExpenseSelection,
    ) -> MonthlyClosureExpense:
        """Attach one expense line item to an open closure."""

        try:
            closure = self._get_open_closure(user_id=user_id, closure_id=closure_id)

            if isinstance(selection, RegistryExpenseSelection):
                expense = self._expense_repository.get_active_for_user(
                    expense_id=selection.expense_id,
                    user_id=user_id,
                )
                if expense is None:
                    raise ExpenseNotFoundError(
                        details={"expense_ids": [str(selection.expense_id)]}
                    )
                if self._closure_repository.has_registry_expense(
                    closure_id=closure.id,
                    expense_id=expense.id,
                ):
                    raise DuplicateExpenseError(
                        details={"expense_id": str(expense.id)}
                    )
                draft = self._draft_from_registry(expense, selection.amount)
            else:
                draft = self._draft_from_manual(selection)

            snapshot = self._closure_repository.add_expense_snapshot(
                draft.to_model(closure.id)
            )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            if violates(exc, CLOSURE_EXPENSE_UNIQUE):
                raise DuplicateExpenseError() from exc
            raise
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "closure_expense_added",
            extra={
                "closure_id": str(closure_id),
                "closure_expense_id": str(snapshot.id),
                "expense_id": str(snapshot.expense_id) if snapshot.expense_id else None,
                "amount": str(snapshot.amount),
            },
        )
        return snapshot

    def update_expense(
        self, payload: UpdateClosureExpenseInput
    ) -> MonthlyClosureExpense:
        """Edit amount, name or description of one line item on an open closure."""

        try:
            closure = self._get_open_closure(
                user_id=payload.user_id,
                closure_id=payload.closure_id,
            )
            snapshot = self._get_snapshot(
                closure_id=closure.id,
                expense_snapshot_id=payload.expense_snapshot_id,
            )

            if payload.amount is not None:
                snapshot.amount = _non_negative_amount(payload.amount)
            if payload.name is not None:
                snapshot.name = _clean_name(payload.name)
            if payload.clear_description:
                snapshot.description = None
            elif payload.description is not None:
                snapshot.description = _clean_description(payload.description)

            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "closure_expense_updated",
            extra={
                "closure_id": str(payload.closure_id),
                "closure_expense_id": str(payload.expense_snapshot_id),
                "amount": str(snapshot.amount),
            },
        )
        return snapshot

    def update_expense_amount(
        self,
        *,
        user_id: UUID,
        closure_id: UUID,
        expense_snapshot_id: UUID,
        amount: Decimal,
    ) -> MonthlyClosureExpense:
        """Replace only the amount of one line item on an open closure."""

        return self.update_expense(
            UpdateClosureExpenseInput(
                user_id=user_id,
                closure_id=closure_id,
                expense_snapshot_id=expense_snapshot_id,
                amount=amount,
            )
        )

    def remove_expense(
        self,
        *,
        user_id: UUID,
        closure_id: UUID,
        expense_snapshot_id: UUID,
    ) -> None:
        """Hard-delete one line item from an open closure."""

        try:
            closure = self._get_open_closure(user_id=user_id, closure_id=closure_id)
            snapshot = self._get_snapshot(
                closure_id=closure.id,
                expense_snapshot_id=expense_snapshot_id,
            )
            self._closure_repository.delete_expense_snapshot(snapshot)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "closure_expense_removed",
            extra={
                "closure_id": str(closure_id),
                "closure_expense_id": str(expense_snapshot_id),
            },
        )

    def _get_open_closure(self, *, user_id: UUID, closure_id: UUID) -> MonthlyClosure:
        closure = self._closure_repository.get_for_update(
            closure_id=closure_id,
            user_id=user_id,
        )
        if closure is None:
            raise ClosureNotFoundError()
        if not closure.is_open:
            logger.warning(
                "closure_expense_change_rejected",
                extra={"closure_id": str(closure_id), "status": closure.status.value},
            )
            raise ClosureClosedError(
                message=compose_error_message(
                    cause="Expenses of a closed monthly closure cannot be changed.",
                    action="Reopen the closure before editing its expenses.",
                )
            )
        return closure

    def _get_snapshot(
        self,
        *,
        closure_id: UUID,
        expense_snapshot_id: UUID,
    ) -> MonthlyClosureExpense:
        snapshot = self._closure_repository.get_expense_snapshot(
            closure_id=closure_id,
            expense_snapshot_id=expense_snapshot_id,
        )
        if snapshot is None:
            raise ClosureExpenseNotFoundError()
        return snapshot

    @staticmethod
    def _draft_from_registry(
        expense: Expense,
        amount_override: Decimal | None,
    ) -> ExpenseSnapshotDraft:
        amount = expense.amount if amount_override is None else amount_override
        return ExpenseSnapshotDraft(
            expense_id=expense.id,
            name=expense.name,
            description=expense.description,
            amount=_positive_amount(amount),
        )

    @staticmethod
    def _draft_from_manual(selection: ManualExpenseSelection) -> ExpenseSnapshotDraft:
        return ExpenseSnapshotDraft(
            expense_id=None,
            name=_clean_name(selection.name),
            description=_clean_description(selection.description),
            amount=_positive_amount(selection.amount),
        )
