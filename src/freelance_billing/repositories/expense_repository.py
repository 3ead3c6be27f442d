"""Expense registry persistence operations."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from freelance_billing.db.models.expense import Expense


class ExpenseRepository:
    """Repository for the user's expense registry."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_user(
        self,
        *,
        user_id: UUID,
        include_inactive: bool = False,
    ) -> list[Expense]:
        statement = select(Expense).where(Expense.user_id == user_id)
        if not include_inactive:
            statement = statement.where(Expense.is_active.is_(True))
        statement = statement.order_by(Expense.name.asc(), Expense.id.asc())
        return list(self._session.scalars(statement).all())

    def get_for_user(self, *, expense_id: UUID, user_id: UUID) -> Expense | None:
        statement = select(Expense).where(
            Expense.id == expense_id,
            Expense.user_id == user_id,
        )
        return self._session.scalar(statement)

    def get_active_for_user(
        self,
        *,
        expense_id: UUID,
        user_id: UUID,
    ) -> Expense | None:
        statement = select(Expense).where(
            Expense.id == expense_id,
            Expense.user_id == user_id,
            Expense.is_active.is_(True),
        )
        return self._session.scalar(statement)

    def list_active_by_ids(
        self,
        *,
        user_id: UUID,
        expense_ids: Collection[UUID],
    ) -> list[Expense]:
        if not expense_ids:
            return []
        statement = select(Expense).where(
            Expense.user_id == user_id,
            Expense.id.in_(list(expense_ids)),
            Expense.is_active.is_(True),
        )
        return list(self._session.scalars(statement).all())

    def list_active_recurring(self, *, user_id: UUID) -> list[Expense]:
        statement = (
            select(Expense)
            .where(
                Expense.user_id == user_id,
                Expense.is_active.is_(True),
                Expense.is_recurring.is_(True),
            )
            .order_by(Expense.name.asc(), Expense.id.asc())
        )
        return list(self._session.scalars(statement).all())

    def add(self, expense: Expense) -> Expense:
        self._session.add(expense)
        self._session.flush()
        return expense
