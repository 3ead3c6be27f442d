"""Monthly closure and snapshot row persistence operations."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from freelance_billing.db.models.client import Client
from freelance_billing.db.models.monthly_closure import ClosureStatus, MonthlyClosure
from freelance_billing.db.models.monthly_closure_client import MonthlyClosureClient
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.domain.period import BillingPeriod


@dataclass(frozen=True, slots=True)
class ClosureListFilters:
    """Supported filters for the closure list endpoint."""

    user_id: UUID
    year: int | None = None
    status: ClosureStatus | None = None
    limit: int = 50
    offset: int = 0


class MonthlyClosureRepository:
    """Repository for closures and their frozen client/expense rows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def exists_for_period(self, *, user_id: UUID, period: BillingPeriod) -> bool:
        statement = select(MonthlyClosure.id).where(
            MonthlyClosure.user_id == user_id,
            MonthlyClosure.month == period.month,
            MonthlyClosure.year == period.year,
        )
        return self._session.scalar(statement) is not None

    def add(self, closure: MonthlyClosure) -> MonthlyClosure:
        self._session.add(closure)
        self._session.flush()
        return closure

    def get_for_user(
        self,
        *,
        closure_id: UUID,
        user_id: UUID,
    ) -> MonthlyClosure | None:
        statement = select(MonthlyClosure).where(
            MonthlyClosure.id == closure_id,
            MonthlyClosure.user_id == user_id,
        )
        return self._session.scalar(statement)

    def get_for_update(
        self,
        *,
        closure_id: UUID,
        user_id: UUID,
    ) -> MonthlyClosure | None:
        statement = (
            select(MonthlyClosure)
            .where(
                MonthlyClosure.id == closure_id,
                MonthlyClosure.user_id == user_id,
            )
            .with_for_update()
        )
        return self._session.scalar(statement)

    def list_for_user(
        self,
        filters: ClosureListFilters,
    ) -> tuple[list[MonthlyClosure], int]:
        statement = select(MonthlyClosure).where(
            MonthlyClosure.user_id == filters.user_id
        )
        if filters.year is not None:
            statement = statement.where(MonthlyClosure.year == filters.year)
        if filters.status is not None:
            statement = statement.where(MonthlyClosure.status == filters.status)

        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        page_statement = (
            statement.order_by(
                MonthlyClosure.year.desc(),
                MonthlyClosure.month.desc(),
            )
            .limit(filters.limit)
            .offset(filters.offset)
        )
        items = list(self._session.scalars(page_statement).all())
        return items, total

    def delete(self, closure: MonthlyClosure) -> None:
        self._session.delete(closure)
        self._session.flush()

    def list_client_snapshots(self, closure_id: UUID) -> list[MonthlyClosureClient]:
        statement = (
            select(MonthlyClosureClient)
            .join(Client, Client.id == MonthlyClosureClient.client_id)
            .where(MonthlyClosureClient.monthly_closure_id == closure_id)
            .order_by(Client.name.asc(), Client.id.asc())
        )
        return list(self._session.scalars(statement).unique().all())

    def list_expense_snapshots(
        self, closure_id: UUID
    ) -> list[MonthlyClosureExpense]:
        statement = (
            select(MonthlyClosureExpense)
            .where(MonthlyClosureExpense.monthly_closure_id == closure_id)
            .order_by(MonthlyClosureExpense.name.asc(), MonthlyClosureExpense.id.asc())
        )
        return list(self._session.scalars(statement).all())

    def get_expense_snapshot(
        self,
        *,
        closure_id: UUID,
        expense_snapshot_id: UUID,
    ) -> MonthlyClosureExpense | None:
        statement = select(MonthlyClosureExpense).where(
            MonthlyClosureExpense.id == expense_snapshot_id,
            MonthlyClosureExpense.monthly_closure_id == closure_id,
        )
        return self._session.scalar(statement)

    def has_registry_expense(self, *, closure_id: UUID, expense_id: UUID) -> bool:
        statement = select(MonthlyClosureExpense.id).where(
            MonthlyClosureExpense.monthly_closure_id == closure_id,
            MonthlyClosureExpense.expense_id == expense_id,
        )
        return self._session.scalar(statement) is not None

    def add_expense_snapshot(
        self, snapshot: MonthlyClosureExpense
    ) -> MonthlyClosureExpense:
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def delete_expense_snapshot(self, snapshot: MonthlyClosureExpense) -> None:
        self._session.delete(snapshot)
        self._session.flush()
