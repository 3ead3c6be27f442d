"""Read-oriented task queries used by period aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from freelance_billing.db.models.client import Client
from freelance_billing.db.models.task import Task, TaskStatus
from freelance_billing.domain.money import quantize_hours
from freelance_billing.domain.period import BillingPeriod


@dataclass(frozen=True, slots=True)
class ClientHoursTotal:
    """Hours accumulated by one client's tasks inside a period."""

    client_id: UUID
    client_name: str
    total_hours: Decimal


@dataclass(frozen=True, slots=True)
class PeriodTaskCounts:
    """Counts of tasks that block closing a period."""

    pending_tasks_count: int
    tasks_without_hours_count: int


class TaskQueryRepository:
    """Grouped task queries scoped by user and half-open date range."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_client_hour_totals(
        self,
        *,
        user_id: UUID,
        period: BillingPeriod,
    ) -> list[ClientHoursTotal]:
        """Return per-client hour sums, omitting clients with zero hours."""

        hours_sum = func.coalesce(func.sum(Task.hours_spent), Decimal("0.00"))
        statement = (
            select(Task.client_id, Client.name, hours_sum)
            .join(Client, Client.id == Task.client_id)
            .where(
                Task.user_id == user_id,
                Task.creation_date >= period.start,
                Task.creation_date < period.end,
            )
            .group_by(Task.client_id, Client.name)
            .having(hours_sum > 0)
            .order_by(Client.name.asc(), Task.client_id.asc())
        )

        rows = self._session.execute(statement).all()
        return [
            ClientHoursTotal(
                client_id=client_id,
                client_name=client_name,
                total_hours=quantize_hours(Decimal(total_hours)),
            )
            for client_id, client_name, total_hours in rows
        ]

    def get_period_task_counts(
        self,
        *,
        user_id: UUID,
        period: BillingPeriod,
    ) -> PeriodTaskCounts:
        """Count pending tasks and tasks without hours in one query."""

        statement = select(
            func.count(case((Task.status == TaskStatus.PENDING, 1))),
            func.count(case((Task.hours_spent <= 0, 1))),
        ).where(
            Task.user_id == user_id,
            Task.creation_date >= period.start,
            Task.creation_date < period.end,
        )

        pending_count, without_hours_count = self._session.execute(statement).one()
        return PeriodTaskCounts(
            pending_tasks_count=int(pending_count or 0),
            tasks_without_hours_count=int(without_hours_count or 0),
        )
