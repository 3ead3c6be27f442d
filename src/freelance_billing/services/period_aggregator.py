"""Period aggregation of tasks into per-client billing subtotals."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from freelance_billing.domain.money import compute_billing_amounts
from freelance_billing.domain.period import BillingPeriod
from freelance_billing.repositories.task_repository import (
    ClientHoursTotal,
    PeriodTaskCounts,
)


class TaskQueryRepositoryProtocol(Protocol):
    """Task store contract consumed by the aggregator."""

    def get_client_hour_totals(
        self,
        *,
        user_id: UUID,
        period: BillingPeriod,
    ) -> list[ClientHoursTotal]: ...

    def get_period_task_counts(
        self,
        *,
        user_id: UUID,
        period: BillingPeriod,
    ) -> PeriodTaskCounts: ...


@dataclass(frozen=True, slots=True)
class ClientSubtotal:
    """Hours and amounts owed by one client for the period."""

    client_id: UUID
    client_name: str
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal


@dataclass(frozen=True, slots=True)
class PeriodTaskFlags:
    """Period-wide task conditions consulted by the close gate."""

    pending_tasks_count: int
    tasks_without_hours_count: int

    @property
    def has_pending_tasks(self) -> bool:
        return self.pending_tasks_count > 0

    @property
    def has_tasks_without_hours(self) -> bool:
        return self.tasks_without_hours_count > 0

    @property
    def allows_close(self) -> bool:
        return not (self.has_pending_tasks or self.has_tasks_without_hours)


@dataclass(frozen=True, slots=True)
class PeriodAggregate:
    """Billing picture of one user's month."""

    period: BillingPeriod
    clients: tuple[ClientSubtotal, ...]
    flags: PeriodTaskFlags

    @property
    def is_empty(self) -> bool:
        return not self.clients


class PeriodAggregator:
    """Builds per-client subtotals and task flags for a billing period."""

    def __init__(self, *, task_query_repository: TaskQueryRepositoryProtocol) -> None:
        self._task_query_repository = task_query_repository

    def aggregate(
        self,
        *,
        user_id: UUID,
        period: BillingPeriod,
        hourly_rate: Decimal,
        tax_percentage: Decimal,
    ) -> PeriodAggregate:
        """Return ordered client subtotals plus flags; empty when no tasks."""

        hour_totals = self._task_query_repository.get_client_hour_totals(
            user_id=user_id,
            period=period,
        )
        subtotals = []
        for row in hour_totals:
            amounts = compute_billing_amounts(
                row.total_hours,
                hourly_rate,
                tax_percentage,
            )
            subtotals.append(
                ClientSubtotal(
                    client_id=row.client_id,
                    client_name=row.client_name,
                    total_hours=row.total_hours,
                    gross_amount=amounts.gross_amount,
                    tax_amount=amounts.tax_amount,
                    net_amount=amounts.net_amount,
                )
            )

        return PeriodAggregate(
            period=period,
            clients=tuple(subtotals),
            flags=self.scan_flags(user_id=user_id, period=period),
        )

    def scan_flags(self, *, user_id: UUID, period: BillingPeriod) -> PeriodTaskFlags:
        """Count pending and zero-hour tasks against current task data."""

        counts = self._task_query_repository.get_period_task_counts(
            user_id=user_id,
            period=period,
        )
        return PeriodTaskFlags(
            pending_tasks_count=counts.pending_tasks_count,
            tasks_without_hours_count=counts.tasks_without_hours_count,
        )
