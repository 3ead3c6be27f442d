"""Monthly closure lifecycle service layer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from freelance_billing.db.integrity import CLOSURE_PERIOD_UNIQUE, violates
from freelance_billing.db.models.monthly_closure import ClosureStatus, MonthlyClosure
from freelance_billing.db.models.monthly_closure_client import MonthlyClosureClient
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.domain.errors import (
    ClosureBlockedError,
    ClosureClosedError,
    ClosureNotFoundError,
    DuplicateClosureError,
    InvalidClosureStateTransitionError,
    InvalidRequestError,
    compose_error_message,
)
from freelance_billing.domain.money import (
    MAX_HOURS,
    MAX_MONEY,
    ONE_HUNDRED,
    quantize_hours,
    quantize_money,
    sum_money,
)
from freelance_billing.domain.period import BillingPeriod, now_in_app_timezone
from freelance_billing.repositories.closure_repository import ClosureListFilters
from freelance_billing.services.expense_snapshot_service import (
    ExpenseSelection,
    ExpenseSnapshotManager,
)
from freelance_billing.services.period_aggregator import (
    PeriodAggregate,
    PeriodAggregator,
    PeriodTaskFlags,
)

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 5000


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by closure service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class ClosureRepositoryProtocol(Protocol):
    """Closure repository contract consumed by closure service."""

    def exists_for_period(self, *, user_id: UUID, period: BillingPeriod) -> bool: ...

    def add(self, closure: MonthlyClosure) -> MonthlyClosure: ...

    def get_for_user(
        self,
        *,
        closure_id: UUID,
        user_id: UUID,
    ) -> MonthlyClosure | None: ...

    def get_for_update(
        self,
        *,
        closure_id: UUID,
        user_id: UUID,
    ) -> MonthlyClosure | None: ...

    def list_for_user(
        self,
        filters: ClosureListFilters,
    ) -> tuple[list[MonthlyClosure], int]: ...

    def delete(self, closure: MonthlyClosure) -> None: ...

    def list_client_snapshots(self, closure_id: UUID) -> list[MonthlyClosureClient]: ...

    def list_expense_snapshots(
        self, closure_id: UUID
    ) -> list[MonthlyClosureExpense]: ...


@dataclass(slots=True, frozen=True)
class CreateClosureInput:
    """Input model for closure creation."""

    user_id: UUID
    month: int
    year: int
    tax_percentage: Decimal
    hourly_rate: Decimal
    notes: str | None = None
    expense_selections: Sequence[ExpenseSelection] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class ListClosuresInput:
    """Input model for closure listing."""

    user_id: UUID
    year: int | None = None
    status: ClosureStatus | None = None
    limit: int = 50
    offset: int = 0


@dataclass(slots=True, frozen=True)
class UpdateClosureMetadataInput:
    """Input model for closure settings update."""

    user_id: UUID
    closure_id: UUID
    tax_percentage: Decimal | None = None
    hourly_rate: Decimal | None = None
    notes: str | None = None
    clear_notes: bool = False


@dataclass(slots=True, frozen=True)
class ClosureTotals:
    """Closure-level totals derived from snapshot rows."""

    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal
    total_expenses: Decimal
    final_amount: Decimal


@dataclass(slots=True, frozen=True)
class ClosureWithTotals:
    """Closure plus its snapshot rows, read-time totals and live flags."""

    closure: MonthlyClosure
    clients: list[MonthlyClosureClient]
    expenses: list[MonthlyClosureExpense]
    totals: ClosureTotals
    flags: PeriodTaskFlags


def compute_closure_totals(
    clients: Sequence[MonthlyClosureClient],
    expenses: Sequence[MonthlyClosureExpense],
) -> ClosureTotals:
    """Sum snapshot rows; final amount is net minus expenses."""

    net_amount = sum_money(row.net_amount for row in clients)
    total_expenses = sum_money(row.amount for row in expenses)
    return ClosureTotals(
        total_hours=quantize_hours(
            sum((row.total_hours for row in clients), Decimal("0"))
        ),
        gross_amount=sum_money(row.gross_amount for row in clients),
        tax_amount=sum_money(row.tax_amount for row in clients),
        net_amount=net_amount,
        total_expenses=total_expenses,
        final_amount=net_amount - total_expenses,
    )


def _validate_hourly_rate(hourly_rate: Decimal) -> Decimal:
    value = quantize_money(hourly_rate)
    if value <= Decimal("0"):
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Hourly rate must be greater than zero.",
                action="Provide a positive hourly rate with two decimal places.",
            )
        )
    if value > MAX_MONEY:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Hourly rate exceeds {MAX_MONEY}.",
                action="Provide a smaller hourly rate.",
            )
        )
    return value


def _validate_tax_percentage(tax_percentage: Decimal) -> Decimal:
    value = quantize_money(tax_percentage)
    if value < Decimal("0") or value > ONE_HUNDRED:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Tax percentage must be between 0 and 100.",
                action="Provide a percentage such as 10.00.",
            )
        )
    return value


def _ensure_storable_subtotals(aggregate: PeriodAggregate) -> None:
    for subtotal in aggregate.clients:
        if subtotal.total_hours > MAX_HOURS or subtotal.gross_amount > MAX_MONEY:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=(
                        f"Billing for client {subtotal.client_name} exceeds "
                        f"the storable maximum of {MAX_MONEY}."
                    ),
                    action="Check the hourly rate and the hours logged.",
                ),
                details={"client_id": str(subtotal.client_id)},
            )


def _normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    if len(notes) > MAX_NOTES_LENGTH:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Notes exceed {MAX_NOTES_LENGTH} characters.",
                action="Shorten the notes and retry.",
            )
        )
    trimmed = notes.strip()
    return trimmed or None


def _build_period(*, year: int, month: int) -> BillingPeriod:
    try:
        return BillingPeriod(year=year, month=month)
    except ValueError as exc:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Invalid billing period: {exc}.",
                action="Send month between 1 and 12 and year between 2000 and 2100.",
            )
        ) from exc


class MonthlyClosureService:
    """Coordinates monthly closure use cases."""

    def __init__(
        self,
        *,
        closure_repository: ClosureRepositoryProtocol,
        period_aggregator: PeriodAggregator,
        expense_snapshot_manager: ExpenseSnapshotManager,
        session: SessionProtocol,
        now_provider: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._closure_repository = closure_repository
        self._period_aggregator = period_aggregator
        self._expense_snapshot_manager = expense_snapshot_manager
        self._session = session
        self._now_provider = now_provider

    def create_closure(self, payload: CreateClosureInput) -> ClosureWithTotals:
        """Snapshot the month's client totals and expenses into an open closure."""

        period = _build_period(year=payload.year, month=payload.month)
        hourly_rate = _validate_hourly_rate(payload.hourly_rate)
        tax_percentage = _validate_tax_percentage(payload.tax_percentage)
        notes = _normalize_notes(payload.notes)

        try:
            if self._closure_repository.exists_for_period(
                user_id=payload.user_id,
                period=period,
            ):
                raise DuplicateClosureError(details={"period": period.label})

            aggregate = self._period_aggregator.aggregate(
                user_id=payload.user_id,
                period=period,
                hourly_rate=hourly_rate,
                tax_percentage=tax_percentage,
            )
            _ensure_storable_subtotals(aggregate)
            drafts = self._expense_snapshot_manager.seed_for_new_closure(
                user_id=payload.user_id,
                selections=payload.expense_selections,
            )

            closure = MonthlyClosure(
                user_id=payload.user_id,
                month=period.month,
                year=period.year,
                tax_percentage=tax_percentage,
                hourly_rate=hourly_rate,
                notes=notes,
                status=ClosureStatus.OPEN,
                closed_at=None,
            )
            closure.clients = [
                MonthlyClosureClient(
                    client_id=subtotal.client_id,
                    total_hours=subtotal.total_hours,
                    gross_amount=subtotal.gross_amount,
                    tax_amount=subtotal.tax_amount,
                    net_amount=subtotal.net_amount,
                )
                for subtotal in aggregate.clients
            ]
            closure.expenses = [draft.to_model() for draft in drafts]

            self._closure_repository.add(closure)
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            if violates(exc, CLOSURE_PERIOD_UNIQUE):
                raise DuplicateClosureError(details={"period": period.label}) from exc
            raise
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "closure_created",
            extra={
                "closure_id": str(closure.id),
                "user_id": str(payload.user_id),
                "period": period.label,
                "client_rows": len(aggregate.clients),
                "expense_rows": len(drafts),
            },
        )
        return self.get_with_totals(user_id=payload.user_id, closure_id=closure.id)

    def get_with_totals(self, *, user_id: UUID, closure_id: UUID) -> ClosureWithTotals:
        """Load one closure with snapshot rows, totals and current flags."""

        closure = self._closure_repository.get_for_user(
            closure_id=closure_id,
            user_id=user_id,
        )
        if closure is None:
            raise ClosureNotFoundError()
        return self._assemble(closure)

    def list_closures(
        self, payload: ListClosuresInput
    ) -> tuple[list[MonthlyClosure], int]:
        """List closures newest period first, without totals."""

        return self._closure_repository.list_for_user(
            ClosureListFilters(
                user_id=payload.user_id,
                year=payload.year,
                status=payload.status,
                limit=payload.limit,
                offset=payload.offset,
            )
        )

    def update_metadata(
        self, payload: UpdateClosureMetadataInput
    ) -> ClosureWithTotals:
        """Store new settings on an open closure without recomputing rows."""

        try:
            closure = self._get_locked(
                user_id=payload.user_id,
                closure_id=payload.closure_id,
            )
            if not closure.is_open:
                logger.warning(
                    "closure_update_rejected",
                    extra={"closure_id": str(closure.id), "status": closure.status},
                )
                raise ClosureClosedError()

            settings_changed = False
            if payload.hourly_rate is not None:
                hourly_rate = _validate_hourly_rate(payload.hourly_rate)
                settings_changed |= hourly_rate != closure.hourly_rate
                closure.hourly_rate = hourly_rate
            if payload.tax_percentage is not None:
                tax_percentage = _validate_tax_percentage(payload.tax_percentage)
                settings_changed |= tax_percentage != closure.tax_percentage
                closure.tax_percentage = tax_percentage
            if payload.clear_notes:
                closure.notes = None
            elif payload.notes is not None:
                closure.notes = _normalize_notes(payload.notes)

            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        if settings_changed and closure.clients:
            logger.warning(
                "closure_settings_changed_without_recompute",
                extra={
                    "closure_id": str(closure.id),
                    "hourly_rate": str(closure.hourly_rate),
                    "tax_percentage": str(closure.tax_percentage),
                },
            )
        return self._assemble(closure)

    def close_closure(self, *, user_id: UUID, closure_id: UUID) -> ClosureWithTotals:
        """Close an open closure when no task of its period blocks it."""

        try:
            closure = self._get_locked(user_id=user_id, closure_id=closure_id)
            if not closure.is_open:
                logger.warning(
                    "closure_close_rejected",
                    extra={"closure_id": str(closure.id), "status": closure.status},
                )
                raise ClosureClosedError(
                    message=compose_error_message(
                        cause="The monthly closure is already closed.",
                        action="Reopen it first if it needs changes.",
                    )
                )

            period = BillingPeriod(year=closure.year, month=closure.month)
            flags = self._period_aggregator.scan_flags(user_id=user_id, period=period)
            if not flags.allows_close:
                logger.warning(
                    "closure_close_blocked",
                    extra={
                        "closure_id": str(closure.id),
                        "period": period.label,
                        "pending_tasks_count": flags.pending_tasks_count,
                        "tasks_without_hours_count": flags.tasks_without_hours_count,
                    },
                )
                raise ClosureBlockedError(
                    pending_tasks_count=flags.pending_tasks_count,
                    tasks_without_hours_count=flags.tasks_without_hours_count,
                )

            closure.status = ClosureStatus.CLOSED
            closure.closed_at = self._now_provider()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "closure_closed",
            extra={"closure_id": str(closure.id), "period": period.label},
        )
        return self._assemble(closure)

    def reopen_closure(self, *, user_id: UUID, closure_id: UUID) -> ClosureWithTotals:
        """Move a closed closure back to open, keeping its snapshot rows."""

        try:
            closure = self._get_locked(user_id=user_id, closure_id=closure_id)
            if closure.is_open:
                logger.warning(
                    "closure_reopen_rejected",
                    extra={"closure_id": str(closure.id), "status": closure.status},
                )
                raise InvalidClosureStateTransitionError(
                    message=compose_error_message(
                        cause="Only closed monthly closures can be reopened.",
                        action="Refresh the closure status and retry.",
                    )
                )

            closure.status = ClosureStatus.OPEN
            closure.closed_at = None
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("closure_reopened", extra={"closure_id": str(closure.id)})
        return self._assemble(closure)

    def delete_closure(self, *, user_id: UUID, closure_id: UUID) -> None:
        """Delete a closure in any state together with its snapshot rows."""

        try:
            closure = self._get_locked(user_id=user_id, closure_id=closure_id)
            self._closure_repository.delete(closure)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("closure_deleted", extra={"closure_id": str(closure_id)})

    def _get_locked(self, *, user_id: UUID, closure_id: UUID) -> MonthlyClosure:
        closure = self._closure_repository.get_for_update(
            closure_id=closure_id,
            user_id=user_id,
        )
        if closure is None:
            raise ClosureNotFoundError()
        return closure

    def _assemble(self, closure: MonthlyClosure) -> ClosureWithTotals:
        clients = self._closure_repository.list_client_snapshots(closure.id)
        expenses = self._closure_repository.list_expense_snapshots(closure.id)
        flags = self._period_aggregator.scan_flags(
            user_id=closure.user_id,
            period=BillingPeriod(year=closure.year, month=closure.month),
        )
        return ClosureWithTotals(
            closure=closure,
            clients=clients,
            expenses=expenses,
            totals=compute_closure_totals(clients, expenses),
            flags=flags,
        )
