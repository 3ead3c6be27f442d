from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from freelance_billing.db.models.monthly_closure import MonthlyClosure
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.domain.errors import DuplicateClosureError, DuplicateExpenseError
from freelance_billing.domain.period import BillingPeriod
from freelance_billing.repositories.closure_repository import MonthlyClosureRepository
from freelance_billing.repositories.expense_repository import ExpenseRepository
from freelance_billing.repositories.task_repository import TaskQueryRepository
from freelance_billing.services.closure_service import (
    CreateClosureInput,
    MonthlyClosureService,
)
from freelance_billing.services.expense_snapshot_service import (
    ExpenseSnapshotManager,
    RegistryExpenseSelection,
)
from freelance_billing.services.period_aggregator import PeriodAggregator

if TYPE_CHECKING:
    from conftest import Seeder


class StaleClosureRepository(MonthlyClosureRepository):
    """Answers existence checks as a concurrent request would have seen them."""

    def exists_for_period(self, *, user_id: UUID, period: BillingPeriod) -> bool:
        return False

    def has_registry_expense(self, *, closure_id: UUID, expense_id: UUID) -> bool:
        return False


def build_manager(session: Session) -> ExpenseSnapshotManager:
    return ExpenseSnapshotManager(
        expense_repository=ExpenseRepository(session),
        closure_repository=StaleClosureRepository(session),
        session=session,
    )


def build_service(session: Session) -> MonthlyClosureService:
    return MonthlyClosureService(
        closure_repository=StaleClosureRepository(session),
        period_aggregator=PeriodAggregator(
            task_query_repository=TaskQueryRepository(session)
        ),
        expense_snapshot_manager=build_manager(session),
        session=session,
    )


def may_closure(user_id: UUID) -> CreateClosureInput:
    return CreateClosureInput(
        user_id=user_id,
        month=5,
        year=2024,
        tax_percentage=Decimal("10.00"),
        hourly_rate=Decimal("100.00"),
    )


def test_create_closure_maps_period_unique_violation_to_duplicate(
    sqlite_session_factory: sessionmaker[Session],
    user_id: UUID,
) -> None:
    with sqlite_session_factory() as session:
        build_service(session).create_closure(may_closure(user_id))

    with sqlite_session_factory() as session:
        with pytest.raises(DuplicateClosureError) as error:
            build_service(session).create_closure(may_closure(user_id))

    assert error.value.details == {"period": "2024-05"}
    with sqlite_session_factory() as session:
        count = session.scalar(select(func.count()).select_from(MonthlyClosure))
    assert count == 1


def test_add_expense_maps_snapshot_unique_violation_to_duplicate(
    sqlite_session_factory: sessionmaker[Session],
    seeder: Seeder,
    user_id: UUID,
) -> None:
    hosting_id = seeder.expense(user_id=user_id, name="Hosting", amount="150.00")
    with sqlite_session_factory() as session:
        created = build_service(session).create_closure(may_closure(user_id))
        closure_id = created.closure.id
        build_manager(session).add_expense(
            user_id=user_id,
            closure_id=closure_id,
            selection=RegistryExpenseSelection(expense_id=hosting_id),
        )

    with sqlite_session_factory() as session:
        manager = build_manager(session)
        with pytest.raises(DuplicateExpenseError):
            manager.add_expense(
                user_id=user_id,
                closure_id=closure_id,
                selection=RegistryExpenseSelection(expense_id=hosting_id),
            )

    with sqlite_session_factory() as session:
        amounts = session.scalars(
            select(MonthlyClosureExpense.amount).where(
                MonthlyClosureExpense.monthly_closure_id == closure_id
            )
        ).all()
    assert [Decimal(str(amount)) for amount in amounts] == [Decimal("150.00")]
