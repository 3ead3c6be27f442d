"""API dependency providers."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from freelance_billing.core.settings import get_settings
from freelance_billing.db.session import get_db_session
from freelance_billing.domain.errors import InvalidRequestError, compose_error_message
from freelance_billing.repositories.closure_repository import MonthlyClosureRepository
from freelance_billing.repositories.expense_repository import ExpenseRepository
from freelance_billing.repositories.task_repository import TaskQueryRepository
from freelance_billing.services.closure_service import MonthlyClosureService
from freelance_billing.services.expense_service import ExpenseService
from freelance_billing.services.expense_snapshot_service import (
    ExpenseSnapshotManager,
)
from freelance_billing.services.period_aggregator import PeriodAggregator


def get_current_user_id(request: Request) -> UUID:
    """Resolve the acting user from the configured identity header."""

    header_name = get_settings().user_id_header
    raw_value = request.headers.get(header_name)
    if not raw_value:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Header {header_name} is missing.",
                action=f"Send the user id in the {header_name} header.",
            )
        )
    try:
        return UUID(raw_value)
    except ValueError as exc:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Header {header_name} is not a valid UUID.",
                action="Send the user id as a UUID string.",
            )
        ) from exc


def build_expense_snapshot_manager(session: Session) -> ExpenseSnapshotManager:
    return ExpenseSnapshotManager(
        expense_repository=ExpenseRepository(session),
        closure_repository=MonthlyClosureRepository(session),
        session=session,
    )


def build_monthly_closure_service(session: Session) -> MonthlyClosureService:
    """Wire closure service collaborators around one session."""

    return MonthlyClosureService(
        closure_repository=MonthlyClosureRepository(session),
        period_aggregator=PeriodAggregator(
            task_query_repository=TaskQueryRepository(session)
        ),
        expense_snapshot_manager=build_expense_snapshot_manager(session),
        session=session,
    )


def get_monthly_closure_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> MonthlyClosureService:
    """Build monthly closure service with per-request session."""

    return build_monthly_closure_service(session)


def get_expense_snapshot_manager(
    session: Annotated[Session, Depends(get_db_session)],
) -> ExpenseSnapshotManager:
    """Build closure expense manager with per-request session."""

    return build_expense_snapshot_manager(session)


def get_expense_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> ExpenseService:
    """Build expense registry service with per-request session."""

    return ExpenseService(
        expense_repository=ExpenseRepository(session),
        session=session,
    )


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
