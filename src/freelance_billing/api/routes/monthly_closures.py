"""Monthly closure routes."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from freelance_billing.api.dependencies import (
    CurrentUserId,
    get_expense_snapshot_manager,
    get_monthly_closure_service,
)
from freelance_billing.api.schemas.monthly_closures import (
    AddClosureExpenseRequest,
    ClosureExpenseResponse,
    CreateMonthlyClosureRequest,
    MonthlyClosureListResponse,
    MonthlyClosureResponse,
    UpdateClosureExpenseRequest,
    UpdateMonthlyClosureRequest,
)
from freelance_billing.db.models.monthly_closure import ClosureStatus
from freelance_billing.services.closure_service import (
    CreateClosureInput,
    ListClosuresInput,
    MonthlyClosureService,
    UpdateClosureMetadataInput,
)
from freelance_billing.services.expense_snapshot_service import (
    ExpenseSnapshotManager,
    UpdateClosureExpenseInput,
)

router = APIRouter(prefix="/monthly-closures", tags=["Monthly Closures"])

ClosureServiceDep = Annotated[
    MonthlyClosureService, Depends(get_monthly_closure_service)
]
SnapshotManagerDep = Annotated[
    ExpenseSnapshotManager, Depends(get_expense_snapshot_manager)
]


@router.get(
    "",
    response_model=MonthlyClosureListResponse,
    responses={
        400: {"description": "Invalid query filters"},
    },
)
def list_monthly_closures(
    user_id: CurrentUserId,
    service: ClosureServiceDep,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    status: Annotated[Literal["open", "closed"] | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> MonthlyClosureListResponse:
    """List closures newest period first."""

    items, total = service.list_closures(
        ListClosuresInput(
            user_id=user_id,
            year=year,
            status=ClosureStatus(status) if status is not None else None,
            limit=limit,
            offset=offset,
        )
    )
    return MonthlyClosureListResponse.from_models(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=MonthlyClosureResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Selected expense not found"},
        409: {"description": "Closure already exists for the period"},
    },
)
def create_monthly_closure(
    payload: CreateMonthlyClosureRequest,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> MonthlyClosureResponse:
    """Create an open closure from the period's tasks and expenses."""

    result = service.create_closure(
        CreateClosureInput(
            user_id=user_id,
            month=payload.month,
            year=payload.year,
            tax_percentage=Decimal(payload.tax_percentage),
            hourly_rate=Decimal(payload.hourly_rate),
            notes=payload.notes,
            expense_selections=payload.expense_selections(),
        )
    )
    return MonthlyClosureResponse.from_result(result)


@router.get(
    "/{closure_id}",
    response_model=MonthlyClosureResponse,
    responses={
        404: {"description": "Closure not found"},
    },
)
def get_monthly_closure(
    closure_id: UUID,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> MonthlyClosureResponse:
    """Return one closure with client rows, expenses, totals and flags."""

    return MonthlyClosureResponse.from_result(
        service.get_with_totals(user_id=user_id, closure_id=closure_id)
    )


@router.patch(
    "/{closure_id}",
    response_model=MonthlyClosureResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Closure not found"},
        409: {"description": "Closure is closed"},
    },
)
def update_monthly_closure(
    closure_id: UUID,
    payload: UpdateMonthlyClosureRequest,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> MonthlyClosureResponse:
    """Update rate, tax or notes of an open closure."""

    result = service.update_metadata(
        UpdateClosureMetadataInput(
            user_id=user_id,
            closure_id=closure_id,
            tax_percentage=Decimal(payload.tax_percentage)
            if payload.tax_percentage is not None
            else None,
            hourly_rate=Decimal(payload.hourly_rate)
            if payload.hourly_rate is not None
            else None,
            notes=payload.notes,
            clear_notes="notes" in payload.model_fields_set and payload.notes is None,
        )
    )
    return MonthlyClosureResponse.from_result(result)


@router.post(
    "/{closure_id}/close",
    response_model=MonthlyClosureResponse,
    responses={
        404: {"description": "Closure not found"},
        409: {"description": "Closure is already closed"},
        422: {"description": "Period has pending tasks or tasks without hours"},
    },
)
def close_monthly_closure(
    closure_id: UUID,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> MonthlyClosureResponse:
    """Close an open closure."""

    return MonthlyClosureResponse.from_result(
        service.close_closure(user_id=user_id, closure_id=closure_id)
    )


@router.post(
    "/{closure_id}/reopen",
    response_model=MonthlyClosureResponse,
    responses={
        404: {"description": "Closure not found"},
        422: {"description": "Closure is not closed"},
    },
)
def reopen_monthly_closure(
    closure_id: UUID,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> MonthlyClosureResponse:
    """Reopen a closed closure."""

    return MonthlyClosureResponse.from_result(
        service.reopen_closure(user_id=user_id, closure_id=closure_id)
    )


@router.delete(
    "/{closure_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        404: {"description": "Closure not found"},
    },
)
def delete_monthly_closure(
    closure_id: UUID,
    user_id: CurrentUserId,
    service: ClosureServiceDep,
) -> Response:
    service.delete_closure(user_id=user_id, closure_id=closure_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{closure_id}/expenses",
    response_model=ClosureExpenseResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Closure or expense not found"},
        409: {"description": "Closure is closed or expense already attached"},
    },
)
def add_closure_expense(
    closure_id: UUID,
    payload: AddClosureExpenseRequest,
    user_id: CurrentUserId,
    manager: SnapshotManagerDep,
) -> ClosureExpenseResponse:
    """Attach a registered or manual expense to an open closure."""

    snapshot = manager.add_expense(
        user_id=user_id,
        closure_id=closure_id,
        selection=payload.to_selection(),
    )
    return ClosureExpenseResponse.from_model(snapshot)


@router.patch(
    "/{closure_id}/expenses/{expense_snapshot_id}",
    response_model=ClosureExpenseResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Closure or expense line item not found"},
        409: {"description": "Closure is closed"},
    },
)
def update_closure_expense(
    closure_id: UUID,
    expense_snapshot_id: UUID,
    payload: UpdateClosureExpenseRequest,
    user_id: CurrentUserId,
    manager: SnapshotManagerDep,
) -> ClosureExpenseResponse:
    """Edit one expense line item of an open closure."""

    snapshot = manager.update_expense(
        UpdateClosureExpenseInput(
            user_id=user_id,
            closure_id=closure_id,
            expense_snapshot_id=expense_snapshot_id,
            amount=Decimal(payload.amount) if payload.amount is not None else None,
            name=payload.name,
            description=payload.description,
            clear_description="description" in payload.model_fields_set
            and payload.description is None,
        )
    )
    return ClosureExpenseResponse.from_model(snapshot)


@router.delete(
    "/{closure_id}/expenses/{expense_snapshot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        404: {"description": "Closure or expense line item not found"},
        409: {"description": "Closure is closed"},
    },
)
def remove_closure_expense(
    closure_id: UUID,
    expense_snapshot_id: UUID,
    user_id: CurrentUserId,
    manager: SnapshotManagerDep,
) -> Response:
    manager.remove_expense(
        user_id=user_id,
        closure_id=closure_id,
        expense_snapshot_id=expense_snapshot_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
