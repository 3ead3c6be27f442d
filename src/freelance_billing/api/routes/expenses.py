"""Expense registry routes."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from freelance_billing.api.dependencies import CurrentUserId, get_expense_service
from freelance_billing.api.schemas.expenses import (
    CreateExpenseRequest,
    ExpenseListResponse,
    ExpenseResponse,
    UpdateExpenseRequest,
)
from freelance_billing.services.expense_service import (
    CreateExpenseInput,
    ExpenseService,
    UpdateExpenseInput,
)

router = APIRouter(prefix="/expenses", tags=["Expenses"])

ExpenseServiceDep = Annotated[ExpenseService, Depends(get_expense_service)]


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    user_id: CurrentUserId,
    service: ExpenseServiceDep,
    include_inactive: Annotated[bool, Query()] = False,
) -> ExpenseListResponse:
    """List registered expenses, active only unless asked otherwise."""

    return ExpenseListResponse.from_models(
        service.list_expenses(user_id=user_id, include_inactive=include_inactive)
    )


@router.post(
    "",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
    },
)
def create_expense(
    payload: CreateExpenseRequest,
    user_id: CurrentUserId,
    service: ExpenseServiceDep,
) -> ExpenseResponse:
    expense = service.create_expense(
        CreateExpenseInput(
            user_id=user_id,
            name=payload.name,
            description=payload.description,
            amount=Decimal(payload.amount),
            is_recurring=payload.is_recurring,
        )
    )
    return ExpenseResponse.from_model(expense)


@router.get(
    "/{expense_id}",
    response_model=ExpenseResponse,
    responses={
        404: {"description": "Expense not found"},
    },
)
def get_expense(
    expense_id: UUID,
    user_id: CurrentUserId,
    service: ExpenseServiceDep,
) -> ExpenseResponse:
    return ExpenseResponse.from_model(
        service.get_expense(user_id=user_id, expense_id=expense_id)
    )


@router.patch(
    "/{expense_id}",
    response_model=ExpenseResponse,
    responses={
        400: {"description": "Invalid payload"},
        404: {"description": "Expense not found"},
    },
)
def update_expense(
    expense_id: UUID,
    payload: UpdateExpenseRequest,
    user_id: CurrentUserId,
    service: ExpenseServiceDep,
) -> ExpenseResponse:
    """Partially update a registered expense; closures keep their copies."""

    expense = service.update_expense(
        UpdateExpenseInput(
            user_id=user_id,
            expense_id=expense_id,
            name=payload.name,
            description=payload.description,
            clear_description="description" in payload.model_fields_set
            and payload.description is None,
            amount=Decimal(payload.amount) if payload.amount is not None else None,
            is_recurring=payload.is_recurring,
            is_active=payload.is_active,
        )
    )
    return ExpenseResponse.from_model(expense)


@router.delete(
    "/{expense_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        404: {"description": "Expense not found"},
    },
)
def deactivate_expense(
    expense_id: UUID,
    user_id: CurrentUserId,
    service: ExpenseServiceDep,
) -> Response:
    """Soft-delete a registered expense."""

    service.deactivate_expense(user_id=user_id, expense_id=expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
