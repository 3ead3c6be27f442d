"""Expense registry API schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from freelance_billing.db.models.expense import Expense
from freelance_billing.domain.money import format_money

AMOUNT_PATTERN = r"^[0-9]{1,10}(\.[0-9]{1,2})?$"


def _validate_positive(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError("Amount must be a decimal number.") from exc
    if amount <= Decimal("0"):
        raise ValueError("Amount must be greater than zero.")
    return value


class CreateExpenseRequest(BaseModel):
    """Payload for registry expense creation."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    amount: str = Field(pattern=AMOUNT_PATTERN)
    is_recurring: bool = False

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        _validate_positive(value)
        return value


class UpdateExpenseRequest(BaseModel):
    """Payload for registry expense partial update."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    is_recurring: bool | None = None
    is_active: bool | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str | None) -> str | None:
        return _validate_positive(value)

    @model_validator(mode="after")
    def validate_has_changes(self) -> UpdateExpenseRequest:
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided.")
        return self


class ExpenseResponse(BaseModel):
    """Serialized registry expense."""

    id: UUID
    name: str
    description: str | None
    amount: str = Field(pattern=r"^-?[0-9]+\.[0-9]{2}$")
    is_recurring: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, expense: Expense) -> ExpenseResponse:
        return cls(
            id=expense.id,
            name=expense.name,
            description=expense.description,
            amount=format_money(expense.amount),
            is_recurring=expense.is_recurring,
            is_active=expense.is_active,
            created_at=expense.created_at,
            updated_at=expense.updated_at,
        )


class ExpenseListResponse(BaseModel):
    """Registry expense list response."""

    items: list[ExpenseResponse]
    total: int = Field(ge=0)

    @classmethod
    def from_models(cls, items: list[Expense]) -> ExpenseListResponse:
        return cls(
            items=[ExpenseResponse.from_model(item) for item in items],
            total=len(items),
        )
