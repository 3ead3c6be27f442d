"""Monthly closure API schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)

from freelance_billing.db.models.monthly_closure import MonthlyClosure
from freelance_billing.db.models.monthly_closure_client import MonthlyClosureClient
from freelance_billing.db.models.monthly_closure_expense import (
    MonthlyClosureExpense,
)
from freelance_billing.domain.money import format_hours, format_money
from freelance_billing.services.closure_service import ClosureWithTotals
from freelance_billing.services.expense_snapshot_service import (
    ExpenseSelection,
    ManualExpenseSelection,
    RegistryExpenseSelection,
)

AMOUNT_PATTERN = r"^[0-9]{1,10}(\.[0-9]{1,2})?$"
MONEY_PATTERN = r"^-?[0-9]+\.[0-9]{2}$"

ClosureStatusValue = Literal["open", "closed"]


def _positive_decimal(value: str, field_name: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} must be a decimal number.") from exc
    if amount <= Decimal("0"):
        raise ValueError(f"{field_name} must be greater than zero.")
    return value


class RegistryExpenseSelectionRequest(BaseModel):
    """Registered expense to copy into the closure."""

    expense_id: UUID
    amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _positive_decimal(value, "Amount")

    def to_selection(self) -> RegistryExpenseSelection:
        return RegistryExpenseSelection(
            expense_id=self.expense_id,
            amount=Decimal(self.amount) if self.amount is not None else None,
        )


class ManualExpenseSelectionRequest(BaseModel):
    """Expense typed in for this closure only."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    amount: str = Field(pattern=AMOUNT_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        trimmed = value.strip()
        if len(trimmed) < 2:
            raise ValueError("Name must have at least two characters.")
        return trimmed

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        return _positive_decimal(value, "Amount")

    def to_selection(self) -> ManualExpenseSelection:
        return ManualExpenseSelection(
            name=self.name,
            description=self.description,
            amount=Decimal(self.amount),
        )


def _selection_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "registry" if value.get("expense_id") is not None else "manual"
    if isinstance(value, RegistryExpenseSelectionRequest):
        return "registry"
    return "manual"


ExpenseSelectionRequest = Annotated[
    Annotated[RegistryExpenseSelectionRequest, Tag("registry")]
    | Annotated[ManualExpenseSelectionRequest, Tag("manual")],
    Discriminator(_selection_kind),
]


class CreateMonthlyClosureRequest(BaseModel):
    """Payload for monthly closure creation."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    tax_percentage: str = Field(pattern=AMOUNT_PATTERN)
    hourly_rate: str = Field(pattern=AMOUNT_PATTERN)
    notes: str | None = Field(default=None, max_length=5000)
    expenses: list[ExpenseSelectionRequest] = Field(default_factory=list)

    @field_validator("tax_percentage")
    @classmethod
    def validate_tax_percentage(cls, value: str) -> str:
        if Decimal(value) > Decimal("100"):
            raise ValueError("Tax percentage must be between 0 and 100.")
        return value

    @field_validator("hourly_rate")
    @classmethod
    def validate_hourly_rate(cls, value: str) -> str:
        return _positive_decimal(value, "Hourly rate")

    def expense_selections(self) -> tuple[ExpenseSelection, ...]:
        return tuple(item.to_selection() for item in self.expenses)


class UpdateMonthlyClosureRequest(BaseModel):
    """Payload for closure settings update; omitted fields stay unchanged."""

    tax_percentage: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    hourly_rate: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    notes: str | None = Field(default=None, max_length=5000)

    @field_validator("tax_percentage")
    @classmethod
    def validate_tax_percentage(cls, value: str | None) -> str | None:
        if value is not None and Decimal(value) > Decimal("100"):
            raise ValueError("Tax percentage must be between 0 and 100.")
        return value

    @field_validator("hourly_rate")
    @classmethod
    def validate_hourly_rate(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _positive_decimal(value, "Hourly rate")

    @model_validator(mode="after")
    def validate_has_changes(self) -> UpdateMonthlyClosureRequest:
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided.")
        return self


class AddClosureExpenseRequest(BaseModel):
    """Payload to attach one expense line item to an open closure."""

    expense_id: UUID | None = None
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _positive_decimal(value, "Amount")

    @model_validator(mode="after")
    def validate_source(self) -> AddClosureExpenseRequest:
        if self.expense_id is not None:
            if self.name is not None or self.description is not None:
                raise ValueError(
                    "Send either expense_id or name/description, not both."
                )
            return self
        if self.name is None or self.amount is None:
            raise ValueError("Manual expenses require name and amount.")
        return self

    def to_selection(self) -> ExpenseSelection:
        if self.expense_id is not None:
            return RegistryExpenseSelection(
                expense_id=self.expense_id,
                amount=Decimal(self.amount) if self.amount is not None else None,
            )
        return ManualExpenseSelection(
            name=str(self.name),
            description=self.description,
            amount=Decimal(str(self.amount)),
        )


class UpdateClosureExpenseRequest(BaseModel):
    """Payload to edit one expense line item; omitted fields stay unchanged."""

    amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_has_changes(self) -> UpdateClosureExpenseRequest:
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided.")
        if "amount" in self.model_fields_set and self.amount is None:
            raise ValueError("Amount cannot be null.")
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("Name cannot be null.")
        return self


class ClientReferenceResponse(BaseModel):
    """Client identity embedded in closure rows."""

    id: UUID
    name: str


class ClosureClientResponse(BaseModel):
    """Frozen per-client totals of a closure."""

    id: UUID
    client: ClientReferenceResponse
    total_hours: str = Field(pattern=MONEY_PATTERN)
    gross_amount: str = Field(pattern=MONEY_PATTERN)
    tax_amount: str = Field(pattern=MONEY_PATTERN)
    net_amount: str = Field(pattern=MONEY_PATTERN)

    @classmethod
    def from_model(cls, row: MonthlyClosureClient) -> ClosureClientResponse:
        return cls(
            id=row.id,
            client=ClientReferenceResponse(id=row.client_id, name=row.client.name),
            total_hours=format_hours(row.total_hours),
            gross_amount=format_money(row.gross_amount),
            tax_amount=format_money(row.tax_amount),
            net_amount=format_money(row.net_amount),
        )


class ClosureExpenseResponse(BaseModel):
    """Expense line item of a closure."""

    id: UUID
    expense_id: UUID | None
    name: str
    description: str | None
    amount: str = Field(pattern=MONEY_PATTERN)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, row: MonthlyClosureExpense) -> ClosureExpenseResponse:
        return cls(
            id=row.id,
            expense_id=row.expense_id,
            name=row.name,
            description=row.description,
            amount=format_money(row.amount),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ClosureTotalsResponse(BaseModel):
    """Closure totals derived from its snapshot rows."""

    total_hours: str = Field(pattern=MONEY_PATTERN)
    gross_amount: str = Field(pattern=MONEY_PATTERN)
    tax_amount: str = Field(pattern=MONEY_PATTERN)
    net_amount: str = Field(pattern=MONEY_PATTERN)
    total_expenses: str = Field(pattern=MONEY_PATTERN)
    final_amount: str = Field(pattern=MONEY_PATTERN)


class MonthlyClosureSummaryResponse(BaseModel):
    """Closure header without snapshot rows."""

    id: UUID
    month: int = Field(ge=1, le=12)
    year: int
    period: str = Field(pattern=r"^[0-9]{4}-(0[1-9]|1[0-2])$")
    tax_percentage: str = Field(pattern=MONEY_PATTERN)
    hourly_rate: str = Field(pattern=MONEY_PATTERN)
    notes: str | None
    status: ClosureStatusValue
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, closure: MonthlyClosure) -> MonthlyClosureSummaryResponse:
        return cls(
            id=closure.id,
            month=closure.month,
            year=closure.year,
            period=f"{closure.year:04d}-{closure.month:02d}",
            tax_percentage=format_money(closure.tax_percentage),
            hourly_rate=format_money(closure.hourly_rate),
            notes=closure.notes,
            status=closure.status.value,
            closed_at=closure.closed_at,
            created_at=closure.created_at,
            updated_at=closure.updated_at,
        )


class MonthlyClosureResponse(MonthlyClosureSummaryResponse):
    """Closure with snapshot rows, totals and flags."""

    clients: list[ClosureClientResponse]
    expenses: list[ClosureExpenseResponse]
    totals: ClosureTotalsResponse
    has_pending_tasks: bool
    pending_tasks_count: int = Field(ge=0)
    has_tasks_without_hours: bool
    tasks_without_hours_count: int = Field(ge=0)

    @classmethod
    def from_result(cls, result: ClosureWithTotals) -> MonthlyClosureResponse:
        header = MonthlyClosureSummaryResponse.from_model(result.closure)
        totals = result.totals
        flags = result.flags
        return cls(
            **header.model_dump(),
            clients=[ClosureClientResponse.from_model(row) for row in result.clients],
            expenses=[
                ClosureExpenseResponse.from_model(row) for row in result.expenses
            ],
            totals=ClosureTotalsResponse(
                total_hours=format_hours(totals.total_hours),
                gross_amount=format_money(totals.gross_amount),
                tax_amount=format_money(totals.tax_amount),
                net_amount=format_money(totals.net_amount),
                total_expenses=format_money(totals.total_expenses),
                final_amount=format_money(totals.final_amount),
            ),
            has_pending_tasks=flags.has_pending_tasks,
            pending_tasks_count=flags.pending_tasks_count,
            has_tasks_without_hours=flags.has_tasks_without_hours,
            tasks_without_hours_count=flags.tasks_without_hours_count,
        )


class MonthlyClosureListResponse(BaseModel):
    """Paginated closure list response."""

    items: list[MonthlyClosureSummaryResponse]
    total: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)

    @classmethod
    def from_models(
        cls,
        *,
        items: list[MonthlyClosure],
        total: int,
        limit: int,
        offset: int,
    ) -> MonthlyClosureListResponse:
        return cls(
            items=[MonthlyClosureSummaryResponse.from_model(item) for item in items],
            total=total,
            limit=limit,
            offset=offset,
        )
