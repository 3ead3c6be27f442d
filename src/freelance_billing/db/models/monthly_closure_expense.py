"""Per-expense snapshot row of a monthly closure."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_billing.db.base import Base


class MonthlyClosureExpense(Base):
    """Expense line item copied into a closure, detached from the registry."""

    __tablename__ = "monthly_closure_expenses"
    __table_args__ = (
        UniqueConstraint(
            "monthly_closure_id",
            "expense_id",
            name="uq_monthly_closure_expenses_closure_expense",
        ),
        CheckConstraint(
            "amount >= 0",
            name="ck_monthly_closure_expenses_amount_non_negative",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    monthly_closure_id: Mapped[UUID] = mapped_column(
        ForeignKey("monthly_closures.id", ondelete="CASCADE"),
        nullable=False,
    )
    expense_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("expenses.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    monthly_closure: Mapped[Any] = relationship(
        "MonthlyClosure",
        back_populates="expenses",
    )
