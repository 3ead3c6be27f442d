"""Monthly closure ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    SmallInteger,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_billing.db.base import Base


class ClosureStatus(enum.StrEnum):
    """Monthly closure lifecycle states."""

    OPEN = "open"
    CLOSED = "closed"


class MonthlyClosure(Base):
    """Per-user billing record for one month, frozen once closed."""

    __tablename__ = "monthly_closures"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "month",
            "year",
            name="uq_monthly_closures_user_period",
        ),
        CheckConstraint(
            "month BETWEEN 1 AND 12",
            name="ck_monthly_closures_month_range",
        ),
        CheckConstraint(
            "hourly_rate > 0",
            name="ck_monthly_closures_hourly_rate_positive",
        ),
        CheckConstraint(
            "tax_percentage >= 0 AND tax_percentage <= 100",
            name="ck_monthly_closures_tax_percentage_range",
        ),
        CheckConstraint(
            "(status = 'open' AND closed_at IS NULL) "
            "OR (status = 'closed' AND closed_at IS NOT NULL)",
            name="ck_monthly_closures_closed_at_matches_status",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    tax_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ClosureStatus] = mapped_column(
        Enum(
            ClosureStatus,
            name="closure_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=ClosureStatus.OPEN,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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

    clients: Mapped[list[Any]] = relationship(
        "MonthlyClosureClient",
        back_populates="monthly_closure",
        cascade="all, delete-orphan",
    )
    expenses: Mapped[list[Any]] = relationship(
        "MonthlyClosureExpense",
        back_populates="monthly_closure",
        cascade="all, delete-orphan",
    )

    @property
    def is_open(self) -> bool:
        return self.status == ClosureStatus.OPEN
