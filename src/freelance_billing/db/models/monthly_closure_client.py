"""Per-client snapshot row of a monthly closure."""

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
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freelance_billing.db.base import Base


class MonthlyClosureClient(Base):
    """Frozen hours and amounts billed to one client in one closure."""

    __tablename__ = "monthly_closure_clients"
    __table_args__ = (
        UniqueConstraint(
            "monthly_closure_id",
            "client_id",
            name="uq_monthly_closure_clients_closure_client",
        ),
        CheckConstraint(
            "total_hours >= 0",
            name="ck_monthly_closure_clients_total_hours_non_negative",
        ),
        CheckConstraint(
            "gross_amount >= 0 AND tax_amount >= 0",
            name="ck_monthly_closure_clients_amounts_non_negative",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    monthly_closure_id: Mapped[UUID] = mapped_column(
        ForeignKey("monthly_closures.id", ondelete="CASCADE"),
        nullable=False,
    )
    client_id: Mapped[UUID] = mapped_column(ForeignKey("clients.id"), nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    monthly_closure: Mapped[Any] = relationship(
        "MonthlyClosure",
        back_populates="clients",
    )
    client: Mapped[Any] = relationship("Client", lazy="joined")
