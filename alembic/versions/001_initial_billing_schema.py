"""Create users, clients, tasks, expenses and monthly closure tables.

Revision ID: 001_initial_billing_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_billing_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


task_status_enum = sa.Enum("pending", "completed", name="task_status")
closure_status_enum = sa.Enum("open", "closed", name="closure_status")


def _timestamps(*, with_updated_at: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        )
    ]
    if with_updated_at:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "clients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_user_id", "clients", ["user_id"])

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("creation_date", sa.Date(), nullable=False),
        sa.Column("status", task_status_enum, nullable=False),
        sa.Column(
            "hours_spent",
            sa.Numeric(10, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("estimated_hours", sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "hours_spent >= 0",
            name="ck_tasks_hours_spent_non_negative",
        ),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_tasks_user_creation_date",
        "tasks",
        ["user_id", "creation_date"],
    )

    op.create_table(
        "expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "is_recurring",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_expenses_user_active", "expenses", ["user_id", "is_active"])

    op.create_table(
        "monthly_closures",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("tax_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", closure_status_enum, nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "month BETWEEN 1 AND 12",
            name="ck_monthly_closures_month_range",
        ),
        sa.CheckConstraint(
            "hourly_rate > 0",
            name="ck_monthly_closures_hourly_rate_positive",
        ),
        sa.CheckConstraint(
            "tax_percentage >= 0 AND tax_percentage <= 100",
            name="ck_monthly_closures_tax_percentage_range",
        ),
        sa.CheckConstraint(
            """
            (status = 'open' AND closed_at IS NULL)
            OR
            (status = 'closed' AND closed_at IS NOT NULL)
            """,
            name="ck_monthly_closures_closed_at_matches_status",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "month",
            "year",
            name="uq_monthly_closures_user_period",
        ),
    )

    op.create_table(
        "monthly_closure_clients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "monthly_closure_id", postgresql.UUID(as_uuid=True), nullable=False
        ),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("total_hours", sa.Numeric(10, 2), nullable=False),
        sa.Column("gross_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=False),
        *_timestamps(with_updated_at=False),
        sa.CheckConstraint(
            "total_hours >= 0",
            name="ck_monthly_closure_clients_total_hours_non_negative",
        ),
        sa.CheckConstraint(
            "gross_amount >= 0 AND tax_amount >= 0",
            name="ck_monthly_closure_clients_amounts_non_negative",
        ),
        sa.ForeignKeyConstraint(
            ["monthly_closure_id"],
            ["monthly_closures.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "monthly_closure_id",
            "client_id",
            name="uq_monthly_closure_clients_closure_client",
        ),
    )

    op.create_table(
        "monthly_closure_expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "monthly_closure_id", postgresql.UUID(as_uuid=True), nullable=False
        ),
        sa.Column("expense_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "amount >= 0",
            name="ck_monthly_closure_expenses_amount_non_negative",
        ),
        sa.ForeignKeyConstraint(
            ["monthly_closure_id"],
            ["monthly_closures.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["expense_id"],
            ["expenses.id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "monthly_closure_id",
            "expense_id",
            name="uq_monthly_closure_expenses_closure_expense",
        ),
    )


def downgrade() -> None:
    op.drop_table("monthly_closure_expenses")
    op.drop_table("monthly_closure_clients")
    op.drop_table("monthly_closures")
    op.drop_index("ix_expenses_user_active", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_tasks_user_creation_date", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_clients_user_id", table_name="clients")
    op.drop_table("clients")
    op.drop_table("users")

    bind = op.get_bind()
    closure_status_enum.drop(bind, checkfirst=True)
    task_status_enum.drop(bind, checkfirst=True)
