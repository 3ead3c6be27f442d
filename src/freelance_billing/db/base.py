"""SQLAlchemy base metadata and model registration utilities."""

from importlib import import_module

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


def import_orm_models() -> None:
    """Import ORM models so metadata is fully populated."""

    modules = (
        "freelance_billing.db.models.user",
        "freelance_billing.db.models.client",
        "freelance_billing.db.models.task",
        "freelance_billing.db.models.expense",
        "freelance_billing.db.models.monthly_closure",
        "freelance_billing.db.models.monthly_closure_client",
        "freelance_billing.db.models.monthly_closure_expense",
    )
    for module_name in modules:
        import_module(module_name)
