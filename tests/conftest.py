from __future__ import annotations

from collections.abc import Generator
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from freelance_billing.api.app import create_app
from freelance_billing.db.base import Base, import_orm_models
from freelance_billing.db.models.client import Client
from freelance_billing.db.models.expense import Expense
from freelance_billing.db.models.task import Task, TaskStatus
from freelance_billing.db.models.user import User
from freelance_billing.db.session import get_db_session


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


class Seeder:
    """Writes users, clients, tasks and registry expenses directly."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def _save(self, instance: User | Client | Task | Expense) -> UUID:
        with self._session_factory() as session:
            session.add(instance)
            session.commit()
            return instance.id

    def user(self, email: str = "dev@example.com") -> UUID:
        return self._save(
            User(email=email, display_name=email.split("@")[0], is_active=True)
        )

    def client(self, *, user_id: UUID, name: str) -> UUID:
        return self._save(Client(user_id=user_id, name=name, is_active=True))

    def task(
        self,
        *,
        user_id: UUID,
        client_id: UUID,
        creation_date: date,
        hours_spent: str,
        status: TaskStatus = TaskStatus.COMPLETED,
        title: str = "Task",
    ) -> UUID:
        return self._save(
            Task(
                user_id=user_id,
                client_id=client_id,
                title=title,
                creation_date=creation_date,
                status=status,
                hours_spent=Decimal(hours_spent),
            )
        )

    def expense(
        self,
        *,
        user_id: UUID,
        name: str,
        amount: str,
        is_recurring: bool = False,
        is_active: bool = True,
        description: str | None = None,
    ) -> UUID:
        return self._save(
            Expense(
                user_id=user_id,
                name=name,
                description=description,
                amount=Decimal(amount),
                is_recurring=is_recurring,
                is_active=is_active,
            )
        )

    def complete_task(self, task_id: UUID, *, hours_spent: str | None = None) -> None:
        with self._session_factory() as session:
            task = session.get(Task, task_id)
            assert task is not None
            task.status = TaskStatus.COMPLETED
            if hours_spent is not None:
                task.hours_spent = Decimal(hours_spent)
            session.commit()


@pytest.fixture
def seeder(sqlite_session_factory: sessionmaker[Session]) -> Seeder:
    return Seeder(sqlite_session_factory)


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_id(seeder: Seeder) -> UUID:
    return seeder.user()


@pytest.fixture
def headers(user_id: UUID) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}
