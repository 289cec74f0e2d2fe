"""Pytest fixtures for payroll tracker tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_tracker.api.app import create_app
from payroll_tracker.api.dependencies import get_app_settings, get_db_session
from payroll_tracker.config import Settings
from payroll_tracker.models import Base, Employee

# In-memory SQLite shared across connections of one engine.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_employee(
    name: str,
    pay_scale_type: str = "project",
    **fields,
) -> Employee:
    """Unsaved employee with an id, usable without a database."""
    return Employee(
        id=uuid4(),
        name=name,
        email=fields.pop("email", f"{name.lower().replace(' ', '.')}@example.com"),
        pay_scale_type=pay_scale_type,
        status=fields.pop("status", "active"),
        timezone=fields.pop("timezone", "America/Chicago"),
        is_admin=fields.pop("is_admin", False),
        **fields,
    )


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        webhook_secret=None,
    )


@pytest.fixture
def app(session_factory, test_settings):
    """Application wired to the test database."""
    app = create_app(test_settings)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_app_settings] = lambda: test_settings
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process (lifespan not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ============================================================================
# Employees
# ============================================================================


@pytest_asyncio.fixture
async def project_employees(session: AsyncSession) -> dict[str, Employee]:
    """Two project employees with distinct tier rates."""
    ellen = make_employee(
        "Ellen",
        project_rate_1_member=Decimal("30"),
        project_rate_2_members=Decimal("20"),
        project_rate_3_members=Decimal("15"),
        project_rate_4_members=Decimal("12"),
        project_rate_5_members=Decimal("10"),
    )
    frank = make_employee(
        "Frank",
        project_rate_1_member=Decimal("25"),
        project_rate_2_members=Decimal("18"),
        timezone="Asia/Tokyo",
    )
    session.add_all([ellen, frank])
    await session.commit()
    return {"Ellen": ellen, "Frank": frank}


@pytest_asyncio.fixture
async def hourly_employee(session: AsyncSession) -> Employee:
    """Hourly employee at $20/hr in Chicago."""
    employee = make_employee("Hannah", pay_scale_type="hourly", hourly_rate=Decimal("20.00"))
    session.add(employee)
    await session.commit()
    return employee
