"""
Pytest configuration and fixtures for testing.

Provides:
- Database fixtures (in-memory SQLite through aiosqlite, fresh per test)
- Staff users for every role across two departments
- An HTTP client bound to the app with the test session injected

Usage:
    pytest src/backend/tests -v
"""

import os

# Settings are read at import time; point them at SQLite before the app loads.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_ENABLE_FILE_LOGGING", "false")

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import db.models  # noqa: F401
from core.database import get_session
from core.permissions import ActingUser
from core.security import create_access_token
from db import Customer, Department, Product, User, UserRole
from db.setup import database_setup
from tests.factories import CustomerFactory, ProductFactory, UserFactory

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create an in-memory SQLite engine with every table.

    StaticPool keeps the single connection alive so all sessions share the
    same in-memory database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session configured like the application's."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session


# ============================================================================
# Reference Data Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def departments(db_session: AsyncSession) -> Dict[str, Department]:
    """The default departments, keyed by name."""
    assert await database_setup.create_departments(db_session)

    result = await db_session.execute(select(Department))
    return {department.name: department for department in result.scalars().all()}


@pytest_asyncio.fixture
async def lg_department(departments) -> Department:
    return departments["LG Maintenance"]


@pytest_asyncio.fixture
async def solar_department(departments) -> Department:
    return departments["Solar Energy"]


async def _persist(db_session: AsyncSession, instance):
    db_session.add(instance)
    await db_session.commit()
    await db_session.refresh(instance)
    return instance


@pytest_asyncio.fixture
async def company_manager(db_session: AsyncSession, lg_department) -> User:
    return await _persist(db_session, UserFactory.create_company_manager())


@pytest_asyncio.fixture
async def deputy_manager(db_session: AsyncSession, lg_department) -> User:
    return await _persist(db_session, UserFactory.create(role=UserRole.DEPUTY_MANAGER))


@pytest_asyncio.fixture
async def department_manager(db_session: AsyncSession, lg_department) -> User:
    return await _persist(
        db_session,
        UserFactory.create(role=UserRole.DEPARTMENT_MANAGER, department_id=lg_department.id),
    )


@pytest_asyncio.fixture
async def supervisor(db_session: AsyncSession, lg_department) -> User:
    return await _persist(
        db_session,
        UserFactory.create(role=UserRole.SECTION_SUPERVISOR, department_id=lg_department.id),
    )


@pytest_asyncio.fixture
async def solar_supervisor(db_session: AsyncSession, solar_department) -> User:
    return await _persist(
        db_session,
        UserFactory.create(role=UserRole.SECTION_SUPERVISOR, department_id=solar_department.id),
    )


@pytest_asyncio.fixture
async def technician(db_session: AsyncSession, lg_department) -> User:
    return await _persist(db_session, UserFactory.create_technician(lg_department.id))


@pytest_asyncio.fixture
async def second_technician(db_session: AsyncSession, lg_department) -> User:
    return await _persist(db_session, UserFactory.create_technician(lg_department.id))


@pytest_asyncio.fixture
async def solar_technician(db_session: AsyncSession, solar_department) -> User:
    return await _persist(db_session, UserFactory.create_technician(solar_department.id))


@pytest_asyncio.fixture
async def warehouse_keeper(db_session: AsyncSession, lg_department) -> User:
    return await _persist(
        db_session,
        UserFactory.create(role=UserRole.WAREHOUSE_KEEPER, department_id=lg_department.id),
    )


@pytest_asyncio.fixture
async def staff(
    company_manager,
    deputy_manager,
    department_manager,
    supervisor,
    solar_supervisor,
    technician,
    warehouse_keeper,
) -> Dict[str, User]:
    """Every staff fixture keyed by its name, for tests parametrized over roles."""
    return {
        "company_manager": company_manager,
        "deputy_manager": deputy_manager,
        "department_manager": department_manager,
        "supervisor": supervisor,
        "solar_supervisor": solar_supervisor,
        "technician": technician,
        "warehouse_keeper": warehouse_keeper,
    }


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> Customer:
    return await _persist(db_session, CustomerFactory.create())


@pytest_asyncio.fixture
async def lg_product(db_session: AsyncSession, lg_department) -> Product:
    return await _persist(db_session, ProductFactory.create(lg_department.id))


@pytest.fixture
def as_actor():
    """Turn a User row into the ActingUser passed to services."""
    return ActingUser.from_user


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def auth_headers():
    """Build Bearer headers for a user."""

    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with the test session injected."""
    from app import create_app

    app = create_app()

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
