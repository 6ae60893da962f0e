"""Integration test fixtures backed by a real SQLite database."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from workforce_payroll.api.app import create_app
from workforce_payroll.calculators.types import HRSettings
from workforce_payroll.container import ServiceContainer
from workforce_payroll.database import create_schema, create_session_factory, get_engine
from workforce_payroll.repositories.base import RepositoryBundle
from workforce_payroll.repositories.sql import create_sql_repositories


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database file per test."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def repositories(
    session_factory, app_settings, employees, late_rules, approval_settings
) -> RepositoryBundle:
    """SQL repositories seeded with the shared org chart and rules."""
    repos = create_sql_repositories(session_factory, month_lock_ttl=app_settings.month_lock_ttl)
    for employee in employees:
        await repos.employees.add(employee)
    for rule in late_rules:
        await repos.config.add_late_rule(rule)
    await repos.config.save_hr_settings(HRSettings())
    await repos.config.save_approval_settings(approval_settings)
    return repos


@pytest_asyncio.fixture
async def container(repositories, app_settings, clock) -> ServiceContainer:
    return ServiceContainer.build(repositories, settings=app_settings, clock=clock)


@pytest_asyncio.fixture
async def client(container) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    app = create_app(container)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
