"""Integration test fixtures.

Every test gets its own in-memory SQLite database with the schema created
from the ORM metadata, so tests never share rows.
"""

import random
from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture, MockType
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.api.main import create_app
from taxregistry.core.config import (
    DatabaseConfig,
    LogConfig,
    ObservabilityConfig,
    RegistryConfig,
    Settings,
)
from taxregistry.core.types import Clock
from taxregistry.infrastructure.database.base import Base
from taxregistry.infrastructure.database.session import Database
from taxregistry.records.service import TaxpayerService


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="development",
        database_config=DatabaseConfig(database_url="sqlite+aiosqlite://"),
        observability_config=ObservabilityConfig(enable_tracing=False),
        log_config=LogConfig(log_level="WARNING"),
        registry_config=RegistryConfig(public_base_url="https://tax.example.ng"),
    )


@pytest.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database]:
    """In-memory database with the schema created."""
    database = Database(test_settings)
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield database
    await database.dispose()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession]:
    """A session left uncommitted; writes are visible within the test."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def revalidator(mocker: MockerFixture) -> MockType:
    return mocker.Mock()


@pytest.fixture
def service(
    db_session: AsyncSession,
    test_settings: Settings,
    clock: Clock,
    revalidator: MockType,
) -> TaxpayerService:
    """Service over the test session with a frozen clock and seeded ids."""
    return TaxpayerService(
        db_session,
        test_settings,
        clock=clock,
        revalidator=revalidator,
        rng=random.Random(20250615),
    )


@pytest.fixture
def app(
    test_settings: Settings,
    database: Database,
    clock: Clock,
    revalidator: MockType,
) -> FastAPI:
    return create_app(
        test_settings, database=database, clock=clock, revalidator=revalidator
    )


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTP client calling the app in-process.

    Unhandled exceptions are rendered by the app's handlers instead of being
    re-raised into the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
