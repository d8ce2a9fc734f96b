"""Pytest fixtures for certflow tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from certflow.config.settings import Settings
from certflow.db.config import close_db, create_engine, create_session_factory, init_db
from certflow.db.models import Credential
from certflow.db.repositories import CredentialRepository
from certflow.fraud import (
    AlertLifecycleManager,
    AnomalyAnalyzer,
    BackgroundDispatcher,
    CredentialStore,
    EventLog,
    FraudDetectionService,
    create_fraud_service,
)

REVIEWER_TOKEN = "reviewer-token"
API_SECRET = "test-api-secret"

CredentialFactory = Callable[..., Awaitable[Credential]]


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings
# =============================================================================


def make_settings(database_path: Path, **overrides) -> Settings:
    """Build test settings pointing at a SQLite file."""
    values = {
        "ENVIRONMENT": "test",
        "DEBUG": False,
        "log_level": "DEBUG",
        "DATABASE_URL": f"sqlite+aiosqlite:///{database_path}",
        "API_SECRET_KEY": SecretStr(API_SECRET),
        "REVIEWER_API_KEYS": [SecretStr(REVIEWER_TOKEN)],
        # The ASGI test transport connects from 127.0.0.1
        "TRUSTED_PROXIES": ["127.0.0.1", "10.0.0.1"],
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Factory for test settings sharing this test's database file."""

    def _factory(**overrides) -> Settings:
        return make_settings(tmp_path / "certflow.db", **overrides)

    return _factory


@pytest.fixture
def test_settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Create settings for testing, one database file per test."""
    return settings_factory()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with all tables."""
    engine = create_engine(test_settings)
    await init_db(engine, create_tables=True)

    yield engine

    await close_db(engine)


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory for the test database."""
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def bare_session_factory(
    tmp_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory for a database without tables.

    Every read or write through it fails, which exercises the store error paths.
    """
    engine = create_engine(make_settings(tmp_path / "bare.db"))

    yield create_session_factory(engine)

    await close_db(engine)


@pytest.fixture
def make_credential(session_factory: async_sessionmaker[AsyncSession]) -> CredentialFactory:
    """Factory inserting credentials into the test database."""

    async def _make(credential_id: str = "CF-2024-001", **overrides) -> Credential:
        values = {
            "holder_name": "Jane Doe",
            "holder_email": "jane.doe@example.com",
            "category": "Web Development",
        }
        values.update(overrides)
        async with session_factory() as session:
            return await CredentialRepository(session).create(
                Credential(credential_id=credential_id, **values)
            )

    return _make


# =============================================================================
# Fraud detection fixtures
# =============================================================================


@pytest.fixture
def base_time() -> datetime:
    """Fixed analysis time used by time-dependent tests."""
    return datetime(2024, 6, 3, 9, 30, tzinfo=UTC)


@pytest.fixture
def event_log(session_factory: async_sessionmaker[AsyncSession]) -> EventLog:
    return EventLog(session_factory)


@pytest.fixture
def credential_store(session_factory: async_sessionmaker[AsyncSession]) -> CredentialStore:
    return CredentialStore(session_factory)


@pytest.fixture
def alert_manager(session_factory: async_sessionmaker[AsyncSession]) -> AlertLifecycleManager:
    return AlertLifecycleManager(session_factory)


@pytest.fixture
def analyzer(
    event_log: EventLog,
    credential_store: CredentialStore,
    alert_manager: AlertLifecycleManager,
) -> AnomalyAnalyzer:
    return AnomalyAnalyzer(event_log, credential_store, alert_manager)


@pytest_asyncio.fixture
async def fraud_service(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
) -> AsyncGenerator[FraudDetectionService, None]:
    """Fraud detection service with its own background dispatcher."""
    dispatcher = BackgroundDispatcher()
    service = create_fraud_service(session_factory, test_settings, dispatcher)

    yield service

    await dispatcher.shutdown()


# =============================================================================
# API test fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_app(test_settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """Create a FastAPI test application with its tables created.

    The ASGI test transport does not run lifespan events, so tables are
    created and connections disposed here.
    """
    from certflow.api.app import create_app

    app = create_app(settings=test_settings)
    await init_db(app.state.engine, create_tables=True)

    yield app

    await app.state.dispatcher.shutdown()
    await close_db(app.state.engine)


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def reviewer_headers() -> dict[str, str]:
    """Authorization header carrying reviewer authority."""
    return {"Authorization": f"Bearer {REVIEWER_TOKEN}"}


@pytest.fixture
def seed_credential(test_app: FastAPI) -> CredentialFactory:
    """Factory inserting credentials into the test application's database."""

    async def _seed(credential_id: str = "CF-2024-001", **overrides) -> Credential:
        values = {
            "holder_name": "Jane Doe",
            "holder_email": "jane.doe@example.com",
            "category": "Web Development",
        }
        values.update(overrides)
        async with test_app.state.session_factory() as session:
            return await CredentialRepository(session).create(
                Credential(credential_id=credential_id, **values)
            )

    return _seed
