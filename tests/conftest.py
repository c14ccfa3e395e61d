# tests/conftest.py
import os

# Settings are read at import time by app.database; point them at SQLite first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["BOL_SYNC_ENABLED"] = "false"
os.environ["BOL_TOKEN_CACHE_TTL"] = "0"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import clear_settings_cache
from app.database import Base
from app.services.bol.token_manager import clear_all_tokens
from tests.mocks.mock_bol import MockBolClient

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _reset_state():
    clear_settings_cache()
    clear_all_tokens()
    yield
    clear_all_tokens()


@pytest.fixture(scope="function")
async def test_engine():
    """In-memory SQLite engine with all tables, one per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_bol_client():
    return MockBolClient()


@pytest.fixture
def sync_scheduler(session_factory, mock_bol_client):
    from app.scheduler import BolSyncScheduler

    return BolSyncScheduler(
        session_factory=session_factory,
        client_factory=lambda: mock_bol_client,
        interval_minutes=5,
    )


@pytest.fixture
async def app_client(session_factory, mock_bol_client, sync_scheduler):
    """httpx client bound to the FastAPI app with DB, Bol client and scheduler overridden"""
    from app.dependencies import get_bol_client, get_db
    from app.main import app
    from app.scheduler import get_sync_scheduler

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_bol_client] = lambda: mock_bol_client
    app.dependency_overrides[get_sync_scheduler] = lambda: sync_scheduler

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
