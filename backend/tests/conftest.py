"""
Checklist Manifesto Backend — Test Configuration (conftest.py)
================================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock session (no real DB needed)
    ├── accounts:         AccountService with a fast bcrypt work factor
    ├── sessions:         SessionService bound to `accounts`
    ├── sqlite_engine:    aiosqlite engine on a per-test file, tables created
    ├── sqlite_session:   AsyncSession on sqlite_engine
    └── test_client:      HTTPX AsyncClient wired to a fresh app on sqlite_engine
"""

import os
import tempfile

# Override settings BEFORE any app imports: app.config reads the
# environment once, at import time.
_TEST_DIR = tempfile.mkdtemp(prefix="checklist_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTO_CREATE_TABLES"] = "false"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import Base, get_db_session
from app.models import connection_probe, login_token, user  # noqa: F401
from app.services.account_service import AccountService, account_service
from app.services.session_service import SessionService

# Minimum bcrypt cost; hashes stay valid bcrypt, just cheap to compute.
FAST_ROUNDS = 4


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_lookup(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = user
    """
    session = AsyncMock()
    # Results are sync objects (scalar(), first(), ...), so return a MagicMock
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def accounts():
    return AccountService(bcrypt_rounds=FAST_ROUNDS, token_expiration_days=90)


@pytest.fixture
def sessions(accounts):
    return SessionService(accounts=accounts)


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    """A real (file-backed) SQLite database with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/checklist.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine):
    factory = async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(sqlite_engine, monkeypatch):
    """
    HTTPX AsyncClient talking to a fresh app over ASGITransport.

    The lifespan does not run under ASGITransport, so no admin user is
    seeded; tests create the users they need through the API or through
    `sqlite_session`, which shares the same database.
    """
    from app.main import create_app

    monkeypatch.setattr(account_service, "bcrypt_rounds", FAST_ROUNDS)

    factory = async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
