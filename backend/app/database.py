"""
Checklist Manifesto Backend — Database Engine & Sessions
==========================================================

What:  The async engine, the session factory, the declarative Base, and the
       per-request session dependency used by the method endpoint.
Who:   Method calls (via get_db_session), the startup admin bootstrap (via
       async_session_factory), /health (via engine), Alembic (via Base).

Transaction scope:
    One session per method call. get_db_session commits after the handler
    returns and rolls back if it raised. Account creation commits earlier,
    inside AccountService, so the unique username index settles a race
    before the caller gets an answer.

Pooling:
    PostgreSQL URLs get DB_POOL_SIZE / DB_MAX_OVERFLOW / DB_POOL_PRE_PING and
    an hourly recycle. SQLite URLs (development, tests) take the dialect's
    default pool.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

POOL_RECYCLE_SECONDS = 3600


def build_engine() -> AsyncEngine:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=POOL_RECYCLE_SECONDS,
        )
    return create_async_engine(settings.database_url, **options)


engine = build_engine()

# expire_on_commit=False: handlers read user.id after AccountService commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by the users, login_tokens and connection_probe tables."""


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session per method call.

    Commits when the handler returns normally, rolls back and re-raises
    when it raises. The session is closed by the context manager either way.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create missing tables at startup when AUTO_CREATE_TABLES is on."""
    # Importing the models registers their tables on Base.metadata
    from app.models import connection_probe, login_token, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
