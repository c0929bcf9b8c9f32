"""
Database connection and session management.
Uses SQLAlchemy async with aiosqlite.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from typing import Optional

from .config import settings


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    # WAL mode for better concurrency
    cursor.execute("PRAGMA journal_mode=WAL")
    # NORMAL synchronous is safe with WAL and faster than FULL
    cursor.execute("PRAGMA synchronous=NORMAL")
    # Busy timeout - wait up to 5 seconds
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine with the SQLite pragmas applied on connect."""
    engine = create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=False,
        future=True
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create an async session factory bound to the engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


async def init_db(engine: AsyncEngine):
    """Initialize database tables."""
    # Register table metadata before create_all
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connections."""
    await engine.dispose()
