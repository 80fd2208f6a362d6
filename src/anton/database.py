"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_serializable_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_serializable_factory: async_sessionmaker[AsyncSession] | None = None


def _create_sqlite_write_engine(url: str) -> AsyncEngine:
    """SQLite engine whose transactions take the write lock at BEGIN.

    Units of work on this engine queue on the busy timeout instead of
    racing to upgrade a read lock, so they execute one at a time.
    """
    engine = create_async_engine(url, echo=False, connect_args={"timeout": 30})

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


async def init_db(url: str) -> None:
    """Initialize the database engines and session factories."""
    global _engine, _serializable_engine, _session_factory, _serializable_factory  # noqa: PLW0603
    if url.startswith("sqlite"):
        _engine = create_async_engine(url, echo=False, connect_args={"timeout": 30})
        _serializable_engine = _create_sqlite_write_engine(url)
    else:
        _engine = create_async_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
            connect_args={"statement_cache_size": 0},
        )
        # Shares the pool; only the isolation level differs
        _serializable_engine = _engine.execution_options(isolation_level="SERIALIZABLE")

    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    _serializable_factory = async_sessionmaker(
        _serializable_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engines."""
    global _engine, _serializable_engine, _session_factory, _serializable_factory  # noqa: PLW0603
    if _serializable_engine is not None and _serializable_engine.sync_engine is not getattr(_engine, "sync_engine", None):
        await _serializable_engine.dispose()
    if _engine:
        await _engine.dispose()
    _engine = None
    _serializable_engine = None
    _session_factory = None
    _serializable_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the default session factory."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory


def get_serializable_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory for ledger units of work (SERIALIZABLE isolation)."""
    if _serializable_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _serializable_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_session_factory()() as session:
        yield session
