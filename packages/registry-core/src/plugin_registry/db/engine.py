"""Database engine creation and session management."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker


def create_engine(url: str, **kwargs) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so child rows cascade
    when a version is deleted.
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=kwargs.get("echo", False))
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_async_engine(
        url,
        echo=kwargs.get("echo", False),
        pool_size=kwargs.get("pool_size", 10),
        max_overflow=kwargs.get("max_overflow", 5),
        pool_pre_ping=True,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory bound to engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
