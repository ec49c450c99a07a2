"""
Async database engine configuration.

SQLite (aiosqlite) is the default store:
- WAL mode so approvers and borrowers can read while a transition writes
- busy_timeout so concurrent transitions wait instead of failing
- Foreign key enforcement
"""

from pathlib import Path
from typing import AsyncGenerator
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from app.core.config import config as settings


def _get_engine_options(database_url: str) -> dict:
    """
    Get engine options based on database type.
    """
    is_sqlite = database_url.startswith("sqlite")

    options = {
        "echo": False,
        "future": True,
    }

    if is_sqlite:
        # In-memory databases must share one connection or every session
        # would see its own empty database
        if ":memory:" in database_url:
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["poolclass"] = NullPool
    else:
        options["poolclass"] = NullPool if not settings.is_production else None

    return options


def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    Configure SQLite connection on every new connection.

    - WAL: readers do not block the writer of a transition
    - busy_timeout: wait up to 30s for the write lock
    - foreign_keys: enforce cart/transaction item ownership
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_engine_for(database_url: str):
    """Create an async engine with the pragmas registered for SQLite URLs."""
    if database_url.startswith("sqlite") and ":memory:" not in database_url:
        db_file = database_url.split(":///", 1)[-1]
        Path(db_file).parent.mkdir(parents=True, exist_ok=True)

    new_engine = create_async_engine(database_url, **_get_engine_options(database_url))

    if database_url.startswith("sqlite"):
        @event.listens_for(new_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            _configure_sqlite_connection(dbapi_connection, connection_record)

    return new_engine


def create_session_factory(bind) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Manual control over flushing
    )


database_url = settings.database_url

engine = create_engine_for(database_url)

AsyncSessionLocal = create_session_factory(engine)


async def get_db_util() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency for FastAPI.

    Transaction handling:
    - One request is one database transaction
    - Commit when the handler returns
    - Rollback on any exception, so a failed transition leaves no partial writes
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """
    Verify database connection is working.
    Used by the health endpoint.
    """
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception:
        return False
