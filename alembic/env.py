"""
Alembic environment for the lending schema.

The URL and engine come from the application (app.core.config and
app.core.db.engine), so migrations run with the same SQLite pragmas as the
service. SQLite needs batch mode for ALTER TABLE.
"""

import asyncio
from logging.config import fileConfig
from sqlalchemy.engine import Connection
from alembic import context

from app.core.config import config as settings
from app.core.db import Base
from app.core.db.engine import create_engine_for

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database_url = config.get_main_option("sqlalchemy.url") or settings.database_url
is_sqlite = database_url.startswith("sqlite")

target_metadata = Base.metadata


def _configure_context(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=is_sqlite,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    _configure_context(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure_context(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_engine_for(database_url)
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
