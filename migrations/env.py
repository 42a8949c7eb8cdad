"""Alembic environment for the taxpayer registry schema.

The database URL always comes from the application settings
(``DATABASE_CONFIG__DATABASE_URL``), never from ``alembic.ini``. SQLite runs
in batch mode so column changes become table rebuilds.
"""

import asyncio
import logging

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from taxregistry.core.config import get_settings
from taxregistry.infrastructure.database import models  # noqa: F401 - registers tables
from taxregistry.infrastructure.database.base import Base

config = context.config
logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _configure(**kwargs: object) -> None:
    database_config = get_settings().database_config
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=database_config.is_sqlite,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit migration SQL for the configured database without connecting."""
    url = get_settings().database_config.database_url
    logger.info("Generating migration SQL in offline mode")

    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Apply migrations over a single unpooled async connection."""
    database_config = get_settings().database_config
    dialect = database_config.database_url.split(":")[0]
    logger.info("Applying migrations to %s database", dialect)

    connectable = create_async_engine(
        database_config.database_url,
        echo=database_config.echo,
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
