"""Async database engine and session lifecycle.

A ``Database`` owns one engine and its session factory. It is constructed
once at startup, passed by reference to whatever needs sessions (the FastAPI
app keeps it on ``app.state``) and disposed at shutdown.

When ``LogConfig.enable_sql_logging`` is on, statements slower than
``slow_query_threshold_ms`` are logged. Query parameters are never logged:
they carry taxpayer personal data.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taxregistry.core.config import Settings, get_settings
from taxregistry.core.constants import MILLISECONDS_PER_SECOND
from taxregistry.core.context import get_correlation_id

POOL_RECYCLE_SECONDS = 3600  # 1 hour
COMMAND_TIMEOUT_SECONDS = 60
MAX_LOGGED_STATEMENT_LENGTH = 500

_query_start_times: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _before_cursor_execute(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: Any,  # noqa: ANN401 - DBAPI parameter shapes vary
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    _query_start_times[context] = time.perf_counter()


def _make_slow_query_listener(threshold_ms: int) -> Any:  # noqa: ANN401
    """Build an ``after_cursor_execute`` listener for the given threshold."""

    def _after_cursor_execute(
        _conn: Connection,
        cursor: DBAPICursor,
        statement: str,
        parameters: Any,  # noqa: ANN401
        context: ExecutionContext,
        executemany: bool,
    ) -> None:
        start_time = _query_start_times.pop(context, None)
        if start_time is None:
            return

        duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
        if duration_ms < threshold_ms:
            return

        clean_statement = " ".join(statement.split())[:MAX_LOGGED_STATEMENT_LENGTH]
        logger.warning(
            "Slow query detected: {}... Duration: {:.2f}ms",
            clean_statement[:100],
            duration_ms,
            query=clean_statement,
            duration_ms=round(duration_ms, 2),
            rows_affected=getattr(cursor, "rowcount", -1),
            parameter_count=len(parameters) if parameters else 0,
            correlation_id=get_correlation_id(),
            executemany=executemany,
            threshold_ms=threshold_ms,
        )

    return _after_cursor_execute


def create_database_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create an async engine for the configured database.

    PostgreSQL gets a bounded connection pool and asyncpg server settings.
    SQLite (used for local runs and tests) gets a static pool when in-memory,
    so every session sees the same database.

    Args:
        settings: Application settings; the cached settings when omitted.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    settings = settings or get_settings()
    db_config = settings.database_config
    url = db_config.database_url

    engine_kwargs: dict[str, Any] = {"echo": db_config.echo}
    if db_config.is_sqlite:
        if ":memory:" in url or url.rstrip("/").endswith("aiosqlite:"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update(
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_pre_ping=db_config.pool_pre_ping,
            pool_recycle=POOL_RECYCLE_SECONDS,
            connect_args={
                "server_settings": {"jit": "off"},
                "command_timeout": COMMAND_TIMEOUT_SECONDS,
            },
        )

    engine = create_async_engine(url, **engine_kwargs)

    if settings.log_config.enable_sql_logging:
        event.listen(
            engine.sync_engine, "before_cursor_execute", _before_cursor_execute
        )
        event.listen(
            engine.sync_engine,
            "after_cursor_execute",
            _make_slow_query_listener(settings.log_config.slow_query_threshold_ms),
        )
        logger.info("Registered slow query event listeners")

    logger.info(
        "Created database engine - dialect: {}, sql_logging: {}",
        engine.dialect.name,
        settings.log_config.enable_sql_logging,
    )
    return engine


class Database:
    """Handle owning the engine and session factory.

    Args:
        settings: Application settings used to build the engine.
        engine: An existing engine to wrap instead (tests).

    Example:
        database = Database(settings)
        async with database.session() as session:
            record = await TaxpayerStore(session).find_by_id(1)
        await database.dispose()
    """

    def __init__(
        self, settings: Settings | None = None, engine: AsyncEngine | None = None
    ) -> None:
        self.engine = engine or create_database_engine(settings)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Open a session, committing on success and rolling back on error.

        Yields:
            AsyncSession: Session scoped to the ``async with`` block.
        """
        async with self.session_factory() as session:
            logger.debug("Created new database session")
            try:
                yield session
                await session.commit()
                logger.debug("Database session committed successfully")
            except Exception:
                await session.rollback()
                logger.debug("Database session rolled back due to error")
                raise

    async def check_connection(self) -> tuple[bool, str | None]:
        """Check that the database answers a trivial query.

        Returns:
            tuple[bool, str | None]: Health flag and the error message, if any.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            return False, str(e)
        return True, None

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
        logger.info("Database engine disposed")
