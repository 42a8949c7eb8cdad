"""FastAPI dependencies for database sessions.

The ``Database`` handle lives on ``app.state.database``; each request gets its
own session, committed when the route returns and rolled back if it raises.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.infrastructure.database.session import Database


def get_database(request: Request) -> Database:
    """Return the database handle owned by the application."""
    database: Database = request.app.state.database
    return database


async def get_db(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession]:
    """Provide a request-scoped database session.

    Yields:
        AsyncSession: Session committed on success, rolled back on error.
    """
    async with database.session() as session:
        logger.debug("Providing database session for request")
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
