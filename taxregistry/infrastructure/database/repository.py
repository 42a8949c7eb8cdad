"""Base repository with storage error translation.

Driver and SQLAlchemy exceptions never leave a repository. Inside
``translate_errors`` they are turned into the registry's error taxonomy once:

- unique violations become ``DuplicateKeyError`` for the colliding field,
  found by matching the constraint or column name against the model's
  ``UNIQUE_FIELDS``
- connectivity failures become ``StoreUnavailableError``
- any other driver error (out-of-range values, bad data) becomes an
  ``INTERNAL_ERROR`` registry error

The session is rolled back before the translated error is raised, so it can
be reused or closed cleanly.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy import ColumnElement, exists, func, select
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.core.exceptions import (
    DuplicateKeyError,
    ErrorKind,
    StoreUnavailableError,
    TaxRegistryError,
)
from taxregistry.infrastructure.database.base import BaseModel

CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


class BaseRepository[T: BaseModel]:
    """Common data access for one model class.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class TaxpayerStore(BaseRepository[TaxpayerRecord]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, TaxpayerRecord)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class
        logger.debug("Initialized repository for {}", model_class.__name__)

    @property
    def unique_fields(self) -> dict[str, str]:
        """Unique column names mapped to their wire names."""
        return getattr(self.model_class, "UNIQUE_FIELDS", {})

    def duplicate_field(self, error: IntegrityError) -> str | None:
        """Find which unique field a constraint violation is about.

        PostgreSQL reports the constraint (``uq_taxpayers_reference``); SQLite
        reports the column (``taxpayers.reference``). Both are recognized.

        Returns:
            str | None: Wire name of the field, or None if not a known key.
        """
        message = str(error.orig)
        table = self.model_class.__tablename__
        for column, wire_name in self.unique_fields.items():
            if f"uq_{table}_{column}" in message or f"{table}.{column}" in message:
                return wire_name
        return None

    async def rollback(self) -> None:
        """Roll the session back, logging rather than raising on failure."""
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning("Rollback after storage error failed: {}", e)

    @asynccontextmanager
    async def translate_errors(self, operation: str) -> AsyncGenerator[None]:
        """Translate storage exceptions raised inside the block.

        Args:
            operation: Short description used in logs, e.g. ``create``.

        Raises:
            DuplicateKeyError: On a unique constraint violation.
            StoreUnavailableError: When the database cannot be reached.
            TaxRegistryError: For any other integrity violation or driver error.
        """
        try:
            yield
        except IntegrityError as e:
            await self.rollback()
            field = self.duplicate_field(e)
            if field is not None:
                logger.info(
                    "Unique constraint violated during {}",
                    operation,
                    field=field,
                    model=self.model_class.__name__,
                )
                raise DuplicateKeyError(field, cause=e) from e
            logger.error("Integrity error during {}: {}", operation, e.orig)
            raise TaxRegistryError(
                ErrorKind.INTERNAL_ERROR,
                f"Could not {operation} {self.model_class.__name__}",
                cause=e,
            ) from e
        except CONNECTIVITY_ERRORS as e:
            await self.rollback()
            logger.error(
                "Database unavailable during {}: {}", operation, type(e).__name__
            )
            raise StoreUnavailableError(cause=e) from e
        except SQLAlchemyError as e:
            await self.rollback()
            logger.error("Storage error during {}: {}", operation, type(e).__name__)
            raise TaxRegistryError(
                ErrorKind.INTERNAL_ERROR,
                f"Could not {operation} {self.model_class.__name__}",
                cause=e,
            ) from e

    async def get_by_id(self, entity_id: int) -> T | None:
        """Retrieve a model instance by its ID.

        Args:
            entity_id: The primary key ID of the model to retrieve.

        Returns:
            T | None: The model instance if found, None otherwise.
        """
        logger.debug("Fetching {} by ID: {}", self.model_class.__name__, entity_id)

        async with self.translate_errors("fetch"):
            stmt = select(self.model_class).where(self.model_class.id == entity_id)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def add(self, obj: T) -> T:
        """Insert a new instance and load its generated values.

        Args:
            obj: The model instance to create.

        Returns:
            T: The created instance with id and timestamps populated.
        """
        async with self.translate_errors("create"):
            self.session.add(obj)
            await self.session.flush()
            await self.session.refresh(obj)

        logger.info(
            "Created {} instance with ID: {}", self.model_class.__name__, obj.id
        )
        return obj

    async def commit(self, operation: str) -> None:
        """Commit the session, translating storage errors.

        Writes are committed before anything outside the database is told
        about them.
        """
        async with self.translate_errors(operation):
            await self.session.commit()

    async def flush(self, operation: str) -> None:
        """Flush pending changes, translating storage errors."""
        async with self.translate_errors(operation):
            await self.session.flush()

    async def remove(self, obj: T) -> None:
        """Delete an instance, cascading to its children."""
        async with self.translate_errors("delete"):
            await self.session.delete(obj)
            await self.session.flush()

        logger.info(
            "Deleted {} instance with ID: {}", self.model_class.__name__, obj.id
        )

    async def count(self, *conditions: ColumnElement[bool]) -> int:
        """Count instances matching all conditions."""
        async with self.translate_errors("count"):
            stmt = (
                select(func.count()).select_from(self.model_class).where(*conditions)
            )
            result = await self.session.execute(stmt)
            return result.scalar() or 0

    async def exists_where(
        self, column: str, value: object, exclude_id: int | None = None
    ) -> bool:
        """Check whether any other instance holds ``value`` in ``column``.

        Args:
            column: Mapped attribute name.
            value: Value to look for.
            exclude_id: Instance to ignore, typically the one being updated.

        Returns:
            bool: True if another instance holds the value.
        """
        attribute = getattr(self.model_class, column)
        condition = attribute == value
        if exclude_id is not None:
            condition = condition & (self.model_class.id != exclude_id)

        async with self.translate_errors("check uniqueness"):
            result = await self.session.execute(select(exists().where(condition)))
            found = bool(result.scalar())

        logger.debug(
            "Existence check on {}.{}: {}", self.model_class.__name__, column, found
        )
        return found
