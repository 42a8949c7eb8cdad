"""Persistence of taxpayer records.

``TaxpayerStore`` enforces the three globally unique keys (certificate number,
reference, ID/Batch) and replaces income ledgers wholesale on update. Unique
keys are checked before writing for a friendly error, but the database's
unique indexes decide: a concurrent writer that wins the race still surfaces
as ``DuplicateKeyError`` through error translation.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.core.exceptions import DuplicateKeyError, NotFoundError
from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord
from taxregistry.infrastructure.database.query import QueryPage, RecordQuery
from taxregistry.infrastructure.database.repository import BaseRepository
from taxregistry.records.schemas import ListFilters
from taxregistry.records.views import DeletedSnapshot, snapshot


class TaxpayerStore(BaseRepository[TaxpayerRecord]):
    """Record store over one session.

    Args:
        session: Request-scoped session; the caller owns commit/rollback.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TaxpayerRecord)
        self._columns_by_wire_name = {
            wire: column for column, wire in self.unique_fields.items()
        }

    async def exists_with(
        self, field: str, value: str, exclude_id: int | None = None
    ) -> bool:
        """Check whether another record holds ``value`` in a unique field.

        Args:
            field: Wire name (``certificateNo``, ``reference`` or ``idBatch``).
            value: Candidate value.
            exclude_id: Record to ignore, for updates.
        """
        column = self._columns_by_wire_name[field]
        return await self.exists_where(column, value, exclude_id)

    async def find_by_id(self, record_id: int) -> TaxpayerRecord:
        """Load a record with its ledger.

        Raises:
            NotFoundError: If no record has this id.
        """
        record = await self.get_by_id(record_id)
        if record is None:
            raise NotFoundError(record_id)
        return record

    async def create(self, record: TaxpayerRecord) -> TaxpayerRecord:
        """Insert a new record and its ledger.

        Raises:
            DuplicateKeyError: If a unique field collides.
        """
        record = await self.add(record)
        await record.awaitable_attrs.income_ledger
        return record

    async def update(
        self,
        record_id: int,
        changes: Mapping[str, object],
        ledger: Sequence[LedgerEntry] | None,
    ) -> TaxpayerRecord:
        """Apply a full update and replace the income ledger.

        Uniqueness is re-checked only for unique fields whose value changes.

        Args:
            record_id: Record to update.
            changes: Column values to set.
            ledger: Entries that replace the existing ledger; None keeps it.

        Returns:
            TaxpayerRecord: The updated record.

        Raises:
            NotFoundError: If the record does not exist.
            DuplicateKeyError: If a changed unique field collides.
        """
        record = await self.find_by_id(record_id)

        for column, wire_name in self.unique_fields.items():
            new_value = changes.get(column)
            if new_value is None or new_value == getattr(record, column):
                continue
            if await self.exists_where(column, new_value, exclude_id=record_id):
                raise DuplicateKeyError(wire_name)

        for key, value in changes.items():
            setattr(record, key, value)

        if ledger is not None:
            # Old entries must be gone before new ones claim the same years
            record.income_ledger.clear()
            await self.flush("update")
            record.income_ledger.extend(ledger)
        await self.flush("update")

        async with self.translate_errors("update"):
            await self.session.refresh(record)
            await record.awaitable_attrs.income_ledger

        logger.info(
            "Updated taxpayer record",
            record_id=record_id,
            fields=sorted(changes),
            ledger_replaced=ledger is not None,
        )
        return record

    async def delete(self, record_id: int) -> DeletedSnapshot:
        """Delete a record irreversibly.

        Returns:
            DeletedSnapshot: The record as it was just before deletion.

        Raises:
            NotFoundError: If the record does not exist.
        """
        record = await self.find_by_id(record_id)
        before = snapshot(record)
        await self.remove(record)
        return before

    async def list_page(
        self, filters: ListFilters, page: int, limit: int, now: datetime
    ) -> QueryPage:
        """List one page of matching records with summary statistics."""
        async with self.translate_errors("list"):
            return await RecordQuery(self.session, now).page(filters, page, limit)
