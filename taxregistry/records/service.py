"""Caller-facing taxpayer record operations.

Each operation returns an ``OperationResult`` instead of raising: registry
errors (validation, duplicates, missing records, an unreachable store) become
``success=False`` results carrying a field error map. Anything else is a bug
and propagates.

Every operation runs in its own trace span. Writes are committed inside the
operation, and only then are the cached read paths of the affected record
invalidated.
"""

import random
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from loguru import logger
from opentelemetry.trace import Span, Status, StatusCode
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.core.config import Settings
from taxregistry.core.dates import as_utc, end_of_year, utc_now
from taxregistry.core.exceptions import (
    DuplicateKeyError,
    MalformedIdError,
    TaxRegistryError,
    ValidationError,
)
from taxregistry.core.observability import trace_operation
from taxregistry.core.types import Clock
from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord
from taxregistry.infrastructure.database.store import TaxpayerStore
from taxregistry.records.constants import ID_BATCH_LENGTH, REFERENCE_LENGTH
from taxregistry.records.documents import (
    DocumentRenderer,
    DocumentTemplate,
    build_payload,
    render_document,
)
from taxregistry.records.identifiers import IdentifierGenerator
from taxregistry.records.reports import (
    FilterInfo,
    RecordPage,
    clamp_paging,
    paginate,
)
from taxregistry.records.revalidation import (
    LoggingRevalidator,
    Revalidator,
    invalidate,
)
from taxregistry.records.schemas import ListFilters, OperationResult, RecordInput
from taxregistry.records.validation import RecordValidator, coercion_errors
from taxregistry.records.views import TaxpayerView, build_view


def parse_record_id(raw_id: object) -> int:
    """Parse a record id supplied by a caller.

    Args:
        raw_id: An int or a string of digits.

    Returns:
        int: The positive record id.

    Raises:
        MalformedIdError: If the value is not a positive integer.
    """
    if isinstance(raw_id, bool):
        raise MalformedIdError(raw_id)
    if isinstance(raw_id, int):
        record_id = raw_id
    elif isinstance(raw_id, str):
        digits = raw_id.strip()
        # isdigit() also accepts superscripts that int() rejects
        if not (digits.isascii() and digits.isdecimal()):
            raise MalformedIdError(raw_id)
        record_id = int(digits)
    else:
        raise MalformedIdError(raw_id)

    if record_id < 1:
        raise MalformedIdError(raw_id)
    return record_id


def expiry_for(year_source: datetime) -> datetime:
    """Expiry date governed by ``year_source``: December 31 of its year."""
    return end_of_year(as_utc(year_source).year)


def _ledger_entries(data: RecordInput) -> list[LedgerEntry]:
    return [
        LedgerEntry(year=entry.year, income=entry.income, tax_paid=entry.tax_paid)
        for entry in data.income_ledger
    ]


class TaxpayerService:
    """Record lifecycle, listing and document data for one session.

    Args:
        session: Request-scoped session.
        settings: Application settings.
        clock: Source of the current time.
        revalidator: Receives stale read paths after writes.
        rng: Random source for identifier generation.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        clock: Clock = utc_now,
        revalidator: Revalidator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.config = settings.registry_config
        self.clock = clock
        self.store = TaxpayerStore(session)
        self.validator = RecordValidator(clock)
        self.identifiers = IdentifierGenerator(self.store, rng=rng)
        self.revalidator = revalidator or LoggingRevalidator()

    def _view(self, record: TaxpayerRecord, index: int | None = None) -> TaxpayerView:
        return build_view(record, self.clock(), self.config, index=index)

    async def _failure(
        self, operation: str, error: TaxRegistryError, span: Span
    ) -> OperationResult:
        await self.store.rollback()
        span.set_attribute("error.kind", error.kind.value)
        if error.should_alert:
            span.set_status(Status(StatusCode.ERROR, error.message))
            logger.error(
                "{} failed: {}",
                operation,
                error.message,
                error_code=error.error_code,
                fingerprint=error.fingerprint,
                **error.context,
            )
        else:
            logger.info(
                "{} rejected: {}",
                operation,
                error.message,
                error_code=error.error_code,
                **error.context,
            )
        return OperationResult.failure(error)

    async def create_record(self, payload: Mapping[str, Any]) -> OperationResult:
        """Validate, assign identifiers and store a new record."""
        with trace_operation("taxpayer.create") as span:
            try:
                data = self.validator.validate(payload)
                if await self.store.exists_with("certificateNo", data.certificate_no):
                    raise DuplicateKeyError("certificateNo")

                reference = await self.identifiers.ensure_unique(
                    "reference", REFERENCE_LENGTH, data.reference
                )
                id_batch = await self.identifiers.ensure_unique(
                    "idBatch", ID_BATCH_LENGTH, data.id_batch
                )

                now = self.clock()
                issue_date = as_utc(data.issue_date) if data.issue_date else now
                record = TaxpayerRecord(
                    name=data.name,
                    tin=data.tin,
                    certificate_no=data.certificate_no,
                    issue_date=issue_date,
                    expiry_date=expiry_for(data.expiry_date or issue_date),
                    phone_no=data.phone_no,
                    email=data.email,
                    reference=reference,
                    revenue=data.revenue or self.config.default_revenue,
                    amount=data.amount,
                    platform=data.platform or self.config.default_platform,
                    payment_details=(
                        data.payment_details or self.config.default_payment_details
                    ),
                    id_batch=id_batch,
                    source_of_income=data.source_of_income,
                    address=data.address,
                    income_ledger=_ledger_entries(data),
                    created_at=now,
                    updated_at=now,
                )
                record = await self.store.create(record)
                await self.store.commit("create")
            except TaxRegistryError as e:
                return await self._failure("Create taxpayer", e, span)

            span.set_attribute("record_id", record.id)
            invalidate(self.revalidator, record.id, self.config)
            logger.info(
                "Taxpayer record created",
                operation="create",
                record_id=record.id,
                ledger_years=len(record.income_ledger),
            )
            return OperationResult.ok(
                "Taxpayer record created successfully", self._view(record)
            )

    async def update_record(
        self, raw_id: object, payload: Mapping[str, Any]
    ) -> OperationResult:
        """Replace a record's fields and, when submitted, its whole ledger.

        Absent reference, ID/Batch, revenue, platform and payment details keep
        their stored values; issue and expiry dates change only when given.
        """
        with trace_operation("taxpayer.update", record_id=str(raw_id)) as span:
            try:
                record_id = parse_record_id(raw_id)
                data = self.validator.validate(payload, require_tin=True)
                existing = await self.store.find_by_id(record_id)

                changes: dict[str, object] = {
                    "name": data.name,
                    "tin": data.tin,
                    "certificate_no": data.certificate_no,
                    "phone_no": data.phone_no,
                    "email": data.email,
                    "amount": data.amount,
                    "source_of_income": data.source_of_income,
                    "address": data.address,
                    "revenue": data.revenue or existing.revenue,
                    "platform": data.platform or existing.platform,
                    "payment_details": data.payment_details or existing.payment_details,
                    "reference": data.reference or existing.reference,
                    "id_batch": data.id_batch or existing.id_batch,
                    "updated_at": self.clock(),
                }
                if data.issue_date:
                    changes["issue_date"] = as_utc(data.issue_date)
                if data.expiry_date:
                    changes["expiry_date"] = expiry_for(data.expiry_date)

                ledger = None
                if "income_ledger" in data.model_fields_set:
                    ledger = _ledger_entries(data)

                record = await self.store.update(record_id, changes, ledger)
                await self.store.commit("update")
            except TaxRegistryError as e:
                return await self._failure("Update taxpayer", e, span)

            invalidate(self.revalidator, record.id, self.config)
            logger.info(
                "Taxpayer record updated", operation="update", record_id=record.id
            )
            return OperationResult.ok(
                "Taxpayer record updated successfully", self._view(record)
            )

    async def delete_record(self, raw_id: object) -> OperationResult:
        """Delete a record, returning its pre-delete snapshot."""
        with trace_operation("taxpayer.delete", record_id=str(raw_id)) as span:
            try:
                record_id = parse_record_id(raw_id)
                before = await self.store.delete(record_id)
                await self.store.commit("delete")
            except TaxRegistryError as e:
                return await self._failure("Delete taxpayer", e, span)

            invalidate(self.revalidator, record_id, self.config)
            logger.bind(audit=True).info(
                "Taxpayer record deleted",
                operation="delete",
                record_id=record_id,
                snapshot=before.model_dump(),
            )
            return OperationResult.ok(
                f"Taxpayer {before.name} deleted successfully", before
            )

    async def get_record(self, raw_id: object) -> OperationResult:
        """Fetch one record as a derived view."""
        with trace_operation("taxpayer.get", record_id=str(raw_id)) as span:
            try:
                record = await self.store.find_by_id(parse_record_id(raw_id))
            except TaxRegistryError as e:
                return await self._failure("Get taxpayer", e, span)

            logger.debug("Fetched taxpayer record", record_id=record.id)
            return OperationResult.ok(
                "Taxpayer record fetched successfully", self._view(record)
            )

    async def list_records(
        self,
        page: int = 1,
        limit: int | None = None,
        search: str | None = None,
        filters: ListFilters | Mapping[str, Any] | None = None,
    ) -> OperationResult:
        """List a page of records with summary statistics over all matches.

        Args:
            page: 1-based page number; values below 1 are clamped.
            limit: Page size; clamped to ``[1, max_page_size]``.
            search: Free-text search term.
            filters: Structured filters; ``search`` overrides theirs.

        Returns:
            OperationResult: ``data`` is a ``RecordPage``.
        """
        with trace_operation("taxpayer.list") as span:
            try:
                if not isinstance(filters, ListFilters):
                    filters = self._parse_filters(filters or {})
                if search is not None:
                    term = search.strip() or None
                    filters = filters.model_copy(update={"search": term})

                page, limit = clamp_paging(
                    page,
                    limit or self.config.default_page_size,
                    self.config.max_page_size,
                )
                now = self.clock()
                result = await self.store.list_page(filters, page, limit, now)
            except TaxRegistryError as e:
                return await self._failure("List taxpayers", e, span)

            offset = (page - 1) * limit
            span.set_attribute("total", result.total)
            return OperationResult.ok(
                "Tax records fetched successfully",
                RecordPage(
                    records=[
                        build_view(record, now, self.config, index=offset + position)
                        for position, record in enumerate(result.records, start=1)
                    ],
                    pagination=paginate(result.total, page, limit),
                    summary=result.summary,
                    filters=FilterInfo(applied=filters, available=result.available),
                ),
            )

    @staticmethod
    def _parse_filters(raw: Mapping[str, Any]) -> ListFilters:
        try:
            return ListFilters.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError(coercion_errors(exc), cause=exc) from exc

    async def render_document(
        self,
        raw_id: object,
        template: DocumentTemplate | str,
        renderer: DocumentRenderer,
    ) -> bytes:
        """Render a certificate, receipt or slip for a record.

        Unlike the other operations this one raises: the caller needs bytes,
        and renderer errors must reach it unchanged.

        Raises:
            MalformedIdError: If the id is not a positive integer.
            NotFoundError: If the record does not exist.
            ValueError: If the template is unknown.
        """
        template = DocumentTemplate(template)
        with trace_operation(
            "taxpayer.render_document", template=template.value, record_id=str(raw_id)
        ):
            record = await self.store.find_by_id(parse_record_id(raw_id))
            now = self.clock()
            payload = build_payload(
                build_view(record, now, self.config), template, self.config, now
            )
            return render_document(renderer, payload)
