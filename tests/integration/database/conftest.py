"""Fixtures for record store tests."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord
from taxregistry.infrastructure.database.store import TaxpayerStore

type RecordFactory = Callable[..., Awaitable[TaxpayerRecord]]


@pytest.fixture
def store(db_session: AsyncSession) -> TaxpayerStore:
    return TaxpayerStore(db_session)


@pytest.fixture
def insert_record(store: TaxpayerStore) -> RecordFactory:
    """Insert a record; every unique field is derived from ``seq``.

    Keyword arguments override column values. ``ledger`` is a list of
    ``(year, income, tax_paid)`` tuples.
    """

    async def factory(
        seq: int,
        ledger: list[tuple[int, int, int]] | None = None,
        **overrides: Any,  # noqa: ANN401
    ) -> TaxpayerRecord:
        created_at = overrides.pop("created_at", datetime(2025, 1, seq, tzinfo=UTC))
        values: dict[str, Any] = {
            "name": f"Taxpayer {seq}",
            "tin": f"1000000{seq:02d}-0001",
            "certificate_no": f"CERT-{seq:03d}",
            "issue_date": created_at,
            "expiry_date": datetime(2025, 12, 31, 23, 59, 59, tzinfo=UTC),
            "phone_no": f"080312345{seq:02d}",
            "email": f"taxpayer{seq}@example.com",
            "reference": f"{100000000000 + seq}",
            "revenue": "Presumptive Tax",
            "amount": Decimal(1000 * seq),
            "platform": "REMITA",
            "payment_details": "Presumptive Tax",
            "id_batch": f"{100000000000000000 + seq}",
            "source_of_income": "Trading",
            "address": f"{seq} Broad Street, Lagos",
            "created_at": created_at,
            "updated_at": created_at,
        }
        values.update(overrides)
        values["income_ledger"] = [
            LedgerEntry(year=year, income=Decimal(income), tax_paid=Decimal(tax))
            for year, income, tax in (ledger or [])
        ]
        return await store.create(TaxpayerRecord(**values))

    return factory
