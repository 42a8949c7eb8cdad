"""Shared fixtures for record unit tests."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from taxregistry.core.config import RegistryConfig
from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord


@pytest.fixture
def registry_config() -> RegistryConfig:
    return RegistryConfig(public_base_url="https://tax.example.ng")


@pytest.fixture
def stored_record() -> TaxpayerRecord:
    """Transient record as the store would return it, ledger unordered.

    Returns:
        TaxpayerRecord: Record expiring at the end of 2025.
    """
    return TaxpayerRecord(
        id=17,
        name="Adaeze Okafor",
        tin="12345678-0001",
        certificate_no="CERT-001",
        issue_date=datetime(2025, 2, 3, 9, 30, tzinfo=UTC),
        expiry_date=datetime(2025, 12, 31, 23, 59, 59, tzinfo=UTC),
        phone_no="08031234567",
        email="adaeze.okafor@example.com",
        reference="123456789012",
        revenue="Presumptive Tax",
        amount=Decimal("50000.00"),
        platform="REMITA",
        payment_details="Presumptive Tax",
        id_batch="123456789012345678",
        source_of_income="Textile trading",
        address="12 Marina Road, Lagos Island, Lagos",
        income_ledger=[
            LedgerEntry(year=2024, income=Decimal(120000), tax_paid=Decimal(6000)),
            LedgerEntry(year=2023, income=Decimal(100000), tax_paid=Decimal(5000)),
        ],
        # SQLite hands timestamps back without an offset
        created_at=datetime(2025, 2, 3, 9, 30),
        updated_at=datetime(2025, 2, 3, 9, 30),
    )
