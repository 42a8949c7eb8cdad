"""Unit tests for the derived view builder."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_check

from taxregistry.core.config import RegistryConfig
from taxregistry.infrastructure.database.models import TaxpayerRecord
from taxregistry.records.views import (
    build_view,
    certificate_table,
    days_until_expiry,
    is_expired,
    ledger_totals,
    snapshot,
    verification_url,
)

EXPIRY = datetime(2025, 12, 31, 23, 59, 59, tzinfo=UTC)


def _entry(year: int, income: int, tax_paid: int) -> SimpleNamespace:
    return SimpleNamespace(
        year=year, income=Decimal(income), tax_paid=Decimal(tax_paid)
    )


@pytest.mark.unit
class TestExpiry:
    def test_active_through_last_second(self) -> None:
        assert not is_expired(EXPIRY, EXPIRY)
        assert is_expired(EXPIRY, EXPIRY + timedelta(seconds=1))

    def test_naive_expiry_is_treated_as_utc(self) -> None:
        naive = EXPIRY.replace(tzinfo=None)
        assert not is_expired(naive, datetime(2025, 6, 15, tzinfo=UTC))

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (datetime(2025, 12, 29, 23, 59, 59, tzinfo=UTC), 2),
            (datetime(2025, 12, 30, 12, 0, tzinfo=UTC), 2),
            (datetime(2025, 12, 31, 0, 0, tzinfo=UTC), 1),
            (EXPIRY, 0),
            (datetime(2026, 1, 5, tzinfo=UTC), 0),
        ],
    )
    def test_days_until_expiry_rounds_up(self, now: datetime, expected: int) -> None:
        assert days_until_expiry(EXPIRY, now) == expected


@pytest.mark.unit
class TestLedger:
    def test_totals(self) -> None:
        entries = [_entry(2023, 100000, 5000), _entry(2024, 120000, 6000)]
        assert ledger_totals(entries) == (Decimal("220000.00"), Decimal("11000.00"))

    def test_empty_totals_are_zero(self) -> None:
        assert ledger_totals([]) == (Decimal(0), Decimal(0))

    def test_certificate_table_latest_years_oldest_first(self) -> None:
        entries = [_entry(year, year, 1) for year in (2021, 2024, 2022, 2023)]

        table = certificate_table(entries, years=3)

        assert [column.year for column in table] == [2022, 2023, 2024]
        assert table[0].income == "₦2,022.00"

    def test_certificate_table_pads_missing_years(self) -> None:
        table = certificate_table([_entry(2024, 10, 1)], years=3)

        assert [column.year for column in table] == [2024, "N/A", "N/A"]
        assert table[2].tax_paid == "N/A"


@pytest.mark.unit
class TestBuildView:
    def test_ledger_derived_fields(
        self,
        stored_record: TaxpayerRecord,
        registry_config: RegistryConfig,
        fixed_now: datetime,
    ) -> None:
        view = build_view(stored_record, fixed_now, registry_config, index=3)

        with pytest_check.check:
            assert view.total_income_amount == Decimal(220000)
        with pytest_check.check:
            assert view.total_tax_paid == Decimal(11000)
        with pytest_check.check:
            assert view.latest_year == 2024
        with pytest_check.check:
            assert view.latest_tax_paid == Decimal(6000)
        with pytest_check.check:
            assert [entry.year for entry in view.income_ledger] == [2024, 2023]
        with pytest_check.check:
            assert view.total_income_formatted == "₦220,000.00"
        with pytest_check.check:
            assert view.index == 3

    def test_status_and_links(
        self,
        stored_record: TaxpayerRecord,
        registry_config: RegistryConfig,
        fixed_now: datetime,
    ) -> None:
        view = build_view(stored_record, fixed_now, registry_config)

        assert view.status == "active"
        assert view.is_active
        assert not view.is_expired
        assert view.days_until_expiry == 200
        assert view.verification_url == "https://tax.example.ng/verify/17"
        assert view.created_at.tzinfo is UTC
        assert view.expiry_date.formatted == "31 December 2025"
        assert view.issue_date.short == "03 Feb 2025"
        assert view.issue_date.long == "Monday, February 03, 2025"

    def test_expired_record(
        self, stored_record: TaxpayerRecord, registry_config: RegistryConfig
    ) -> None:
        view = build_view(
            stored_record, datetime(2026, 1, 1, tzinfo=UTC), registry_config
        )

        assert view.status == "expired"
        assert view.days_until_expiry == 0

    def test_empty_ledger(
        self,
        stored_record: TaxpayerRecord,
        registry_config: RegistryConfig,
        fixed_now: datetime,
    ) -> None:
        stored_record.income_ledger = []

        view = build_view(stored_record, fixed_now, registry_config)

        assert view.latest_year is None
        assert view.latest_income == Decimal(0)
        assert view.total_tax_paid == Decimal(0)

    def test_serializes_with_camel_case(
        self,
        stored_record: TaxpayerRecord,
        registry_config: RegistryConfig,
        fixed_now: datetime,
    ) -> None:
        data = build_view(stored_record, fixed_now, registry_config).model_dump(
            by_alias=True
        )

        assert data["certificateNo"] == "CERT-001"
        assert data["totalIncomeAmount"] == Decimal(220000)
        assert data["incomeLedger"][0]["taxPaidFormatted"] == "₦6,000.00"


@pytest.mark.unit
class TestSnapshotAndLinks:
    def test_snapshot(self, stored_record: TaxpayerRecord) -> None:
        before = snapshot(stored_record)

        assert before.id == 17
        assert before.certificate_no == "CERT-001"
        assert before.total_tax_paid == Decimal(11000)
        assert before.years_of_history == 2

    def test_verification_url(self) -> None:
        assert (
            verification_url("https://tax.example.ng", "/taxpayer-doc/{record_id}", 5)
            == "https://tax.example.ng/taxpayer-doc/5"
        )
