"""Derived views of taxpayer records.

Everything here is a pure function of a stored record and the current time.
Derived fields (status, days until expiry, ledger totals, latest year) are
never persisted; they are recomputed every time a view is built.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Literal, Protocol

from taxregistry.core.constants import (
    DATE_FORMAT_FULL,
    DATE_FORMAT_LONG,
    DATE_FORMAT_SHORT,
    SECONDS_PER_DAY,
)
from taxregistry.core.dates import as_utc
from taxregistry.records.constants import NOT_AVAILABLE
from taxregistry.records.money import ZERO, format_currency, to_money
from taxregistry.records.schemas import CamelModel

if TYPE_CHECKING:
    from taxregistry.core.config import RegistryConfig


class LedgerEntryLike(Protocol):
    year: int
    income: Decimal
    tax_paid: Decimal


class RecordLike(Protocol):
    """Attributes a stored record exposes to the view builder."""

    id: int
    name: str
    tin: str | None
    certificate_no: str
    issue_date: datetime
    expiry_date: datetime
    phone_no: str
    email: str
    reference: str
    revenue: str
    amount: Decimal
    platform: str
    payment_details: str
    id_batch: str
    source_of_income: str
    address: str
    created_at: datetime
    updated_at: datetime

    @property
    def income_ledger(self) -> Sequence[LedgerEntryLike]: ...


class DateDisplay(CamelModel):
    """A date with its display renditions."""

    iso: datetime
    formatted: str
    short: str
    long: str


class LedgerEntryView(CamelModel):
    year: int
    income: Decimal
    tax_paid: Decimal
    income_formatted: str
    tax_paid_formatted: str


class CertificateColumn(CamelModel):
    """One year column of a certificate table; ``N/A`` when padded."""

    year: int | str
    income: str
    tax_paid: str


class TaxpayerView(CamelModel):
    """A record together with every derived presentation field."""

    id: int
    index: int | None = None
    name: str
    tin: str | None
    certificate_no: str
    issue_date: DateDisplay
    expiry_date: DateDisplay
    phone_no: str
    email: str
    reference: str
    revenue: str
    amount: Decimal
    amount_formatted: str
    platform: str
    payment_details: str
    id_batch: str
    income_ledger: list[LedgerEntryView]
    source_of_income: str
    address: str
    created_at: datetime
    updated_at: datetime

    is_expired: bool
    is_active: bool
    status: Literal["active", "expired"]
    days_until_expiry: int
    total_income_amount: Decimal
    total_tax_paid: Decimal
    total_income_formatted: str
    total_tax_paid_formatted: str
    latest_year: int | None
    latest_income: Decimal
    latest_tax_paid: Decimal
    verification_url: str


class DeletedSnapshot(CamelModel):
    """What a record looked like right before deletion; audit only."""

    id: int
    name: str
    tin: str | None
    certificate_no: str
    email: str
    phone_no: str
    reference: str
    id_batch: str
    total_tax_paid: Decimal
    years_of_history: int


def verification_url(base_url: str, path_template: str, record_id: int) -> str:
    """Build the public link that resolves a document back to its record."""
    return base_url + path_template.format(record_id=record_id)


def date_display(value: datetime) -> DateDisplay:
    value = as_utc(value)
    return DateDisplay(
        iso=value,
        formatted=value.strftime(DATE_FORMAT_FULL),
        short=value.strftime(DATE_FORMAT_SHORT),
        long=value.strftime(DATE_FORMAT_LONG),
    )


def is_expired(expiry_date: datetime, now: datetime) -> bool:
    return as_utc(now) > as_utc(expiry_date)


def days_until_expiry(expiry_date: datetime, now: datetime) -> int:
    """Whole days left before expiry, rounded up; 0 once expired."""
    if is_expired(expiry_date, now):
        return 0
    remaining = (as_utc(expiry_date) - as_utc(now)).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))


def ordered_ledger(
    entries: Iterable[LedgerEntryLike], *, descending: bool = True
) -> list[LedgerEntryLike]:
    """Sort ledger entries by year.

    Listings show the newest year first; certificates tabulate oldest first.
    """
    return sorted(entries, key=lambda entry: entry.year, reverse=descending)


def ledger_totals(entries: Iterable[LedgerEntryLike]) -> tuple[Decimal, Decimal]:
    """Return ``(total income, total tax paid)`` of a ledger."""
    total_income = ZERO
    total_tax = ZERO
    for entry in entries:
        total_income += to_money(entry.income)
        total_tax += to_money(entry.tax_paid)
    return total_income, total_tax


def certificate_table(
    entries: Iterable[LedgerEntryLike], years: int = 3
) -> list[CertificateColumn]:
    """Tabulate the latest ``years`` ledger years, oldest first.

    Missing columns are padded with ``N/A`` so a certificate always shows the
    same number of years.
    """
    latest = ordered_ledger(entries, descending=True)[:years]
    columns = [
        CertificateColumn(
            year=entry.year,
            income=format_currency(entry.income),
            tax_paid=format_currency(entry.tax_paid),
        )
        for entry in ordered_ledger(latest, descending=False)
    ]
    padding = [
        CertificateColumn(
            year=NOT_AVAILABLE, income=NOT_AVAILABLE, tax_paid=NOT_AVAILABLE
        )
        for _ in range(years - len(columns))
    ]
    return columns + padding


def build_view(
    record: RecordLike,
    now: datetime,
    config: RegistryConfig,
    index: int | None = None,
) -> TaxpayerView:
    """Build the derived view of a record.

    Args:
        record: Stored record.
        now: Current time; decides active/expired.
        config: Registry settings, for the verification link.
        index: 1-based position in a listing, if any.

    Returns:
        TaxpayerView: The record with all derived fields.
    """
    ledger = ordered_ledger(record.income_ledger, descending=True)
    total_income, total_tax = ledger_totals(ledger)
    latest = ledger[0] if ledger else None
    expired = is_expired(record.expiry_date, now)
    amount = to_money(record.amount)

    return TaxpayerView(
        id=record.id,
        index=index,
        name=record.name,
        tin=record.tin,
        certificate_no=record.certificate_no,
        issue_date=date_display(record.issue_date),
        expiry_date=date_display(record.expiry_date),
        phone_no=record.phone_no,
        email=record.email,
        reference=record.reference,
        revenue=record.revenue,
        amount=amount,
        amount_formatted=format_currency(amount),
        platform=record.platform,
        payment_details=record.payment_details,
        id_batch=record.id_batch,
        income_ledger=[
            LedgerEntryView(
                year=entry.year,
                income=to_money(entry.income),
                tax_paid=to_money(entry.tax_paid),
                income_formatted=format_currency(entry.income),
                tax_paid_formatted=format_currency(entry.tax_paid),
            )
            for entry in ledger
        ],
        source_of_income=record.source_of_income,
        address=record.address,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
        is_expired=expired,
        is_active=not expired,
        status="expired" if expired else "active",
        days_until_expiry=days_until_expiry(record.expiry_date, now),
        total_income_amount=total_income,
        total_tax_paid=total_tax,
        total_income_formatted=format_currency(total_income),
        total_tax_paid_formatted=format_currency(total_tax),
        latest_year=latest.year if latest else None,
        latest_income=to_money(latest.income) if latest else ZERO,
        latest_tax_paid=to_money(latest.tax_paid) if latest else ZERO,
        verification_url=verification_url(
            config.public_base_url, config.verification_path_template, record.id
        ),
    )


def snapshot(record: RecordLike) -> DeletedSnapshot:
    """Capture the audit snapshot of a record about to be deleted."""
    _, total_tax = ledger_totals(record.income_ledger)
    return DeletedSnapshot(
        id=record.id,
        name=record.name,
        tin=record.tin,
        certificate_no=record.certificate_no,
        email=record.email,
        phone_no=record.phone_no,
        reference=record.reference,
        id_batch=record.id_batch,
        total_tax_paid=total_tax,
        years_of_history=len(record.income_ledger),
    )
