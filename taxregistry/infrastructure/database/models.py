"""ORM models for taxpayer records and their income ledgers."""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taxregistry.infrastructure.database.base import BaseModel
from taxregistry.records.constants import (
    ADDRESS_MAX_LENGTH,
    CERTIFICATE_NO_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    ID_BATCH_LENGTH,
    MONEY_PRECISION,
    MONEY_SCALE,
    NAME_MAX_LENGTH,
    PAYMENT_DETAILS_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PLATFORM_MAX_LENGTH,
    REFERENCE_LENGTH,
    REVENUE_MAX_LENGTH,
    SOURCE_OF_INCOME_MAX_LENGTH,
    TIN_MAX_LENGTH,
)

Money = Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)


class LedgerEntry(BaseModel):
    """Income and tax paid by one taxpayer for one year."""

    __tablename__ = "income_ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "taxpayer_id", "year", name="uq_income_ledger_entries_taxpayer_year"
        ),
    )

    taxpayer_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        ForeignKey("taxpayers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    income: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal(0))
    tax_paid: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal(0)
    )

    taxpayer: Mapped["TaxpayerRecord"] = relationship(back_populates="income_ledger")

    def __repr__(self) -> str:
        return f"<LedgerEntry(taxpayer_id={self.taxpayer_id}, year={self.year})>"


class TaxpayerRecord(BaseModel):
    """Authoritative record of a taxpayer and their latest tax payment."""

    __tablename__ = "taxpayers"
    __table_args__ = (Index("ix_taxpayers_created_at", "created_at"),)

    # Unique columns, mapped to the wire names used in error maps
    UNIQUE_FIELDS: ClassVar[dict[str, str]] = {
        "certificate_no": "certificateNo",
        "reference": "reference",
        "id_batch": "idBatch",
    }

    # Columns covered by free-text search
    SEARCH_FIELDS: ClassVar[tuple[str, ...]] = (
        "name",
        "tin",
        "certificate_no",
        "email",
        "phone_no",
        "reference",
        "id_batch",
        "source_of_income",
        "address",
    )

    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), index=True)
    tin: Mapped[str | None] = mapped_column(String(TIN_MAX_LENGTH), index=True)
    certificate_no: Mapped[str] = mapped_column(
        String(CERTIFICATE_NO_MAX_LENGTH), unique=True
    )
    issue_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    phone_no: Mapped[str] = mapped_column(String(PHONE_MAX_LENGTH), index=True)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), index=True)
    reference: Mapped[str] = mapped_column(String(REFERENCE_LENGTH), unique=True)
    revenue: Mapped[str] = mapped_column(String(REVENUE_MAX_LENGTH), index=True)
    amount: Mapped[Decimal] = mapped_column(Money)
    platform: Mapped[str] = mapped_column(String(PLATFORM_MAX_LENGTH), index=True)
    payment_details: Mapped[str] = mapped_column(String(PAYMENT_DETAILS_MAX_LENGTH))
    id_batch: Mapped[str] = mapped_column(String(ID_BATCH_LENGTH), unique=True)
    source_of_income: Mapped[str] = mapped_column(
        String(SOURCE_OF_INCOME_MAX_LENGTH)
    )
    address: Mapped[str] = mapped_column(String(ADDRESS_MAX_LENGTH))

    income_ledger: Mapped[list[LedgerEntry]] = relationship(
        back_populates="taxpayer",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="LedgerEntry.year",
    )

    def __repr__(self) -> str:
        return (
            f"<TaxpayerRecord(id={self.id}, certificate_no={self.certificate_no!r})>"
        )
