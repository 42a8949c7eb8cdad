"""Pydantic models for record input, list filters and operation results.

Field names are snake_case in Python and camelCase on the wire
(``certificateNo``, ``incomeLedger``). Models accept either form.

Input models only normalize and coerce; the business rules (required fields,
patterns, ranges) live in ``taxregistry.records.validation`` so every
violation can be collected into one error map.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taxregistry.core.exceptions import ErrorKind, TaxRegistryError
from taxregistry.core.types import FieldErrors
from taxregistry.records.constants import FILTER_ALL
from taxregistry.records.money import to_money

_WHITESPACE = re.compile(r"\s+")


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting both name styles."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


def _strip_or_none(value: Any) -> Any:  # noqa: ANN401 - runs before coercion
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def normalize_phone(phone: str) -> str:
    """Remove whitespace and rewrite international prefixes to ``0``.

    ``+2348031234567`` and ``2348031234567`` both become ``08031234567``.
    """
    phone = _WHITESPACE.sub("", phone)
    if phone.startswith("+234") and len(phone) > 4:
        return "0" + phone[4:]
    if phone.startswith("234") and len(phone) > 3:
        return "0" + phone[3:]
    return phone


class LedgerEntryInput(CamelModel):
    """One year of declared income and tax paid."""

    year: int
    income: Decimal = Decimal(0)
    tax_paid: Decimal = Decimal(0)

    @field_validator("income", "tax_paid", mode="before")
    @classmethod
    def blank_is_zero(cls, v: Any) -> Any:  # noqa: ANN401
        if v is None or (isinstance(v, str) and not v.strip()):
            return Decimal(0)
        return v

    @field_validator("income", "tax_paid")
    @classmethod
    def round_money(cls, v: Decimal) -> Decimal:
        return to_money(v)


class RecordInput(CamelModel):
    """A taxpayer record as submitted for create or update.

    Every field is optional at this level; absent fields are filled from
    configuration defaults, generated, or reported by the validator.
    """

    name: str | None = None
    tin: str | None = None
    certificate_no: str | None = None
    issue_date: datetime | None = None
    expiry_date: datetime | None = None
    phone_no: str | None = None
    email: str | None = None
    reference: str | None = None
    revenue: str | None = None
    amount: Decimal | None = None
    platform: str | None = None
    payment_details: str | None = None
    id_batch: str | None = None
    income_ledger: list[LedgerEntryInput] = Field(default_factory=list)
    source_of_income: str | None = None
    address: str | None = None

    @field_validator(
        "name",
        "tin",
        "certificate_no",
        "reference",
        "revenue",
        "platform",
        "payment_details",
        "id_batch",
        "source_of_income",
        "address",
        "issue_date",
        "expiry_date",
        "amount",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v: Any) -> Any:  # noqa: ANN401
        return _strip_or_none(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:  # noqa: ANN401
        v = _strip_or_none(v)
        return v.lower() if isinstance(v, str) else v

    @field_validator("phone_no", mode="before")
    @classmethod
    def normalize_phone_no(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, str):
            return normalize_phone(v) or None
        return v

    @field_validator("income_ledger", mode="before")
    @classmethod
    def missing_ledger_is_empty(cls, v: Any) -> Any:  # noqa: ANN401
        return [] if v is None else v

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal | None) -> Decimal | None:
        return None if v is None else to_money(v)


class ListFilters(CamelModel):
    """Structured filters for listing records.

    ``"all"`` or an empty value for revenue, platform or status means the
    filter is not applied.
    """

    search: str | None = None
    revenue: str | None = None
    platform: str | None = None
    status: Literal["active", "expired"] | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    year: int | None = None

    @field_validator(
        "search",
        "min_amount",
        "max_amount",
        "start_date",
        "end_date",
        "year",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v: Any) -> Any:  # noqa: ANN401
        return _strip_or_none(v)

    @field_validator("revenue", "platform", "status", mode="before")
    @classmethod
    def all_means_unset(cls, v: Any) -> Any:  # noqa: ANN401
        v = _strip_or_none(v)
        if isinstance(v, str) and v.lower() == FILTER_ALL:
            return None
        return v


class OperationResult(CamelModel):
    """Outcome of a caller-facing operation.

    ``error`` is a field-path keyed map of messages; errors that are not about
    one field are reported under ``_form``.
    """

    success: bool
    message: str
    data: Any = None
    error: FieldErrors | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> Self:  # noqa: ANN401
        return cls(success=True, message=message, data=data)

    @classmethod
    def failure(cls, error: TaxRegistryError) -> Self:
        return cls(
            success=False,
            message=error.message,
            error=error.field_errors(),
            error_kind=error.kind,
        )
