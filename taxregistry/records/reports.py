"""Listing results: pagination, summary statistics and filter choices."""

import math
from decimal import Decimal

from pydantic import Field

from taxregistry.records.money import ZERO
from taxregistry.records.schemas import CamelModel, ListFilters
from taxregistry.records.views import TaxpayerView


class Pagination(CamelModel):
    total: int
    pages: int
    page: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class GroupStat(CamelModel):
    """Record count and amount total for one group value."""

    key: str
    count: int
    total_amount: Decimal


class Summary(CamelModel):
    """Aggregates over the filtered record set.

    Income and tax averages are per record; a record with an empty ledger
    contributes zero.
    """

    total_taxpayers: int = 0
    total_amount: Decimal = ZERO
    average_amount: Decimal = ZERO
    min_amount: Decimal = ZERO
    max_amount: Decimal = ZERO
    total_income: Decimal = ZERO
    average_income: Decimal = ZERO
    total_tax_paid: Decimal = ZERO
    average_tax_paid: Decimal = ZERO
    revenue_distribution: list[GroupStat] = Field(default_factory=list)
    platform_distribution: list[GroupStat] = Field(default_factory=list)
    status_distribution: list[GroupStat] = Field(default_factory=list)


class AvailableFilters(CamelModel):
    """Values a caller can choose from when filtering."""

    revenue_types: list[str]
    platforms: list[str]
    years: list[int]


class FilterInfo(CamelModel):
    applied: ListFilters
    available: AvailableFilters


class RecordPage(CamelModel):
    """One page of records with the summary of the whole filtered set."""

    records: list[TaxpayerView]
    pagination: Pagination
    summary: Summary
    filters: FilterInfo


def clamp_paging(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """Clamp ``page`` to at least 1 and ``limit`` to ``[1, max_limit]``."""
    return max(page, 1), min(max(limit, 1), max_limit)


def paginate(total: int, page: int, limit: int) -> Pagination:
    pages = math.ceil(total / limit) if total else 0
    return Pagination(
        total=total,
        pages=pages,
        page=page,
        limit=limit,
        has_next_page=page < pages,
        has_prev_page=page > 1,
    )
