"""Search, filtering and aggregation over taxpayer records.

One set of filter conditions drives every query of a listing: the page of
records, the total count and the summary statistics. The summary therefore
always describes exactly the records the pagination counts.
"""

from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy import ColumnElement, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxregistry.core.dates import end_of_day, start_of_day
from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord
from taxregistry.records.constants import MIN_LEDGER_YEAR
from taxregistry.records.money import to_money
from taxregistry.records.reports import AvailableFilters, GroupStat, Summary
from taxregistry.records.schemas import ListFilters

LIKE_ESCAPE = "\\"


@dataclass
class QueryPage:
    """A page of stored records plus aggregates over the whole filtered set."""

    records: list[TaxpayerRecord]
    total: int
    summary: Summary
    available: AvailableFilters


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def status_expression(now: datetime) -> ColumnElement[str]:
    """SQL expression evaluating to ``active`` or ``expired``."""
    return case(
        (TaxpayerRecord.expiry_date >= now, "active"),
        else_="expired",
    )


def build_conditions(
    filters: ListFilters, now: datetime
) -> list[ColumnElement[bool]]:
    """Translate list filters into WHERE conditions, ANDed together."""
    conditions: list[ColumnElement[bool]] = []

    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        conditions.append(
            or_(
                *(
                    getattr(TaxpayerRecord, column).ilike(pattern, escape=LIKE_ESCAPE)
                    for column in TaxpayerRecord.SEARCH_FIELDS
                )
            )
        )

    if filters.revenue:
        conditions.append(TaxpayerRecord.revenue == filters.revenue)
    if filters.platform:
        conditions.append(TaxpayerRecord.platform == filters.platform)

    if filters.status == "active":
        conditions.append(TaxpayerRecord.expiry_date >= now)
    elif filters.status == "expired":
        conditions.append(TaxpayerRecord.expiry_date < now)

    if filters.min_amount is not None:
        conditions.append(TaxpayerRecord.amount >= filters.min_amount)
    if filters.max_amount is not None:
        conditions.append(TaxpayerRecord.amount <= filters.max_amount)

    if filters.start_date is not None:
        start = start_of_day(filters.start_date)
        conditions.append(TaxpayerRecord.created_at >= start)
    if filters.end_date is not None:
        conditions.append(TaxpayerRecord.created_at <= end_of_day(filters.end_date))

    if filters.year is not None:
        conditions.append(
            TaxpayerRecord.income_ledger.any(LedgerEntry.year == filters.year)
        )

    return conditions


def _group_stats(rows: list[tuple[str, int, object]]) -> list[GroupStat]:
    stats = [
        GroupStat(key=key, count=count, total_amount=to_money(total))
        for key, count, total in rows
    ]
    return sorted(stats, key=lambda stat: (-stat.count, stat.key))


class RecordQuery:
    """Runs listing queries for one session at one point in time.

    Args:
        session: Session to query with.
        now: Reference time deciding active versus expired.
    """

    def __init__(self, session: AsyncSession, now: datetime) -> None:
        self.session = session
        self.now = now

    async def page(self, filters: ListFilters, page: int, limit: int) -> QueryPage:
        """Fetch one page of records and aggregate the full filtered set.

        Args:
            filters: Structured filters and search term.
            page: 1-based page number, already clamped.
            limit: Page size, already clamped.

        Returns:
            QueryPage: Records for the page, total and summary.
        """
        conditions = build_conditions(filters, self.now)

        stmt = (
            select(TaxpayerRecord)
            .where(*conditions)
            .order_by(TaxpayerRecord.created_at.desc(), TaxpayerRecord.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        records = list((await self.session.execute(stmt)).scalars().all())

        summary = await self.summary(conditions)
        available = await self.available_filters()

        logger.debug(
            "Listed records",
            page=page,
            limit=limit,
            returned=len(records),
            total=summary.total_taxpayers,
        )
        return QueryPage(
            records=records,
            total=summary.total_taxpayers,
            summary=summary,
            available=available,
        )

    async def summary(self, conditions: list[ColumnElement[bool]]) -> Summary:
        """Aggregate amounts, ledger totals and distributions."""
        ledger = (
            select(
                LedgerEntry.taxpayer_id.label("taxpayer_id"),
                func.sum(LedgerEntry.income).label("income"),
                func.sum(LedgerEntry.tax_paid).label("tax_paid"),
            )
            .group_by(LedgerEntry.taxpayer_id)
            .subquery()
        )
        income = func.coalesce(ledger.c.income, 0)
        tax_paid = func.coalesce(ledger.c.tax_paid, 0)

        totals_stmt = (
            select(
                func.count(TaxpayerRecord.id),
                func.sum(TaxpayerRecord.amount),
                func.avg(TaxpayerRecord.amount),
                func.min(TaxpayerRecord.amount),
                func.max(TaxpayerRecord.amount),
                func.sum(income),
                func.avg(income),
                func.sum(tax_paid),
                func.avg(tax_paid),
            )
            .select_from(TaxpayerRecord)
            .outerjoin(ledger, ledger.c.taxpayer_id == TaxpayerRecord.id)
            .where(*conditions)
        )
        row = (await self.session.execute(totals_stmt)).one()
        count = row[0] or 0

        if not count:
            return Summary()

        return Summary(
            total_taxpayers=count,
            total_amount=to_money(row[1]),
            average_amount=to_money(row[2]),
            min_amount=to_money(row[3]),
            max_amount=to_money(row[4]),
            total_income=to_money(row[5]),
            average_income=to_money(row[6]),
            total_tax_paid=to_money(row[7]),
            average_tax_paid=to_money(row[8]),
            revenue_distribution=await self._distribution(
                TaxpayerRecord.revenue, conditions
            ),
            platform_distribution=await self._distribution(
                TaxpayerRecord.platform, conditions
            ),
            status_distribution=await self._status_distribution(conditions),
        )

    async def _distribution(
        self, column: ColumnElement[str], conditions: list[ColumnElement[bool]]
    ) -> list[GroupStat]:
        stmt = (
            select(
                column,
                func.count(TaxpayerRecord.id),
                func.sum(TaxpayerRecord.amount),
            )
            .where(*conditions)
            .group_by(column)
        )
        rows = (await self.session.execute(stmt)).all()
        return _group_stats([tuple(r) for r in rows])

    async def _status_distribution(
        self, conditions: list[ColumnElement[bool]]
    ) -> list[GroupStat]:
        # Group on a subquery column: a bound CASE cannot be repeated in GROUP BY
        statuses = (
            select(
                TaxpayerRecord.amount.label("amount"),
                status_expression(self.now).label("status"),
            )
            .where(*conditions)
            .subquery()
        )
        stmt = select(
            statuses.c.status, func.count(), func.sum(statuses.c.amount)
        ).group_by(statuses.c.status)
        rows = (await self.session.execute(stmt)).all()
        return _group_stats([tuple(r) for r in rows])

    async def available_filters(self) -> AvailableFilters:
        """Distinct revenue types and platforms across all records."""
        revenue_types = await self.session.scalars(
            select(TaxpayerRecord.revenue)
            .distinct()
            .order_by(TaxpayerRecord.revenue)
        )
        platforms = await self.session.scalars(
            select(TaxpayerRecord.platform)
            .distinct()
            .order_by(TaxpayerRecord.platform)
        )
        return AvailableFilters(
            revenue_types=list(revenue_types),
            platforms=list(platforms),
            years=list(range(self.now.year, MIN_LEDGER_YEAR - 1, -1)),
        )
