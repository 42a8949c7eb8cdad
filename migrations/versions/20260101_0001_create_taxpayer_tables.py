"""create taxpayer and income ledger tables

Revision ID: 0001
Revises:
Create Date: 2026-01-01 00:00:00.000000+00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
MONEY = sa.Numeric(18, 2)

INDEXED_COLUMNS = (
    "name",
    "tin",
    "expiry_date",
    "phone_no",
    "email",
    "revenue",
    "platform",
    "created_at",
)

SEARCH_COLUMNS = (
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


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "taxpayers",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("tin", sa.String(64), nullable=True),
        sa.Column("certificate_no", sa.String(100), nullable=False),
        sa.Column("issue_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("phone_no", sa.String(20), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("reference", sa.String(12), nullable=False),
        sa.Column("revenue", sa.String(100), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("platform", sa.String(100), nullable=False),
        sa.Column("payment_details", sa.String(200), nullable=False),
        sa.Column("id_batch", sa.String(18), nullable=False),
        sa.Column("source_of_income", sa.String(500), nullable=False),
        sa.Column("address", sa.String(1000), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_taxpayers"),
        sa.UniqueConstraint("certificate_no", name="uq_taxpayers_certificate_no"),
        sa.UniqueConstraint("reference", name="uq_taxpayers_reference"),
        sa.UniqueConstraint("id_batch", name="uq_taxpayers_id_batch"),
    )
    for column in INDEXED_COLUMNS:
        op.create_index(f"ix_taxpayers_{column}", "taxpayers", [column])

    op.create_table(
        "income_ledger_entries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("taxpayer_id", ID_TYPE, nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("income", MONEY, nullable=False),
        sa.Column("tax_paid", MONEY, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_income_ledger_entries"),
        sa.ForeignKeyConstraint(
            ["taxpayer_id"],
            ["taxpayers.id"],
            name="fk_income_ledger_entries_taxpayer_id_taxpayers",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "taxpayer_id", "year", name="uq_income_ledger_entries_taxpayer_year"
        ),
    )
    op.create_index(
        "ix_income_ledger_entries_taxpayer_id",
        "income_ledger_entries",
        ["taxpayer_id"],
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
        columns = ", ".join(f"{column} gin_trgm_ops" for column in SEARCH_COLUMNS)
        op.execute(
            f"CREATE INDEX ix_taxpayers_search_trgm ON taxpayers USING gin ({columns})"
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS ix_taxpayers_search_trgm")

    op.drop_index("ix_income_ledger_entries_taxpayer_id", "income_ledger_entries")
    op.drop_table("income_ledger_entries")

    for column in reversed(INDEXED_COLUMNS):
        op.drop_index(f"ix_taxpayers_{column}", "taxpayers")
    op.drop_table("taxpayers")
