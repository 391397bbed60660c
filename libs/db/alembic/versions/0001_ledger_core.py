# ruff: noqa: I001
"""Ledger core tables: accounts, categories, import jobs, rules, transactions, overrides.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("account_number", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("kind in ('checking','credit_card')", name="ck_ledger_account_kind"),
    )

    op.create_table(
        "ledger_categories",
        sa.Column("code", sa.Text(), primary_key=True),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("parent_code", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["parent_code"],
            ["ledger_categories.code"],
            name="fk_ledger_category_parent",
            deferrable=True,
            initially="DEFERRED",
        ),
    )

    op.create_table(
        "ledger_import_jobs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("ledger_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("file_hash", sa.CHAR(64), nullable=False),
        sa.Column("issuer", sa.Text(), nullable=True),
        sa.Column("format", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("total_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("inserted_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duplicates_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("classified_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("transfers_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("warnings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status in ('pending','processing','completed','failed','rolled_back')",
            name="ck_ledger_import_job_status",
        ),
    )
    op.create_index(
        "ix_ledger_import_jobs_account_file_hash",
        "ledger_import_jobs",
        ["account_id", "file_hash"],
        unique=False,
    )

    op.create_table(
        "ledger_vendor_rules",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("match_pattern", sa.Text(), nullable=False),
        sa.Column("match_type", sa.Text(), nullable=False),
        sa.Column("normalized_vendor", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("source", sa.Text(), nullable=False, server_default=sa.text("'manual'")),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["category"],
            ["ledger_categories.code"],
            name="fk_ledger_rule_category",
            deferrable=True,
            initially="DEFERRED",
        ),
        sa.CheckConstraint(
            "match_type in ('exact','contains','pattern')", name="ck_ledger_rule_match_type"
        ),
        sa.CheckConstraint("source in ('manual','learned')", name="ck_ledger_rule_source"),
    )
    op.create_index(
        "ix_ledger_rules_active_priority",
        "ledger_vendor_rules",
        ["is_active", "priority"],
        unique=False,
    )

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("ledger_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "import_job_id",
            sa.BigInteger(),
            sa.ForeignKey("ledger_import_jobs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("raw_vendor", sa.Text(), nullable=False),
        sa.Column("normalized_vendor", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type_label", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("confidence", sa.Text(), nullable=True),
        sa.Column(
            "matched_rule_id",
            sa.BigInteger(),
            sa.ForeignKey("ledger_vendor_rules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_transfer", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_reviewed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("transfer_group", sa.Uuid(), nullable=True),
        sa.Column("fingerprint_sha256", sa.CHAR(64), nullable=False),
        *_timestamps(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["category"],
            ["ledger_categories.code"],
            name="fk_ledger_tx_category",
            deferrable=True,
            initially="DEFERRED",
        ),
        sa.UniqueConstraint(
            "account_id", "fingerprint_sha256", name="uq_ledger_tx_account_fingerprint"
        ),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_tx_amount_non_negative"),
        sa.CheckConstraint("direction in ('debit','credit')", name="ck_ledger_tx_direction"),
        sa.CheckConstraint(
            "confidence IS NULL OR confidence in ('high','medium','low')",
            name="ck_ledger_tx_confidence",
        ),
    )
    op.create_index("ix_ledger_tx_account_date", "ledger_transactions", ["account_id", "date"])
    op.create_index("ix_ledger_tx_normalized_vendor", "ledger_transactions", ["normalized_vendor"])
    op.create_index("ix_ledger_tx_transfer_group", "ledger_transactions", ["transfer_group"])

    op.create_table(
        "ledger_category_overrides",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "transaction_id",
            sa.BigInteger(),
            sa.ForeignKey("ledger_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("old_category", sa.Text(), nullable=True),
        sa.Column("new_category", sa.Text(), nullable=False),
        sa.Column("actor", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_ledger_overrides_transaction", "ledger_category_overrides", ["transaction_id"]
    )
    op.create_index(
        "ix_ledger_overrides_new_category", "ledger_category_overrides", ["new_category"]
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_overrides_new_category", table_name="ledger_category_overrides")
    op.drop_index("ix_ledger_overrides_transaction", table_name="ledger_category_overrides")
    op.drop_table("ledger_category_overrides")
    op.drop_index("ix_ledger_tx_transfer_group", table_name="ledger_transactions")
    op.drop_index("ix_ledger_tx_normalized_vendor", table_name="ledger_transactions")
    op.drop_index("ix_ledger_tx_account_date", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_index("ix_ledger_rules_active_priority", table_name="ledger_vendor_rules")
    op.drop_table("ledger_vendor_rules")
    op.drop_index("ix_ledger_import_jobs_account_file_hash", table_name="ledger_import_jobs")
    op.drop_table("ledger_import_jobs")
    op.drop_table("ledger_categories")
    op.drop_table("ledger_accounts")
