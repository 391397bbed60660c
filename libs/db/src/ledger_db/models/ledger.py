from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    CHAR,
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr

# BIGINT identity on Postgres; INTEGER rowid on SQLite so autoincrement works there.
_PK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: ledger_accounts
# ---------------------------


class LedgerAccount(Base):
    __tablename__ = "ledger_accounts"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    account_number: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa_expr.true()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("kind in ('checking','credit_card')", name="ck_ledger_account_kind"),
    )


# ---------------------------
# Reference: ledger_categories
# ---------------------------


class LedgerCategory(Base):
    __tablename__ = "ledger_categories"

    code: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    parent_code: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("ledger_categories.code", deferrable=True, initially="DEFERRED"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa_expr.true()
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: ledger_import_jobs
# ---------------------------


class ImportJob(Base):
    __tablename__ = "ledger_import_jobs"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    # sha256 of the uploaded bytes; not unique so a re-import is counted, not rejected.
    file_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    issuer: Mapped[str | None] = mapped_column(String, nullable=True)
    format: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending", server_default="pending"
    )
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    inserted_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    duplicates_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    classified_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    transfers_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    warnings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    # ``metadata`` is reserved on declarative classes, hence the attribute name.
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','processing','completed','failed','rolled_back')",
            name="ck_ledger_import_job_status",
        ),
        Index("ix_ledger_import_jobs_account_file_hash", "account_id", "file_hash"),
    )


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    import_job_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_import_jobs.id", ondelete="SET NULL"), nullable=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Minor units (cents); the sign lives in ``direction`` only.
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String, nullable=False)
    raw_vendor: Mapped[str] = mapped_column(Text, nullable=False, default="")
    normalized_vendor: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type_label: Mapped[str | None] = mapped_column(String, nullable=True)
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    category: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("ledger_categories.code", deferrable=True, initially="DEFERRED"),
        nullable=True,
    )
    confidence: Mapped[str | None] = mapped_column(String, nullable=True)
    matched_rule_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_vendor_rules.id", ondelete="SET NULL"), nullable=True
    )
    is_transfer: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    is_reviewed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    transfer_group: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    fingerprint_sha256: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "account_id", "fingerprint_sha256", name="uq_ledger_tx_account_fingerprint"
        ),
        CheckConstraint("amount >= 0", name="ck_ledger_tx_amount_non_negative"),
        CheckConstraint("direction in ('debit','credit')", name="ck_ledger_tx_direction"),
        CheckConstraint(
            "confidence IS NULL OR confidence in ('high','medium','low')",
            name="ck_ledger_tx_confidence",
        ),
        Index("ix_ledger_tx_account_date", "account_id", "date"),
        Index("ix_ledger_tx_normalized_vendor", "normalized_vendor"),
        Index("ix_ledger_tx_transfer_group", "transfer_group"),
    )


# ---------------------------
# Rules: ledger_vendor_rules
# ---------------------------


class VendorRule(Base):
    __tablename__ = "ledger_vendor_rules"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    match_pattern: Mapped[str] = mapped_column(Text, nullable=False)
    match_type: Mapped[str] = mapped_column(String, nullable=False)
    normalized_vendor: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        String,
        ForeignKey("ledger_categories.code", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    # Lower wins.
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=100, server_default="100"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa_expr.true()
    )
    source: Mapped[str] = mapped_column(
        String, nullable=False, default="manual", server_default="manual"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "match_type in ('exact','contains','pattern')", name="ck_ledger_rule_match_type"
        ),
        CheckConstraint("source in ('manual','learned')", name="ck_ledger_rule_source"),
        Index("ix_ledger_rules_active_priority", "is_active", "priority"),
    )


# ---------------------------
# Audit: ledger_category_overrides
# ---------------------------


class CategoryOverride(Base):
    __tablename__ = "ledger_category_overrides"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_transactions.id", ondelete="CASCADE"), nullable=False
    )
    old_category: Mapped[str | None] = mapped_column(String, nullable=True)
    new_category: Mapped[str] = mapped_column(String, nullable=False)
    actor: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_ledger_overrides_transaction", "transaction_id"),
        Index("ix_ledger_overrides_new_category", "new_category"),
    )


@event.listens_for(CategoryOverride, "before_update")
def _reject_override_update(_mapper, _connection, target: CategoryOverride) -> None:
    # Override history is append-only.
    raise ValueError(f"CategoryOverride {target.id} is immutable")


__all__ = [
    "Base",
    "CategoryOverride",
    "ImportJob",
    "LedgerAccount",
    "LedgerCategory",
    "LedgerTransaction",
    "VendorRule",
]
