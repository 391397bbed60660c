# ruff: noqa: I001
"""Seed default accounts, the German category taxonomy, and vendor rules.

Revision ID: 0002_seed_defaults
Revises: 0001_ledger_core
Create Date: 2026-10-19

Seed data lives in ``packages/ledger_ingest/seeds/ledger_defaults.v1.json`` so
the migration and ``ledger-ingest seed`` stay in sync.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_seed_defaults"
down_revision: str | None = "0001_ledger_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# repo root: libs/db/alembic/versions/<this file> → ../../../..
_SEED_FILE = (
    Path(__file__).resolve().parents[4]
    / "packages"
    / "ledger_ingest"
    / "seeds"
    / "ledger_defaults.v1.json"
)


def _load() -> dict[str, Any]:
    with _SEED_FILE.open("r", encoding="utf-8") as f:
        return json.load(f)


def upgrade() -> None:
    data = _load()

    op.bulk_insert(
        sa.table(
            "ledger_accounts",
            sa.column("name", sa.Text()),
            sa.column("kind", sa.Text()),
        ),
        [{"name": a["name"], "kind": a["kind"]} for a in data["accounts"]],
    )

    categories = sa.table(
        "ledger_categories",
        sa.column("code", sa.Text()),
        sa.column("display_name", sa.Text()),
        sa.column("parent_code", sa.Text()),
        sa.column("sort_order", sa.Integer()),
    )
    parents = [
        {"code": p["code"], "display_name": p["code"], "parent_code": None, "sort_order": i}
        for i, p in enumerate(data["categories"])
    ]
    children = [
        {
            "code": c["code"],
            "display_name": c["code"],
            "parent_code": p["code"],
            "sort_order": i * 100 + j,
        }
        for i, p in enumerate(data["categories"])
        for j, c in enumerate(p.get("children") or [])
    ]
    op.bulk_insert(categories, parents)
    op.bulk_insert(categories, children)

    op.bulk_insert(
        sa.table(
            "ledger_vendor_rules",
            sa.column("match_pattern", sa.Text()),
            sa.column("match_type", sa.Text()),
            sa.column("normalized_vendor", sa.Text()),
            sa.column("category", sa.Text()),
            sa.column("priority", sa.Integer()),
        ),
        [
            {
                "match_pattern": r["match_pattern"],
                "match_type": r["match_type"],
                "normalized_vendor": r["match_pattern"],
                "category": r["category"],
                "priority": r["priority"],
            }
            for r in data["rules"]
        ],
    )


def downgrade() -> None:
    op.execute("DELETE FROM ledger_vendor_rules WHERE source = 'manual'")
    op.execute("DELETE FROM ledger_categories WHERE parent_code IS NOT NULL")
    op.execute("DELETE FROM ledger_categories")
    op.execute("DELETE FROM ledger_accounts")
