"""Category lookups over ``ledger_categories``.

Categories are identified by ``code``; the seeded taxonomy uses the German
display name as the code (``"Supermarkt"``, ``"Umbuchungen"``).
"""

from __future__ import annotations

import os
from typing import TypedDict

from ledger_db.models import LedgerCategory
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import BadInputError

TRANSFER_CATEGORY_ENV = "LEDGER_TRANSFER_CATEGORY"
DEFAULT_TRANSFER_CATEGORY = "Umbuchungen"


class CategoryDict(TypedDict):
    code: str
    display_name: str
    parent_code: str | None


def list_categories(session: Session) -> list[CategoryDict]:
    """Return active categories ordered for display (parents before children)."""

    rows = session.execute(
        select(LedgerCategory)
        .where(LedgerCategory.is_active.is_(True))
        .order_by(LedgerCategory.sort_order.asc().nulls_last(), LedgerCategory.code.asc())
    ).scalars()
    return [
        {"code": r.code, "display_name": r.display_name, "parent_code": r.parent_code}
        for r in rows
    ]


def find_category(session: Session, code: str) -> LedgerCategory | None:
    row = session.get(LedgerCategory, code)
    if row is None or not row.is_active:
        return None
    return row


def require_category(session: Session, code: str) -> LedgerCategory:
    """Return the active category ``code`` or raise :class:`BadInputError`."""

    row = find_category(session, code.strip())
    if row is None:
        raise BadInputError(f"Unknown category: {code!r}")
    return row


def transfer_category_code(session: Session) -> str | None:
    """Return the category assigned to paired transfers, if it exists."""

    code = os.getenv(TRANSFER_CATEGORY_ENV) or DEFAULT_TRANSFER_CATEGORY
    row = find_category(session, code)
    return row.code if row is not None else None


__all__ = [
    "CategoryDict",
    "DEFAULT_TRANSFER_CATEGORY",
    "find_category",
    "list_categories",
    "require_category",
    "transfer_category_code",
]
