"""Fingerprinting and duplicate lookup for ledger transactions.

A transaction's identity within an account is the SHA-256 of its account,
booking date, amount, direction and lowercased trimmed normalized vendor.
Descriptions, metadata and type labels do not participate, so re-exports
of the same statement with reworded memo lines still collapse.

Public surface:
- ``compute_fingerprint``: stable hex digest over the identity fields.
- ``is_duplicate``: whether a fingerprint is already stored for an account.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date

from ledger_db.models import LedgerTransaction
from sqlalchemy import select
from sqlalchemy.orm import Session


def compute_fingerprint(
    *,
    account_id: int,
    date: date,
    amount: int,
    direction: str,
    normalized_vendor: str,
) -> str:
    """Compute a stable SHA-256 fingerprint over the identity fields.

    The payload is a compact JSON array so field boundaries can never blur
    (``"1" + "23"`` vs ``"12" + "3"``).
    """

    payload = [
        int(account_id),
        date.isoformat(),
        int(amount),
        direction.strip().lower(),
        (normalized_vendor or "").strip().lower(),
    ]
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def is_duplicate(session: Session, *, account_id: int, fingerprint: str) -> bool:
    """Return True when ``fingerprint`` already exists for ``account_id``.

    Rows flushed earlier in the same session are visible, so a statement
    that repeats an identical line counts the repeat as a duplicate.
    """

    stmt = (
        select(LedgerTransaction.id)
        .where(
            LedgerTransaction.account_id == account_id,
            LedgerTransaction.fingerprint_sha256 == fingerprint,
        )
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none() is not None


__all__ = ["compute_fingerprint", "is_duplicate"]
