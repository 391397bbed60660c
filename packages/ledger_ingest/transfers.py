"""Cross-account transfer detection and pairing.

A transfer is one internal money movement seen from both sides: a debit in
one account and a credit of the same amount in another, a few days apart
(for example, the checking account paying the credit-card bill). Paired
rows share a ``transfer_group`` UUID, carry ``is_transfer=True`` and, when
the transfer category exists, are recategorized to it so downstream
expense/income aggregation can skip them. Reviewed rows keep their category.
Confidence is left unchanged.

A row belongs to at most one group; :func:`find_pair` never returns a row
that is already grouped and :func:`pair` refuses to regroup.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import date, timedelta

from ledger_db.models import LedgerTransaction
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger

TRANSFER_WINDOW_DAYS = 5

# Casefolded; matched as substrings of the vendor or the description.
_TRANSFER_KEYWORDS: tuple[str, ...] = (
    "übertrag",
    "uebertrag",
    "umbuchung",
    "kreditkarte",
    "lastschrift",
)

_OPPOSITE = {"debit": "credit", "credit": "debit"}

_logger = get_logger("ledger_ingest.transfers")


def detect_transfer_keywords(vendor: str | None, description: str | None) -> bool:
    """True when either text mentions an internal-movement keyword."""

    for text in (vendor, description):
        if not text:
            continue
        folded = text.casefold()
        if any(k in folded for k in _TRANSFER_KEYWORDS):
            return True
    return False


def is_transfer_candidate(
    vendor: str | None, description: str | None, metadata: Mapping[str, str] | None = None
) -> bool:
    """Keyword detection, or the parser's ``is_transfer=true`` hint."""

    if metadata and str(metadata.get("is_transfer", "")).lower() == "true":
        return True
    return detect_transfer_keywords(vendor, description)


def find_pair(
    session: Session,
    *,
    account_id: int,
    date: date,
    amount: int,
    direction: str,
    exclude_id: int | None = None,
) -> LedgerTransaction | None:
    """Return the closest-dated ungrouped counterpart in another account.

    Candidates: different account, same amount, opposite direction, no
    transfer group yet, booked within ``TRANSFER_WINDOW_DAYS`` of ``date``.
    Ties on distance go to the lower id.
    """

    opposite = _OPPOSITE.get(direction)
    if opposite is None:
        raise ValueError(f"invalid direction: {direction!r}")
    window = timedelta(days=TRANSFER_WINDOW_DAYS)
    stmt = select(LedgerTransaction).where(
        LedgerTransaction.account_id != account_id,
        LedgerTransaction.amount == amount,
        LedgerTransaction.direction == opposite,
        LedgerTransaction.transfer_group.is_(None),
        LedgerTransaction.date >= date - window,
        LedgerTransaction.date <= date + window,
    )
    if exclude_id is not None:
        stmt = stmt.where(LedgerTransaction.id != exclude_id)
    candidates = list(session.execute(stmt).scalars())
    if not candidates:
        return None
    return min(candidates, key=lambda t: (abs((t.date - date).days), t.id))


def pair(
    session: Session,
    a: LedgerTransaction,
    b: LedgerTransaction,
    *,
    transfer_category: str | None = None,
) -> uuid.UUID:
    """Link ``a`` and ``b`` into a new transfer group and return its id.

    Raises
    ------
    ValueError
        If either row is already grouped or the two rows do not form a
        transfer (same account, amount mismatch, same direction, or dates
        outside the window).
    """

    if a.transfer_group is not None or b.transfer_group is not None:
        raise ValueError("transaction already belongs to a transfer group")
    if a.account_id == b.account_id:
        raise ValueError("transfer sides must be in different accounts")
    if a.amount != b.amount:
        raise ValueError("transfer sides must have equal amounts")
    if _OPPOSITE.get(a.direction) != b.direction:
        raise ValueError("transfer sides must have opposite directions")
    if abs((a.date - b.date).days) > TRANSFER_WINDOW_DAYS:
        raise ValueError("transfer sides are too far apart in time")

    group = uuid.uuid4()
    for tx in (a, b):
        tx.transfer_group = group
        tx.is_transfer = True
        if transfer_category is not None and not tx.is_reviewed:
            tx.category = transfer_category
            tx.matched_rule_id = None
    session.flush()
    _logger.info(
        "transfers:paired group=%s a=%s b=%s amount=%d", group, a.id, b.id, a.amount
    )
    return group


def unpair(session: Session, tx: LedgerTransaction) -> list[LedgerTransaction]:
    """Dissolve ``tx``'s transfer group; return the partner rows that were released.

    Partners keep ``is_transfer`` only when their own text or parser hint
    still marks them as a transfer.
    """

    if tx.transfer_group is None:
        return []
    partners = list(
        session.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.transfer_group == tx.transfer_group,
                LedgerTransaction.id != tx.id,
            )
        ).scalars()
    )
    tx.transfer_group = None
    for p in partners:
        p.transfer_group = None
        p.is_transfer = is_transfer_candidate(p.normalized_vendor, p.description, p.meta)
    return partners


__all__ = [
    "TRANSFER_WINDOW_DAYS",
    "detect_transfer_keywords",
    "find_pair",
    "is_transfer_candidate",
    "pair",
    "unpair",
]
