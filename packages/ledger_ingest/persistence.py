"""Row-level writes for ledger transactions.

Inserts run inside a SAVEPOINT so a uniqueness violation on
``(account_id, fingerprint_sha256)`` (two importers racing on the same
statement) rolls back only that row; the caller's transaction survives and
the row is reported as a duplicate.
"""

from __future__ import annotations

from ledger_db.models import LedgerTransaction
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .classifier import RuleMatch
from .logging_setup import get_logger
from .models import DraftTransaction

_logger = get_logger("ledger_ingest.persistence")


def insert_transaction(
    session: Session,
    *,
    account_id: int,
    import_job_id: int | None,
    draft: DraftTransaction,
    fingerprint: str,
    match: RuleMatch | None = None,
    is_transfer: bool = False,
) -> LedgerTransaction | None:
    """Insert one draft; return the stored row or ``None`` on a fingerprint clash."""

    row = LedgerTransaction(
        account_id=account_id,
        import_job_id=import_job_id,
        date=draft.date,
        amount=draft.amount,
        direction=draft.direction,
        raw_vendor=draft.raw_vendor,
        normalized_vendor=draft.normalized_vendor,
        description=draft.description,
        type_label=draft.type_label,
        meta=dict(draft.metadata),
        category=match.category if match else None,
        confidence=match.confidence if match else None,
        matched_rule_id=match.rule_id if match else None,
        is_transfer=is_transfer,
        is_reviewed=False,
        fingerprint_sha256=fingerprint,
    )
    try:
        with session.begin_nested():
            session.add(row)
    except IntegrityError:
        _logger.info(
            "persistence:insert_conflict account_id=%s fingerprint=%s",
            account_id,
            fingerprint[:12],
        )
        return None
    return row


__all__ = ["insert_transaction"]
