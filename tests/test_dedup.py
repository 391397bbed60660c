from __future__ import annotations

from datetime import date

from ledger_db.client import session_scope
from ledger_ingest.duplicates import compute_fingerprint, is_duplicate
from ledger_ingest.models import DraftTransaction
from ledger_ingest.persistence import insert_transaction

from tests.helpers.db import ING_ACCOUNT_ID, add_transaction, transactions_for

BASE = {
    "account_id": ING_ACCOUNT_ID,
    "date": date(2024, 1, 5),
    "amount": 1299,
    "direction": "debit",
    "normalized_vendor": "NETFLIX",
}


def test_fingerprint_is_stable_and_ignores_case_and_padding() -> None:
    a = compute_fingerprint(**BASE)
    b = compute_fingerprint(**{**BASE, "direction": " DEBIT ", "normalized_vendor": "  netflix"})

    assert a == b
    assert len(a) == 64


def test_every_identity_field_changes_the_fingerprint() -> None:
    base = compute_fingerprint(**BASE)
    variants = [
        {"account_id": 2},
        {"date": date(2024, 2, 5)},
        {"amount": 1300},
        {"direction": "credit"},
        {"normalized_vendor": "SPOTIFY"},
    ]

    assert all(compute_fingerprint(**{**BASE, **v}) != base for v in variants)


def test_field_boundaries_do_not_blur() -> None:
    left = compute_fingerprint(**{**BASE, "account_id": 1, "amount": 23})
    right = compute_fingerprint(**{**BASE, "account_id": 12, "amount": 3})

    assert left != right


def test_is_duplicate_is_scoped_to_the_account(db_url: str) -> None:
    with session_scope() as session:
        row = add_transaction(
            session,
            account_id=ING_ACCOUNT_ID,
            when=date(2024, 1, 5),
            amount=1299,
            direction="debit",
            vendor="NETFLIX",
        )
        fp = row.fingerprint_sha256

        assert is_duplicate(session, account_id=ING_ACCOUNT_ID, fingerprint=fp)
        assert not is_duplicate(session, account_id=2, fingerprint=fp)


def test_insert_race_loser_is_reported_without_breaking_the_transaction(db_url: str) -> None:
    draft = DraftTransaction(
        date=date(2024, 1, 5),
        amount=1299,
        direction="debit",
        raw_vendor="NETFLIX.COM",
        normalized_vendor="NETFLIX.COM",
    )
    fp = compute_fingerprint(
        account_id=ING_ACCOUNT_ID,
        date=draft.date,
        amount=draft.amount,
        direction=draft.direction,
        normalized_vendor=draft.normalized_vendor,
    )

    with session_scope() as session:
        first = insert_transaction(
            session, account_id=ING_ACCOUNT_ID, import_job_id=None, draft=draft, fingerprint=fp
        )
        # A concurrent importer that missed the duplicate check hits the constraint.
        second = insert_transaction(
            session, account_id=ING_ACCOUNT_ID, import_job_id=None, draft=draft, fingerprint=fp
        )
        other = insert_transaction(
            session,
            account_id=ING_ACCOUNT_ID,
            import_job_id=None,
            draft=DraftTransaction(
                date=date(2024, 2, 5),
                amount=1299,
                direction="debit",
                raw_vendor="NETFLIX.COM",
                normalized_vendor="NETFLIX.COM",
            ),
            fingerprint=fp[::-1],
        )

    assert first is not None
    assert second is None
    assert other is not None
    with session_scope() as session:
        assert len(transactions_for(session, ING_ACCOUNT_ID)) == 2
