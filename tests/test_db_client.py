from __future__ import annotations

from datetime import date

import pytest
from ledger_db.client import get_engine, reset_engine, session_scope
from sqlalchemy.exc import IntegrityError

from tests.helpers.db import ING_ACCOUNT_ID, add_transaction, transactions_for


def _row(session, vendor: str, *, account_id: int = ING_ACCOUNT_ID):
    return add_transaction(
        session,
        account_id=account_id,
        when=date(2023, 12, 1),
        amount=1000,
        direction="debit",
        vendor=vendor,
    )


def test_missing_database_url_is_an_error() -> None:
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        get_engine()


def test_engine_is_bound_to_one_url(db_url: str, tmp_path) -> None:
    assert get_engine() is get_engine(database_url=db_url)
    other = f"sqlite+pysqlite:///{tmp_path / 'other.sqlite3'}"

    with pytest.raises(RuntimeError, match="different DATABASE_URL"):
        get_engine(database_url=other)

    reset_engine()
    assert str(get_engine(database_url=other).url) == other


def test_sqlite_savepoint_rollback_keeps_the_outer_transaction(db_url: str) -> None:
    with session_scope() as session:
        _row(session, "REWE Markt")
        nested = session.begin_nested()
        _row(session, "EDEKA Center")
        nested.rollback()

    with session_scope() as session:
        assert [t.normalized_vendor for t in transactions_for(session, ING_ACCOUNT_ID)] == ["REWE"]


def test_sqlite_enforces_foreign_keys(db_url: str) -> None:
    with pytest.raises(IntegrityError):
        with session_scope() as session:
            _row(session, "REWE Markt", account_id=999)
