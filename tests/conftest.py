"""Pytest configuration for test isolation.

Every test starts without a bound engine and without ambient configuration:
the shared engine in ``ledger_db.client`` is module state, and a developer's
``.env`` or shell may carry ``DATABASE_URL``/``OPENAI_API_KEY``. A real key
would let the importer build an OpenAI client and reach the network, so the
key is removed for every test; tests that exercise the fallback inject a stub
client explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from ledger_db.client import reset_engine

from tests.helpers.db import bootstrap_sqlite_db

_AMBIENT_ENV = (
    "DATABASE_URL",
    "OPENAI_API_KEY",
    "LEDGER_FALLBACK_MODEL",
    "LEDGER_FALLBACK_TIMEOUT",
    "LEDGER_FALLBACK_CONCURRENCY",
    "LEDGER_TRANSFER_CATEGORY",
    "LEDGER_INGEST_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _AMBIENT_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Seeded SQLite ledger in the test's tmp dir, exported as ``DATABASE_URL``."""

    url = bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
    monkeypatch.setenv("DATABASE_URL", url)
    return url


@pytest.fixture(autouse=True)
def _package_logs_reach_caplog(monkeypatch: pytest.MonkeyPatch) -> None:
    # Entry points disable propagation once they configure logging.
    monkeypatch.setattr(logging.getLogger("ledger_ingest"), "propagate", True)
