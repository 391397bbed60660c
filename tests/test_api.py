from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient
from ledger_db.client import session_scope
from ledger_ingest import importer as importer_mod
from ledger_ingest.api import create_app
from sqlalchemy.exc import OperationalError

from tests.helpers.db import DKB_ACCOUNT_ID, ING_ACCOUNT_ID, transactions_for
from tests.helpers.statements import DKB_CSV, ING_CSV


@pytest.fixture()
def client(db_url: str) -> TestClient:
    return TestClient(create_app())


def _upload(name: str, text: str) -> dict:
    return {"file": (name, text.encode("utf-8"), "text/csv")}


def test_parse_returns_the_parsed_statement(client: TestClient) -> None:
    resp = client.post(
        "/imports/parse", files=_upload("Umsatzanzeige.csv", ING_CSV), data={"account_id": "1"}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["account_id"] == 1
    assert body["filename"] == "Umsatzanzeige.csv"
    assert [t["amount"] for t in body["transactions"]] == [4567, 50000, 250000, 95000]
    assert body["transactions"][0] == {
        "date": "2023-12-28",
        "amount": 4567,
        "direction": "debit",
        "raw_vendor": "REWE Markt GmbH",
        "normalized_vendor": "REWE",
        "description": "REWE SAGT DANKE 12345",
        "type_label": "Lastschrift",
        "metadata": {"value_date": "2023-12-28", "balance": "1.234,56"},
    }
    assert len(body["warnings"]) == 1
    assert body["metadata"]["issuer"] == "ing"


def test_parse_unrecognized_format_is_a_client_error_with_hint(client: TestClient) -> None:
    resp = client.post(
        "/imports/parse",
        files=_upload("export.csv", "Datum;Betrag\n01.01.2024;1,00\n"),
        data={"account_id": "1"},
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "error": {
            "code": "unrecognized_format",
            "message": "Could not detect bank type",
            "hint": "Please specify bank=ing or bank=dkb",
            "retryable": False,
        }
    }


def test_parse_with_explicit_bank(client: TestClient) -> None:
    resp = client.post(
        "/imports/parse",
        files=_upload("export.csv", DKB_CSV),
        data={"account_id": "2", "bank": "dkb"},
    )

    assert resp.status_code == 200
    assert resp.json()["metadata"]["account_number"] == "5310XXXXXXXX1234"


def test_missing_or_unsupported_file_is_bad_input(client: TestClient) -> None:
    missing = client.post("/imports/parse", data={"account_id": "1"})
    unsupported = client.post(
        "/imports/parse", files=_upload("auszug.xlsx", "x"), data={"account_id": "1"}
    )

    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "bad_input"
    assert unsupported.status_code == 400
    assert "Unsupported file type" in unsupported.json()["error"]["message"]


def test_unreadable_pdf_is_a_retryable_server_error(client: TestClient) -> None:
    resp = client.post(
        "/imports/parse",
        files={"file": ("auszug.pdf", b"%PDF-1.4 broken", "application/pdf")},
        data={"account_id": "1"},
    )

    assert resp.status_code == 502
    assert resp.json()["error"]["retryable"] is True


def test_import_then_rollback(client: TestClient) -> None:
    resp = client.post(
        "/imports", files=_upload("Umsatzanzeige.csv", ING_CSV), data={"account_id": str(ING_ACCOUNT_ID)}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["counts"]["inserted"] == 4

    again = client.post(
        "/imports", files=_upload("Umsatzanzeige.csv", ING_CSV), data={"account_id": str(ING_ACCOUNT_ID)}
    )
    assert again.json()["counts"]["duplicates"] == 4

    rolled = client.post(f"/imports/{body['job_id']}/rollback")
    assert rolled.status_code == 200
    assert rolled.json() == {"job_id": body["job_id"], "status": "rolled_back", "deleted": 4}

    missing = client.post("/imports/424242/rollback")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"


def test_batch_import_returns_counts(client: TestClient) -> None:
    payload = {
        "account_id": DKB_ACCOUNT_ID,
        "transactions": [
            {
                "date": "2024-01-05",
                "amount": 1299,
                "direction": "debit",
                "raw_vendor": "NETFLIX.COM",
                "description": "",
                "metadata": {"status": "booked"},
            },
            {
                "date": "2024-01-06",
                "amount": 2000,
                "direction": "credit",
                "raw_vendor": "Erstattung Unbekannt",
            },
        ],
    }

    first = client.post("/imports/batch", json=payload)
    second = client.post("/imports/batch", json=payload)

    assert first.status_code == 200
    assert first.json() == {
        "total": 2,
        "inserted": 2,
        "duplicates": 0,
        "classified": 1,
        "transfers": 0,
    }
    assert second.json()["duplicates"] == 2
    assert second.json()["inserted"] == 0


def test_batch_validation_rejects_negative_amounts(client: TestClient) -> None:
    resp = client.post(
        "/imports/batch",
        json={
            "account_id": 1,
            "transactions": [
                {"date": "2024-01-05", "amount": -5, "direction": "debit", "raw_vendor": "X"}
            ],
        },
    )

    assert resp.status_code == 422


def test_category_correction(client: TestClient) -> None:
    client.post(
        "/imports", files=_upload("Umsatzanzeige.csv", ING_CSV), data={"account_id": str(ING_ACCOUNT_ID)}
    )
    with session_scope() as session:
        tx_id = next(
            t.id for t in transactions_for(session, ING_ACCOUNT_ID) if t.raw_vendor == "Arbeitgeber GmbH"
        )

    ok = client.post(f"/transactions/{tx_id}/category", json={"category": "Gehalt", "actor": "anna"})
    unknown = client.post(f"/transactions/{tx_id}/category", json={"category": "Lotto"})
    missing = client.post("/transactions/999/category", json={"category": "Gehalt"})

    assert ok.status_code == 200
    assert ok.json()["category"] == "Gehalt"
    assert ok.json()["override_id"] is not None
    assert ok.json()["learned_rule_id"] is None
    assert unknown.status_code == 400
    assert missing.status_code == 404


def _database_gone(*_args: Any, **_kwargs: Any):
    raise OperationalError("INSERT INTO ledger_transactions", {}, Exception("database is locked"))


def test_database_failure_is_a_retryable_server_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(importer_mod, "import_transactions_batch", _database_gone)

    resp = client.post(
        "/imports", files=_upload("Umsatzanzeige.csv", ING_CSV), data={"account_id": str(ING_ACCOUNT_ID)}
    )

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert (error["code"], error["retryable"]) == ("upstream_failed", True)
    assert error["hint"] == "Retry the upload"
