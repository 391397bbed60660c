from __future__ import annotations

import json
from typing import Any

import pytest
from ledger_ingest.categorize import FallbackClassifier, default_fallback
from ledger_ingest.prompting import build_response_format, build_user_content

from tests.helpers.openai_stub import OpenAIStub

TAXONOMY: tuple[dict[str, str | None], ...] = (
    {"code": "Freizeit", "display_name": "Freizeit", "parent_code": None},
    {"code": "Urlaub", "display_name": "Urlaub", "parent_code": "Freizeit"},
    {"code": "Einkommen", "display_name": "Einkommen", "parent_code": None},
    {"code": "Gehalt", "display_name": "Gehalt", "parent_code": "Einkommen"},
    {"code": "Sonstiges", "display_name": "Sonstiges", "parent_code": None},
)

HOTEL: dict[str, Any] = {
    "date": "2023-12-18",
    "amount": 11027,
    "direction": "debit",
    "raw_vendor": "HOTEL LONDON, London",
    "normalized_vendor": "HOTEL LONDON",
    "description": "London",
}


def _classifier(stub: OpenAIStub, **kwargs: Any) -> FallbackClassifier:
    return FallbackClassifier(TAXONOMY, client=stub, **kwargs)


def test_known_category_is_returned() -> None:
    stub = OpenAIStub(lambda tx: "Urlaub" if "HOTEL" in tx["normalized_vendor"] else "Sonstiges")

    assert _classifier(stub).classify(HOTEL) == "Urlaub"
    assert len(stub.calls) == 1


def test_answer_is_matched_case_insensitively() -> None:
    stub = OpenAIStub(lambda _tx: "  urlaub ")

    assert _classifier(stub).classify(HOTEL) == "Urlaub"


def test_request_carries_timeout_model_and_strict_schema() -> None:
    stub = OpenAIStub(lambda _tx: "Urlaub")

    _classifier(stub, model="test-model", timeout=2.5).classify(HOTEL)

    call = stub.calls[0]
    assert call["model"] == "test-model"
    assert call["timeout"] == 2.5
    fmt = call["text"]["format"]
    assert fmt["strict"] is True
    assert fmt["schema"]["properties"]["category"]["enum"] == [c["code"] for c in TAXONOMY]
    assert "Urlaub" in call["input"]


def test_category_outside_taxonomy_yields_none() -> None:
    stub = OpenAIStub(lambda _tx: "Casino")

    assert _classifier(stub).classify(HOTEL) is None


@pytest.mark.parametrize("exc", [TimeoutError("read timed out"), ConnectionError("reset")])
def test_transport_failures_degrade_to_none(exc: BaseException) -> None:
    stub = OpenAIStub(lambda _tx: exc)

    assert _classifier(stub).classify(HOTEL) is None
    # Never retried.
    assert len(stub.calls) == 1


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", json.dumps({"reasoning": "no category"})])
def test_malformed_output_yields_none(raw: str) -> None:
    stub = OpenAIStub(raw_output=raw)

    assert _classifier(stub).classify(HOTEL) is None


def test_timeout_and_model_come_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGER_FALLBACK_TIMEOUT", "3")
    monkeypatch.setenv("LEDGER_FALLBACK_MODEL", "env-model")

    clf = _classifier(OpenAIStub())

    assert clf.timeout == 3.0
    assert clf.model == "env-model"


def test_default_fallback_needs_an_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    assert default_fallback(TAXONOMY) is None

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert isinstance(default_fallback(TAXONOMY), FallbackClassifier)
    assert default_fallback(()) is None


def test_user_content_embeds_taxonomy_and_one_transaction() -> None:
    content = build_user_content(HOTEL, TAXONOMY)

    assert "  • Freizeit" in content
    assert "    - Urlaub" in content
    start = content.index("BEGIN_TRANSACTION\n") + len("BEGIN_TRANSACTION\n")
    end = content.index("\nEND_TRANSACTION")
    assert json.loads(content[start:end]) == HOTEL


def test_response_format_requires_codes() -> None:
    with pytest.raises(ValueError):
        build_response_format([{"code": "  "}])
