from __future__ import annotations

from datetime import date

import pytest
from ledger_ingest.errors import BadInputError
from ledger_ingest.ingest.adapters import parse_ing_csv, parse_ing_text

from tests.helpers.statements import ING_CSV, ING_TEXT


def test_ing_csv_rows_in_document_order() -> None:
    parsed = parse_ing_csv(ING_CSV)

    assert [t.raw_vendor for t in parsed.transactions] == [
        "REWE Markt GmbH",
        "DKB AG",
        "Arbeitgeber GmbH",
        "Hausverwaltung Schmidt",
    ]
    rewe = parsed.transactions[0]
    assert rewe.date == date(2023, 12, 28)
    assert (rewe.amount, rewe.direction) == (4567, "debit")
    assert rewe.normalized_vendor == "REWE"
    assert rewe.description == "REWE SAGT DANKE 12345"
    assert rewe.type_label == "Lastschrift"
    assert rewe.metadata == {"value_date": "2023-12-28", "balance": "1.234,56"}

    salary = parsed.transactions[2]
    assert (salary.amount, salary.direction) == (250000, "credit")


def test_ing_csv_preamble_becomes_statement_metadata() -> None:
    parsed = parse_ing_csv(ING_CSV)

    assert parsed.metadata == {
        "account_number": "DE12500105170123456789",
        "statement_period": "01.12.2023 - 31.12.2023",
    }


def test_ing_csv_bad_row_is_a_warning_and_parsing_continues() -> None:
    parsed = parse_ing_csv(ING_CSV)

    assert len(parsed.warnings) == 1
    warning = parsed.warnings[0]
    assert "Kaputt" in warning.raw
    assert "columns" in warning.message
    assert ING_CSV.splitlines()[warning.line - 1] == warning.raw
    # The rows after the broken one are still there.
    assert parsed.transactions[-1].raw_vendor == "Hausverwaltung Schmidt"


def test_ing_csv_drops_closing_balance_rows_silently() -> None:
    parsed = parse_ing_csv(ING_CSV)

    assert all(t.type_label != "Abschluss" for t in parsed.transactions)


def test_ing_csv_without_header_is_rejected() -> None:
    with pytest.raises(BadInputError):
        parse_ing_csv("IBAN;DE12\n28.12.2023;28.12.2023;REWE\n")


def test_ing_text_start_line_and_continuations() -> None:
    parsed = parse_ing_text(ING_TEXT)

    assert len(parsed.transactions) == 3
    assert parsed.warnings == ()

    first = parsed.transactions[0]
    assert first.date == date(2017, 12, 1)
    assert (first.amount, first.direction) == (48455, "debit")
    assert first.raw_vendor == "ALTE LEIPZIGER BAUSPAR AG"
    assert first.type_label == "Lastschrift"
    assert first.metadata == {
        "value_date": "2017-12-01",
        "mandat": "000000019455825",
        "referenz": "0000069192540",
    }
    assert first.description == "00006919254 DEZEMBER 2017VERTRAG: 0 248651201"


def test_ing_text_statement_metadata_and_labels() -> None:
    parsed = parse_ing_text(ING_TEXT)

    assert parsed.metadata == {
        "account_number": "5417032342",
        "statement_period": "Dezember 2017",
    }
    salary, settlement = parsed.transactions[1], parsed.transactions[2]
    assert (salary.type_label, salary.raw_vendor) == ("Gutschrift", "Arbeitgeber GmbH")
    assert (salary.amount, salary.direction) == (250000, "credit")
    assert salary.description == "Gehalt November"
    assert settlement.raw_vendor == "DKB AG Kreditkarte"
    assert settlement.description == "Kreditkarte 4930 Abrechnung"


def test_ing_text_impossible_date_becomes_a_warning() -> None:
    text = ING_TEXT.replace("04.12.2017 Gutschrift", "31.02.2017 Gutschrift")

    parsed = parse_ing_text(text)

    assert [t.raw_vendor for t in parsed.transactions] == [
        "ALTE LEIPZIGER BAUSPAR AG",
        "DKB AG Kreditkarte",
    ]
    assert len(parsed.warnings) == 1
    assert parsed.warnings[0].raw.startswith("31.02.2017 Gutschrift")


def test_ing_text_amount_without_thousands_separator_starts_a_booking() -> None:
    text = ING_TEXT.replace("2.500,00", "2500,00")

    parsed = parse_ing_text(text)

    assert parsed.warnings == ()
    assert [t.raw_vendor for t in parsed.transactions] == [
        "ALTE LEIPZIGER BAUSPAR AG",
        "Arbeitgeber GmbH",
        "DKB AG Kreditkarte",
    ]
    first, salary = parsed.transactions[0], parsed.transactions[1]
    assert first.metadata["value_date"] == "2017-12-01"
    assert (salary.amount, salary.direction) == (250000, "credit")
    assert salary.metadata == {"value_date": "2017-12-04"}
    assert salary.description == "Gehalt November"


def test_ing_text_short_statement_keeps_every_booking() -> None:
    text = (
        "01.12.2017 Lastschrift REWE Markt   -12,00\n"
        "04.12.2017 Gutschrift Arbeitgeber GmbH   2500,00\n"
        "Gehalt\n"
    )

    parsed = parse_ing_text(text)

    assert [(t.raw_vendor, t.amount, t.direction) for t in parsed.transactions] == [
        ("REWE Markt", 1200, "debit"),
        ("Arbeitgeber GmbH", 250000, "credit"),
    ]
    assert parsed.transactions[0].description == ""
    assert parsed.transactions[1].description == "Gehalt"
