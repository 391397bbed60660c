from __future__ import annotations

from datetime import date

import pytest
from ledger_ingest.normalizers import (
    extract_paypal_sub_vendor,
    format_amount,
    normalize_vendor,
    parse_amount,
    parse_date,
    split_signed,
    split_vendor_location,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.234,56 -", -123456),
        ("1.234,56 +", 123456),
        ("-1.234,56", -123456),
        ("-11,5", -1150),
        ("42,05", 4205),
        ("2.500,00 €", 250000),
        ("1.286,60 EUR", 128660),
        ("7", 700),
    ],
)
def test_parse_amount_german_notation(raw: str, expected: int) -> None:
    assert parse_amount(raw) == expected


def test_trailing_plus_overrides_leading_minus() -> None:
    # Override, not addition: the result is positive, not zero.
    assert parse_amount("-12,00 +") == 1200


def test_parse_amount_rejects_text_without_digits() -> None:
    with pytest.raises(ValueError):
        parse_amount("EUR")
    with pytest.raises(ValueError):
        parse_amount("  ")


def test_format_then_parse_returns_the_same_minor_units() -> None:
    for n in (0, 1, 99, 100, -1, -4567, 123456, -98765432, 100000000):
        assert parse_amount(format_amount(n)) == n


def test_format_amount_groups_thousands() -> None:
    assert format_amount(-123456) == "-1.234,56"
    assert format_amount(5, symbol="EUR") == "0,05 EUR"


def test_split_signed_moves_sign_into_direction() -> None:
    assert split_signed(-4567) == (4567, "debit")
    assert split_signed(250000) == (250000, "credit")
    assert split_signed(0) == (0, "credit")


def test_parse_date_two_and_four_digit_years() -> None:
    assert parse_date("01.12.2017") == date(2017, 12, 1)
    assert parse_date("02.01.24") == date(2024, 1, 2)
    assert parse_date("31.12.49") == date(2049, 12, 31)
    assert parse_date("01.01.50") == date(1950, 1, 1)
    assert parse_date(" 5.3.2021 ") == date(2021, 3, 5)


@pytest.mark.parametrize("raw", ["31.02.2024", "2024-01-02", "13.13.13", ""])
def test_parse_date_rejects_invalid_values(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_date(raw)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("PAYPAL *SPOTIFY", "SPOTIFY"),
        ("EDEKA MARTENS, Ammersbek", "EDEKA"),
        ("AMZN Mktp DE", "AMAZON"),
        ("Amazon Prime*1A2B3", "AMAZON"),
        ("McDonald's Hamburg", "MCDONALDS"),
        ("DB Vertrieb GmbH", "DEUTSCHE BAHN"),
        ("SQ *CAFE  KRONE##", "CAFE KRONE"),
        ("Hausverwaltung   Schmidt", "HAUSVERWALTUNG SCHMIDT"),
        ("Bäckerei ‘Kunz’", "BÄCKEREI KUNZ"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_vendor(raw: str | None, expected: str) -> None:
    assert normalize_vendor(raw) == expected


def test_only_the_first_processor_prefix_is_stripped() -> None:
    assert normalize_vendor("PAYPAL *SQ *BAKERY") == "SQ *BAKERY"


def test_split_vendor_location() -> None:
    assert split_vendor_location("HOTEL LONDON, London") == ("HOTEL LONDON", "London")
    assert split_vendor_location("PAYPAL *NETFLIX, 35314369001") == ("PayPal", "NETFLIX")
    assert split_vendor_location("AMZN Mktp DE, Luxembourg") == ("Amazon", "")
    assert split_vendor_location("Lastschrift") == ("Lastschrift", "")


def test_extract_paypal_sub_vendor() -> None:
    assert extract_paypal_sub_vendor("PAYPAL *spotify AB123") == "SPOTIFY"
    assert extract_paypal_sub_vendor("REWE Markt") is None
