"""Adapter for DKB Miles & More credit-card PDF statements (extracted text).

Booking lines carry a receipt date and a booking date (or only a booking
date for fees and payments), the vendor, and an amount with a trailing sign::

    29.12.23 02.01.24  EDEKA MARTENS, Ammersbek            42,05 -
                       Prämienmeilen                          +21
             15.01.24  Lastschrift                        1.286,60 +

The booking date is the transaction date; the receipt date is kept in
metadata.
"""

from __future__ import annotations

import re
from datetime import date

from ...models import DraftTransaction, ParsedStatement
from ...normalizers import parse_amount, parse_date, split_vendor_location
from .free_text import FreeTextParser, OpenDraft


class DkbStatementParser(FreeTextParser):
    start_re = re.compile(
        r"^(?P<date>\d{2}\.\d{2}\.\d{2})(?:\s+(?P<date2>\d{2}\.\d{2}\.\d{2}))?\s+"
        r"(?P<span>.+?)\s+(?P<amount>\d[\d.]*,\d{2})\s*(?P<sign>[-+])$"
    )
    type_labels = ("Lastschrift", "monatlicher Kartenpreis")
    skip_markers = (
        "Saldo letzte Abrechnung",
        "Neuer Saldo",
        "Übertrag von Seite",
        "Zwischensumme von Seite",
        "Kontaktdaten",
        "Abrechnungsnummer",
    )
    metadata_markers = (
        (re.compile(r"^Prämienmeilen\s+([+-]?\d+)"), "bonus_miles"),
        (re.compile(r"^Kurs\s+([\d.,]+)"), "exchange_rate"),
    )
    statement_markers = (
        (
            re.compile(
                r"Ihre Abrechnung vom\s+(\d{2}\.\d{2}\.\d{2,4}(?:\s+bis\s+\d{2}\.\d{2}\.\d{2,4})?)"
            ),
            "statement_period",
        ),
        (re.compile(r"^Miles & More.*?(\d{4}[\sX*]*[X*]{2,}[\sX*]*\d{4})"), "account_number"),
    )

    def is_skipped(self, line: str) -> bool:
        # Balance and page-carry entries may sit on dated lines.
        return any(marker in line for marker in self.skip_markers)

    def start_date(self, m: re.Match[str]) -> date:
        return parse_date(m.group("date2") or m.group("date"))

    def start_amount(self, m: re.Match[str]) -> int:
        return parse_amount(f"{m.group('amount')} {m.group('sign')}")

    def start_metadata(self, m: re.Match[str]) -> dict[str, str]:
        if m.group("date2"):
            return {"receipt_date": parse_date(m.group("date")).isoformat()}
        return {}

    def finish(self, draft: OpenDraft) -> DraftTransaction:
        _vendor_name, location = split_vendor_location(draft.vendor)
        if draft.type_label and draft.vendor == draft.type_label:
            location = draft.type_label
        if draft.vendor == "Lastschrift" and draft.signed_amount > 0:
            draft.metadata["is_transfer"] = "true"
        if location:
            draft.description.insert(0, location)
        return super().finish(draft)


def parse_dkb_text(text: str) -> ParsedStatement:
    """Parse DKB credit-card statement text into a :class:`ParsedStatement`."""

    return DkbStatementParser().parse(text)


__all__ = ["DkbStatementParser", "parse_dkb_text"]
