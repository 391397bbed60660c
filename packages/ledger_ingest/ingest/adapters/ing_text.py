"""Adapter for ING Girokonto PDF statements (extracted text).

Layout excerpt::

    Girokonto Nummer 1234567890
    Kontoauszug Dezember 2017
    Buchung  Buchung / Verwendungszweck                 Betrag (EUR)
    Valuta
    01.12.2017 Lastschrift ALTE LEIPZIGER BAUSPAR AG           -484,55
    01.12.2017 00006919254 DEZEMBER 2017VERTRAG: 0 248651201
               Mandat: 000000019455825
               Referenz: 0000069192540

The second dated line of a booking is its value date plus purpose text; it
never ends with an amount, so it is read as a continuation line.
"""

from __future__ import annotations

import re

from ...models import ParsedStatement
from .delimited import try_parse_date
from .free_text import FreeTextParser, OpenDraft

_VALUE_DATE_LINE = re.compile(r"^(\d{2}\.\d{2}\.\d{4})\s+(.*)$")


class IngStatementParser(FreeTextParser):
    start_re = re.compile(
        r"^(?P<date>\d{2}\.\d{2}\.\d{4})\s+(?P<span>.+?)\s+"
        r"(?P<amount>-?\d[\d.]*,\d{2})$"
    )
    type_labels = (
        "Lastschrift",
        "Gutschrift",
        "Überweisung",
        "Ueberweisung",
        "Dauerauftrag",
        "Dauerauftrag/Terminueberweisung",
        "Entgelt",
        "Abschluss",
        "Gehalt/Rente",
        "Retoure",
        "Zinsen",
        "Gutschrift/Dauerauftrag",
        "Lastschrifteinzug",
    )
    skip_markers = (
        "Buchung  Buchung",
        "Buchung / Verwendungszweck",
        "Valuta",
        "Neuer Saldo",
        "Alter Saldo",
        "Seite ",
        "Übertrag",
        "Kunden-Information",
    )
    metadata_markers = (
        (re.compile(r"^Mandatsreferenz:\s*(\S+)"), "mandat"),
        (re.compile(r"^Mandat:\s*(\S+)"), "mandat"),
        (re.compile(r"^Referenz:\s*(\S+)"), "referenz"),
        (re.compile(r"^Gläubiger-ID:\s*(\S+)"), "creditor_id"),
    )
    statement_markers = (
        (re.compile(r"^Girokonto Nummer\s+(\S+)"), "account_number"),
        (re.compile(r"^Kontoauszug\s+(.+)$"), "statement_period"),
        (re.compile(r"^IBAN\s+(DE[\d ]+)$"), "iban"),
    )

    def continuation(self, draft: OpenDraft, line: str) -> None:
        m = _VALUE_DATE_LINE.match(line)
        value_date = try_parse_date(m.group(1)) if m else None
        if m and value_date is not None and "value_date" not in draft.metadata:
            draft.metadata["value_date"] = value_date.isoformat()
            rest = m.group(2).strip()
            if rest:
                draft.description.append(rest)
            return
        super().continuation(draft, line)


def parse_ing_text(text: str) -> ParsedStatement:
    """Parse ING statement text into a :class:`ParsedStatement`."""

    return IngStatementParser().parse(text)


__all__ = ["IngStatementParser", "parse_ing_text"]
