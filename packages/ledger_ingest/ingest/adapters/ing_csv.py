"""Adapter for the ING "Umsatzanzeige" CSV export (Girokonto).

Preamble rows (``IBAN;...``, ``Zeitraum;...``, ``Saldo;...``) precede the
header row ``Buchung;Wertstellungsdatum;Auftraggeber/Empfänger;...``.

Data columns (0-based):
``0 Buchung, 1 Wertstellungsdatum, 2 Auftraggeber/Empfänger, 3 Buchungstext,
4 Verwendungszweck, 5 Saldo, 6 Währung, 7 Betrag, 8 Währung``
"""

from __future__ import annotations

import re
from collections.abc import MutableMapping

from ...errors import RowParseError
from ...models import DraftTransaction, ParsedStatement
from ...normalizers import normalize_vendor, parse_amount, split_signed
from .delimited import DelimitedLayout, parse_delimited, try_parse_date

HEADER_MARKER = "Buchung;Wertstellungsdatum;Auftraggeber/Empf"
SKIP_MARKERS: tuple[str, ...] = (
    "Umsatzanzeige;",
    "IBAN;",
    "Kontoname;",
    "Bank;",
    "Kunde;",
    "Zeitraum;",
    "Saldo;",
    "Sortierung;",
    "In der CSV-Datei",
)

LAYOUT = DelimitedLayout(header_marker=HEADER_MARKER, skip_markers=SKIP_MARKERS)

_COL_BOOKING = 0
_COL_VALUE_DATE = 1
_COL_COUNTERPARTY = 2
_COL_TYPE = 3
_COL_PURPOSE = 4
_COL_BALANCE = 5
_COL_AMOUNT = 7
_MIN_COLUMNS = 8

_ISO_LIKE_DATE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")


def _read_preamble(cells: list[str], metadata: MutableMapping[str, str]) -> None:
    if len(cells) < 2:
        return
    key, value = cells[0], cells[1]
    if key == "IBAN":
        metadata["account_number"] = re.sub(r"\s", "", value)
    elif key == "Zeitraum":
        metadata["statement_period"] = value


def _map_row(cells: list[str], lineno: int) -> DraftTransaction | None:
    booking = cells[_COL_BOOKING] if cells else ""
    if not _ISO_LIKE_DATE.match(booking):
        return None
    if len(cells) < _MIN_COLUMNS:
        raise RowParseError(
            f"expected at least {_MIN_COLUMNS} columns, got {len(cells)}",
            line=lineno,
            raw=";".join(cells),
        )

    counterparty = cells[_COL_COUNTERPARTY]
    type_label = cells[_COL_TYPE]
    # Period-closing rows without a counterparty are balance entries.
    if type_label == "Abschluss" and not counterparty:
        return None

    when = try_parse_date(booking)
    if when is None:
        return None

    amount_raw = cells[_COL_AMOUNT]
    if not amount_raw:
        raise RowParseError("No amount found", line=lineno, raw=";".join(cells))
    amount, direction = split_signed(parse_amount(amount_raw))

    raw_vendor = counterparty or type_label
    metadata: dict[str, str] = {}
    value_date = try_parse_date(cells[_COL_VALUE_DATE])
    if value_date is not None:
        metadata["value_date"] = value_date.isoformat()
    if cells[_COL_BALANCE]:
        metadata["balance"] = cells[_COL_BALANCE]

    return DraftTransaction(
        date=when,
        amount=amount,
        direction=direction,
        raw_vendor=raw_vendor,
        normalized_vendor=normalize_vendor(raw_vendor),
        description=cells[_COL_PURPOSE],
        type_label=type_label or None,
        metadata=metadata,
    )


def parse_ing_csv(text: str) -> ParsedStatement:
    """Parse an ING Umsatzanzeige CSV export into a :class:`ParsedStatement`."""

    return parse_delimited(text, layout=LAYOUT, map_row=_map_row, read_preamble=_read_preamble)


__all__ = ["HEADER_MARKER", "parse_ing_csv"]
