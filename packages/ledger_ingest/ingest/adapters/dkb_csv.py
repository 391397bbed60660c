"""Adapter for the DKB Miles & More credit-card CSV export.

The first line names the card product and the masked card number
(``Miles & More Gold Credit Card;5310XXXXXXXX5214``); the header row starts
with ``Getätigt am``.

Data columns (0-based):
``0 Getätigt am (receipt), 1 Ausgeführt am (execution, empty while pending),
2 Betrag, 3 Währung, 4 Verwendungszweck, 5 Zahlungsart, 6 Status,
7 Betrag in Fremdwährung, 8 Fremdwährung, 9 Wechselkurs``
"""

from __future__ import annotations

import re
from collections.abc import MutableMapping

from ...errors import RowParseError
from ...models import DraftTransaction, ParsedStatement
from ...normalizers import normalize_vendor, parse_amount, split_signed, split_vendor_location
from .delimited import DelimitedLayout, parse_delimited, try_parse_date

CARD_HEADER_RE = re.compile(r"Miles & More.*?;(\d{4}X+\d{4})")
HEADER_MARKER = "Getätigt am"

LAYOUT = DelimitedLayout(header_marker=HEADER_MARKER)

_MIN_COLUMNS = 7
_STATUS_DECLINED = "Abgelehnt"
_STATUS_LABELS = {"Vorgemerkt": "pending", "Gebucht": "booked"}


def _read_preamble(cells: list[str], metadata: MutableMapping[str, str]) -> None:
    m = CARD_HEADER_RE.search(";".join(cells))
    if m:
        metadata.setdefault("account_number", m.group(1))


def _cell(cells: list[str], idx: int) -> str:
    return cells[idx] if idx < len(cells) else ""


def _map_row(cells: list[str], lineno: int) -> DraftTransaction | None:
    if len(cells) < _MIN_COLUMNS:
        raise RowParseError(
            f"Invalid CSV row: expected at least {_MIN_COLUMNS} columns, got {len(cells)}",
            line=lineno,
            raw=";".join(cells),
        )

    status = cells[6]
    if status == _STATUS_DECLINED:
        return None

    receipt = try_parse_date(cells[0])
    if receipt is None:
        return None
    execution = try_parse_date(cells[1])

    amount_raw = cells[2]
    if not amount_raw:
        raise RowParseError("No amount found", line=lineno, raw=";".join(cells))
    amount, direction = split_signed(parse_amount(amount_raw))

    raw_vendor = cells[4]
    _vendor_name, location = split_vendor_location(raw_vendor)

    metadata: dict[str, str] = {
        "status": _STATUS_LABELS.get(status, status),
        "payment_type": cells[5],
        "receipt_date": receipt.isoformat(),
    }
    if execution is not None:
        metadata["execution_date"] = execution.isoformat()
    foreign_amount, foreign_currency = _cell(cells, 7), _cell(cells, 8)
    if foreign_amount and foreign_currency:
        metadata["foreign_amount"] = foreign_amount
        metadata["foreign_currency"] = foreign_currency
    exchange_rate = _cell(cells, 9)
    if exchange_rate:
        metadata["exchange_rate"] = exchange_rate
    # A positive direct debit settles the card from the checking account.
    if raw_vendor == "Lastschrift" and direction == "credit":
        metadata["is_transfer"] = "true"

    return DraftTransaction(
        date=execution or receipt,
        amount=amount,
        direction=direction,
        raw_vendor=raw_vendor,
        normalized_vendor=normalize_vendor(raw_vendor),
        description=location,
        type_label=cells[5] or None,
        metadata=metadata,
    )


def parse_dkb_csv(text: str) -> ParsedStatement:
    """Parse a DKB credit-card CSV export into a :class:`ParsedStatement`."""

    return parse_delimited(text, layout=LAYOUT, map_row=_map_row, read_preamble=_read_preamble)


__all__ = ["CARD_HEADER_RE", "HEADER_MARKER", "parse_dkb_csv"]
