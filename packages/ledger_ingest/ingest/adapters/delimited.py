"""Shared driver for delimited-record (``;``-separated) statement exports.

Bank CSV exports start with a preamble (account, period, balance lines)
followed by a header row and the data rows. The driver:

- hands every line before the header to ``read_preamble`` so adapters can
  lift statement metadata (IBAN, card number, period);
- locates the header by ``DelimitedLayout.header_marker``;
- ignores blank rows and rows starting with a skip marker;
- splits data rows with :mod:`csv` (quoted fields are honored) and passes
  them to ``map_row``.

``map_row`` returns a draft, or ``None`` to drop a row silently (rows with a
missing/unparseable date are statement metadata, not errors). Raising
``ValueError`` (including :class:`~ledger_ingest.errors.RowParseError`)
turns the row into a warning; parsing continues with the next row.
"""

from __future__ import annotations

import csv
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from datetime import date

from ...errors import BadInputError
from ...logging_setup import get_logger
from ...models import DraftTransaction, ParsedStatement, ParseWarning
from ...normalizers import parse_date

_logger = get_logger("ledger_ingest.ingest.delimited")

type RowMapper = Callable[[list[str], int], DraftTransaction | None]
type PreambleReader = Callable[[list[str], MutableMapping[str, str]], None]


@dataclass(frozen=True, slots=True)
class DelimitedLayout:
    header_marker: str
    skip_markers: tuple[str, ...] = ()
    separator: str = ";"


def _clean_line(line: str) -> str:
    # BOM and quote characters are irrelevant for marker tests.
    return line.lstrip("\ufeff").replace('"', "").strip()


def split_row(line: str, separator: str = ";") -> list[str]:
    cells = next(csv.reader([line], delimiter=separator), [])
    return [c.strip() for c in cells]


def try_parse_date(cell: str | None) -> date | None:
    """Return the parsed date, or ``None`` when the cell is not a date."""

    if not cell or not cell.strip():
        return None
    try:
        return parse_date(cell)
    except ValueError:
        return None


def parse_delimited(
    text: str,
    *,
    layout: DelimitedLayout,
    map_row: RowMapper,
    read_preamble: PreambleReader | None = None,
) -> ParsedStatement:
    """Drive ``map_row`` over the data rows of a delimited export."""

    transactions: list[DraftTransaction] = []
    warnings: list[ParseWarning] = []
    metadata: dict[str, str] = {}
    header_seen = False

    for lineno, line in enumerate(text.splitlines(), start=1):
        cleaned = _clean_line(line)
        if not cleaned:
            continue

        if not header_seen:
            if cleaned.startswith(layout.header_marker):
                header_seen = True
            elif read_preamble is not None:
                read_preamble(split_row(cleaned, layout.separator), metadata)
            continue

        if any(cleaned.startswith(m) for m in layout.skip_markers):
            continue

        try:
            draft = map_row(split_row(line.lstrip("\ufeff"), layout.separator), lineno)
        except ValueError as e:
            warnings.append(ParseWarning(line=lineno, message=str(e), raw=line))
            _logger.debug("parse:row_warning line=%d error=%s", lineno, e)
            continue
        if draft is not None:
            transactions.append(draft)

    if not header_seen:
        raise BadInputError(
            f"Header row not found (expected a line starting with {layout.header_marker!r})"
        )

    return ParsedStatement(
        transactions=tuple(transactions), warnings=tuple(warnings), metadata=metadata
    )


__all__ = ["DelimitedLayout", "parse_delimited", "split_row", "try_parse_date"]
