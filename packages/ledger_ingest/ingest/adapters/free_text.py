"""Two-state machine for free-text (PDF-extracted) statements.

A transaction starts on a line carrying a date at the start and an amount at
the end. Subsequent lines continue the open draft until the next start line
or the end of input:

    IDLE --start--> OPEN --start--> OPEN (previous draft flushed)
                    OPEN --end of input--> flushed

While OPEN, continuation lines matching a structured metadata marker fill a
named metadata slot; everything else is appended to the description. Lines
matching a skip marker (balances, page headers/footers) are ignored in both
states and never close a draft.

Issuer adapters subclass :class:`FreeTextParser`, supplying the start-line
regex (named groups ``date``, ``span``, ``amount``) and their marker tables,
and override the hooks where their layout needs it.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import date

from ...errors import RowParseError
from ...logging_setup import get_logger
from ...models import DraftTransaction, ParsedStatement, ParseWarning
from ...normalizers import normalize_vendor, parse_amount, parse_date, split_signed

_logger = get_logger("ledger_ingest.ingest.free_text")


class ParserState(enum.Enum):
    IDLE = "idle"
    OPEN = "open"


@dataclass(slots=True)
class OpenDraft:
    """Mutable accumulator for the transaction currently being read."""

    line: int
    raw: str
    date: date
    signed_amount: int
    vendor: str
    type_label: str | None
    description: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


class FreeTextParser:
    start_re: re.Pattern[str]
    type_labels: tuple[str, ...] = ()
    skip_markers: tuple[str, ...] = ()
    # (regex with one group, metadata slot) tried against continuation lines.
    metadata_markers: tuple[tuple[re.Pattern[str], str], ...] = ()
    # (regex with one group, statement metadata key) tried against every line.
    statement_markers: tuple[tuple[re.Pattern[str], str], ...] = ()

    def __init__(self) -> None:
        labels = sorted(self.type_labels, key=len, reverse=True)
        self._label_re = (
            re.compile(r"(?<!\S)(" + "|".join(re.escape(lb) for lb in labels) + r")(?!\S)")
            if labels
            else None
        )

    # ---- Hooks ------------------------------------------------------------

    def is_skipped(self, line: str) -> bool:
        return any(line.startswith(s) for s in self.skip_markers)

    def start_date(self, m: re.Match[str]) -> date:
        return parse_date(m.group("date"))

    def start_amount(self, m: re.Match[str]) -> int:
        return parse_amount(m.group("amount"))

    def start_metadata(self, m: re.Match[str]) -> dict[str, str]:
        return {}

    def continuation(self, draft: OpenDraft, line: str) -> None:
        for pattern, slot in self.metadata_markers:
            mm = pattern.match(line)
            if mm:
                draft.metadata.setdefault(slot, mm.group(1).strip())
                return
        draft.description.append(line)

    def finish(self, draft: OpenDraft) -> DraftTransaction:
        amount, direction = split_signed(draft.signed_amount)
        return DraftTransaction(
            date=draft.date,
            amount=amount,
            direction=direction,
            raw_vendor=draft.vendor,
            normalized_vendor=normalize_vendor(draft.vendor),
            description=" ".join(draft.description),
            type_label=draft.type_label,
            metadata=draft.metadata,
        )

    # ---- Machinery --------------------------------------------------------

    def split_span(self, span: str) -> tuple[str | None, str]:
        """Return ``(type_label, vendor)`` for the text between date and amount."""

        span = " ".join(span.split())
        if self._label_re is not None:
            m = self._label_re.search(span)
            if m:
                label = m.group(1)
                return label, span[m.end() :].strip() or label
        return None, span

    def _match_start(self, line: str, lineno: int) -> OpenDraft | None:
        m = self.start_re.match(line)
        if m is None:
            return None
        try:
            when = self.start_date(m)
            signed = self.start_amount(m)
        except ValueError as e:
            raise RowParseError(str(e), line=lineno, raw=line) from e
        label, vendor = self.split_span(m.group("span"))
        return OpenDraft(
            line=lineno,
            raw=line,
            date=when,
            signed_amount=signed,
            vendor=vendor,
            type_label=label,
            metadata=self.start_metadata(m),
        )

    def _flush(
        self, draft: OpenDraft, out: list[DraftTransaction], warnings: list[ParseWarning]
    ) -> None:
        try:
            out.append(self.finish(draft))
        except ValueError as e:
            warnings.append(ParseWarning(line=draft.line, message=str(e), raw=draft.raw))

    def parse(self, text: str) -> ParsedStatement:
        transactions: list[DraftTransaction] = []
        warnings: list[ParseWarning] = []
        metadata: dict[str, str] = {}

        state = ParserState.IDLE
        current: OpenDraft | None = None

        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue

            matched_statement = False
            for pattern, key in self.statement_markers:
                sm = pattern.search(line)
                if sm:
                    metadata.setdefault(key, sm.group(1).strip())
                    matched_statement = True
                    break
            if matched_statement or self.is_skipped(line):
                continue

            try:
                started = self._match_start(line, lineno)
            except RowParseError as e:
                if state is ParserState.OPEN and current is not None:
                    self._flush(current, transactions, warnings)
                warnings.append(ParseWarning(line=e.line, message=str(e), raw=e.raw))
                _logger.debug("parse:line_warning line=%d error=%s", lineno, e)
                state, current = ParserState.IDLE, None
                continue

            if started is not None:
                if state is ParserState.OPEN and current is not None:
                    self._flush(current, transactions, warnings)
                state, current = ParserState.OPEN, started
            elif state is ParserState.OPEN and current is not None:
                self.continuation(current, line)
            # IDLE + non-start line: statement preamble, ignored.

        if state is ParserState.OPEN and current is not None:
            self._flush(current, transactions, warnings)

        return ParsedStatement(
            transactions=tuple(transactions), warnings=tuple(warnings), metadata=metadata
        )


__all__ = ["FreeTextParser", "OpenDraft", "ParserState"]
