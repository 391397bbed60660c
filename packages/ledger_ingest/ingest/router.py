"""Format Router: pick the issuer and serialization for a statement.

Detection strategy:
- Issuer: filename hints first (``girokonto``/``ing`` vs ``kreditkarte``/
  ``dkb``/``miles``), then content signatures.
- Serialization per issuer: a header marker selects the delimited adapter,
  a statement title phrase the free-text adapter; otherwise the presence of
  a ``;`` field separator decides before defaulting to free-text.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import replace

from ..errors import UnrecognizedFormatError
from ..logging_setup import get_logger
from ..models import Issuer, ParsedStatement, StatementFormat
from .adapters import parse_dkb_csv, parse_dkb_text, parse_ing_csv, parse_ing_text
from .adapters.dkb_csv import CARD_HEADER_RE
from .adapters.dkb_csv import HEADER_MARKER as DKB_HEADER_MARKER
from .adapters.ing_csv import HEADER_MARKER as ING_HEADER_MARKER

_logger = get_logger("ledger_ingest.ingest.router")

_PARSERS: Mapping[tuple[str, str], Callable[[str], ParsedStatement]] = {
    ("ing", "delimited"): parse_ing_csv,
    ("ing", "free_text"): parse_ing_text,
    ("dkb", "delimited"): parse_dkb_csv,
    ("dkb", "free_text"): parse_dkb_text,
}

_DKB_FILENAME_RE = re.compile(r"kreditkarte|dkb|miles", re.IGNORECASE)
_ING_FILENAME_RE = re.compile(r"girokonto|(?<![a-z])ing(?![a-z])", re.IGNORECASE)

_ING_CONTENT_HINTS = ("ING-DiBa", "Girokonto Nummer", "Umsatzanzeige;", ING_HEADER_MARKER)
_DKB_CONTENT_HINTS = ("Miles & More", "Kreditkartenabrechnung", "Ihre Abrechnung vom")

_HEAD_CHARS = 8192


def _head(text: str) -> str:
    return text[:_HEAD_CHARS].lstrip("\ufeff").replace('"', "")


def detect_issuer(text: str, filename: str | None = None) -> Issuer | None:
    """Return ``"ing"``/``"dkb"`` from filename or content hints, else ``None``."""

    if filename:
        if _DKB_FILENAME_RE.search(filename):
            return "dkb"
        if _ING_FILENAME_RE.search(filename):
            return "ing"
    head = _head(text)
    if any(h in head for h in _ING_CONTENT_HINTS):
        return "ing"
    if any(h in head for h in _DKB_CONTENT_HINTS) or DKB_HEADER_MARKER in head:
        return "dkb"
    return None


def detect_format(issuer: Issuer, text: str) -> StatementFormat:
    head = _head(text)
    if issuer == "ing":
        if (
            head.startswith("Umsatzanzeige;")
            or "Kontoname;Girokonto" in head
            or ING_HEADER_MARKER in head
        ):
            return "delimited"
        if "Girokonto Nummer" in head or "Kontoauszug" in head or "Buchung  Buchung" in head:
            return "free_text"
    else:
        first_line = next((ln for ln in head.splitlines() if ln.strip()), "")
        if CARD_HEADER_RE.search(first_line) or DKB_HEADER_MARKER in head:
            return "delimited"
        if "Ihre Abrechnung vom" in head:
            return "free_text"
    return "delimited" if ";" in head else "free_text"


def parse_document(
    text: str,
    *,
    filename: str | None = None,
    issuer: str | None = None,
) -> ParsedStatement:
    """Route ``text`` to the matching adapter and return its statement.

    An explicit ``issuer`` wins over detection. Raises
    :class:`UnrecognizedFormatError` for an unknown explicit issuer or when
    no issuer can be determined.
    """

    resolved: Issuer | None
    if issuer:
        explicit = issuer.strip().lower()
        if explicit == "ing":
            resolved = "ing"
        elif explicit == "dkb":
            resolved = "dkb"
        else:
            raise UnrecognizedFormatError(f"Unknown bank {issuer!r}")
    else:
        resolved = detect_issuer(text, filename)
    if resolved is None:
        raise UnrecognizedFormatError()
    fmt = detect_format(resolved, text)
    parsed = _PARSERS[(resolved, fmt)](text)

    _logger.info(
        "parse:done issuer=%s format=%s transactions=%d warnings=%d",
        resolved,
        fmt,
        len(parsed.transactions),
        len(parsed.warnings),
    )
    return replace(parsed, metadata={**parsed.metadata, "issuer": resolved, "format": fmt})


__all__ = ["detect_format", "detect_issuer", "parse_document"]
