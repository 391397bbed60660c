"""Locale-aware value normalization for German bank statements.

Pure, stateless helpers shared by every statement adapter:

- ``parse_amount``/``format_amount``: German notation (``1.234,56``) to and
  from signed integer minor units (cents);
- ``parse_date``: ``DD.MM.YYYY`` / ``DD.MM.YY`` calendar dates;
- ``normalize_vendor``: canonical vendor key used for rule matching and
  duplicate fingerprints.

Amounts never pass through ``float``; cents are assembled from the digit
strings directly so no rounding can creep in.
"""

from __future__ import annotations

import re
from datetime import date

from .models import Direction

# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_MARKERS = ("€", "EUR")


def parse_amount(raw: str) -> int:
    """Parse a German-formatted amount into signed minor units.

    ``,`` is the decimal separator and ``.`` groups thousands. The sign is a
    leading or trailing ``-``; a trailing ``+`` always forces a positive
    result, even when a leading ``-`` is present.

    >>> parse_amount("1.234,56 -")
    -123456
    >>> parse_amount("-11,5")
    -1150

    Raises
    ------
    ValueError
        When ``raw`` contains no digits.
    """

    s = raw.strip()
    for marker in _CURRENCY_MARKERS:
        s = s.replace(marker, "")
    s = s.strip()
    if not any(ch.isdigit() for ch in s):
        raise ValueError(f"invalid amount: {raw!r}")

    negative = s.startswith("-") or s.endswith("-")
    if s.endswith("+"):
        negative = False

    cleaned = re.sub(r"[^\d,]", "", s)
    euros, _, cents = cleaned.partition(",")
    cents = cents.replace(",", "")
    # Pad or truncate to exactly two fraction digits ("11,5" -> 50 cents).
    cents = (cents + "00")[:2]
    value = int(euros or "0") * 100 + int(cents)
    return -value if negative else value


def format_amount(minor: int, *, symbol: str | None = None) -> str:
    """Render signed minor units in German notation (``-1.234,56``)."""

    sign = "-" if minor < 0 else ""
    euros, cents = divmod(abs(minor), 100)
    body = f"{sign}{euros:,}".replace(",", ".") + f",{cents:02d}"
    return f"{body} {symbol}" if symbol else body


def split_signed(minor: int) -> tuple[int, Direction]:
    """Return ``(amount, direction)`` with a non-negative amount."""

    return abs(minor), ("debit" if minor < 0 else "credit")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4}|\d{2})")


def parse_date(raw: str) -> date:
    """Parse ``DD.MM.YYYY`` or ``DD.MM.YY`` into a :class:`datetime.date`.

    Two-digit years below 50 map to 20xx, the rest to 19xx. Impossible
    calendar values (``31.02.2024``) raise ``ValueError``.
    """

    m = _DATE_RE.fullmatch(raw.strip())
    if not m:
        raise ValueError(f"invalid date: {raw!r}")
    day, month, year_s = int(m.group(1)), int(m.group(2)), m.group(3)
    year = int(year_s)
    if len(year_s) == 2:
        year += 2000 if year < 50 else 1900
    return date(year, month, day)


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------

# First match wins; only one prefix is stripped.
_PAYMENT_PROCESSORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^PAYPAL \*", re.IGNORECASE),
    re.compile(r"^SQ \*", re.IGNORECASE),
    re.compile(r"^CKO\*", re.IGNORECASE),
    re.compile(r"^STRIPE \*", re.IGNORECASE),
)

# Containment test in insertion order; first hit replaces the whole vendor.
_VENDOR_ALIASES: dict[str, str] = {
    "AMZN": "AMAZON",
    "AMZN MKTP": "AMAZON",
    "AMAZON EU": "AMAZON",
    "AMAZON PRIME": "AMAZON",
    "MC DONALDS": "MCDONALDS",
    "MC DONALD'S": "MCDONALDS",
    "MCDONALD'S": "MCDONALDS",
    "DB VERTRIEB": "DEUTSCHE BAHN",
    "DB BAHN": "DEUTSCHE BAHN",
    "REWE": "REWE",
    "EDEKA": "EDEKA",
    "LIDL": "LIDL",
    "ALDI": "ALDI",
}

_SMART_QUOTES_RE = re.compile(r"[‘’‚‛]")
_TRAILING_MARKERS_RE = re.compile(r"[*#]+$")


def normalize_vendor(raw: str | None) -> str:
    """Return the canonical vendor key for ``raw``; never raises.

    >>> normalize_vendor("PAYPAL *SPOTIFY")
    'SPOTIFY'
    >>> normalize_vendor("EDEKA MARTENS, HAMBURG")
    'EDEKA'
    >>> normalize_vendor("")
    ''
    """

    if not raw or not raw.strip():
        return ""
    vendor = raw.strip()

    for pattern in _PAYMENT_PROCESSORS:
        if pattern.search(vendor):
            vendor = pattern.sub("", vendor, count=1).strip()
            break

    comma = vendor.find(",")
    if comma > 0:
        vendor = vendor[:comma].strip()

    vendor = vendor.upper()

    for needle, canonical in _VENDOR_ALIASES.items():
        if needle in vendor:
            vendor = canonical
            break

    vendor = _SMART_QUOTES_RE.sub("", vendor)
    vendor = " ".join(vendor.split())
    vendor = _TRAILING_MARKERS_RE.sub("", vendor)
    return vendor.strip()


_PAYPAL_SUB_RE = re.compile(r"PAYPAL \*([A-Z0-9]+)", re.IGNORECASE)


def extract_paypal_sub_vendor(raw: str) -> str | None:
    """``"PAYPAL *SPOTIFY AB123"`` -> ``"SPOTIFY"``; ``None`` when not PayPal."""

    m = _PAYPAL_SUB_RE.search(raw)
    return m.group(1).upper() if m else None


def split_vendor_location(raw: str) -> tuple[str, str]:
    """Split card-statement vendor text into ``(vendor, location)``.

    PayPal rows keep the merchant after ``PAYPAL *`` as location; Amazon
    marketplace rows carry no usable location; otherwise the text after the
    last comma is the location.
    """

    text = raw.strip()
    if text.upper().startswith("PAYPAL"):
        m = re.search(r"PAYPAL \*([^,]+)", text, re.IGNORECASE)
        return "PayPal", (m.group(1).strip() if m else "")
    upper = text.upper()
    if "AMZN" in upper or "AMAZON" in upper:
        return "Amazon", ""
    comma = text.rfind(",")
    if comma > 0:
        return text[:comma].strip(), text[comma + 1 :].strip()
    return text, ""


__all__ = [
    "extract_paypal_sub_vendor",
    "format_amount",
    "normalize_vendor",
    "parse_amount",
    "parse_date",
    "split_signed",
    "split_vendor_location",
]
