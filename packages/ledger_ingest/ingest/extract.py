"""Turn uploaded bytes into statement text.

CSV/TXT exports are decoded (UTF-8 first, then the Windows code page banks
still emit); PDFs go through :mod:`pdfplumber` page by page.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import PurePath

import pdfplumber

from ..errors import BadInputError, ExtractionError
from ..logging_setup import get_logger

_logger = get_logger("ledger_ingest.ingest.extract")

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".csv", ".txt", ".pdf"})
_TEXT_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1252")


def _decode(data: bytes) -> str:
    for encoding in _TEXT_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    # latin-1 maps every byte; last resort for odd exports.
    return data.decode("latin-1")


def _pdf_text(data: bytes, filename: str) -> str:
    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:  # noqa: BLE001 - pdfminer raises a wide range of types
        _logger.warning("extract:pdf_failed filename=%s error=%s", filename, e.__class__.__name__)
        raise ExtractionError(f"Could not extract text from {filename}: {e}") from e
    _logger.info("extract:pdf_done filename=%s pages=%d", filename, len(pages))
    return "\n".join(pages)


def extract_text(data: bytes, filename: str) -> str:
    """Return the text content of an uploaded statement file.

    Raises
    ------
    BadInputError
        Unsupported extension or an empty document.
    ExtractionError
        The PDF could not be read.
    """

    suffix = PurePath(filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise BadInputError(
            f"Unsupported file type {suffix or '(none)'!r}",
            hint="Upload a .csv or .pdf statement export",
        )
    if not data:
        raise BadInputError("Uploaded file is empty")

    text = _pdf_text(data, filename) if suffix == ".pdf" else _decode(data)
    if not text.strip():
        if suffix == ".pdf":
            raise ExtractionError(f"No text layer found in {filename}")
        raise BadInputError("Uploaded file is empty")
    return text


__all__ = ["SUPPORTED_EXTENSIONS", "extract_text"]
