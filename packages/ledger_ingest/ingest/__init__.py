"""Statement ingestion: text extraction, format routing, issuer adapters."""

from .extract import extract_text
from .router import detect_format, detect_issuer, parse_document

__all__ = ["detect_format", "detect_issuer", "extract_text", "parse_document"]
