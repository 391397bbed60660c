"""Error kinds raised by the ingestion pipeline.

Three families, each carrying an HTTP-like ``status_code`` so the API layer
can translate them without a lookup table:

- input errors (``BadInputError`` and ``UnrecognizedFormatError``): rejected
  immediately, nothing persisted;
- upstream/extraction errors (``ExtractionError``, ``UpstreamFailError``):
  reported as retryable;
- row-level parse errors (``RowParseError``): raised inside a parser and
  converted into a :class:`ledger_ingest.models.ParseWarning`; they never
  escape a parser.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for pipeline errors."""

    status_code: int = 500
    code: str = "ingest_error"
    retryable: bool = False

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        body = {"code": self.code, "message": self.message}
        if self.hint:
            body["hint"] = self.hint
        return body


class BadInputError(IngestError):
    status_code = 400
    code = "bad_input"


class UnrecognizedFormatError(BadInputError):
    code = "unrecognized_format"

    def __init__(
        self,
        message: str = "Could not detect bank type",
        *,
        hint: str | None = "Please specify bank=ing or bank=dkb",
    ) -> None:
        super().__init__(message, hint=hint)


class NotFoundError(IngestError):
    status_code = 404
    code = "not_found"


class ExtractionError(IngestError):
    status_code = 502
    code = "extraction_failed"
    retryable = True


class UpstreamFailError(IngestError):
    status_code = 500
    code = "upstream_failed"
    retryable = True


class RowParseError(ValueError):
    """A single statement line could not be parsed."""

    def __init__(self, message: str, *, line: int, raw: str) -> None:
        self.line = line
        self.raw = raw
        super().__init__(message)


__all__ = [
    "BadInputError",
    "ExtractionError",
    "IngestError",
    "NotFoundError",
    "RowParseError",
    "UnrecognizedFormatError",
    "UpstreamFailError",
]
