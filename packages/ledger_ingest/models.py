"""Data models and type aliases for ``ledger_ingest``.

Parsers produce :class:`DraftTransaction` values wrapped in a
:class:`ParsedStatement`; the orchestrator turns drafts into stored ledger
rows (``ledger_db.models.LedgerTransaction``). Amounts are always
non-negative integers in minor units (cents); the sign lives only in
``direction``.

The pydantic models at the bottom describe the JSON shapes crossing the
process boundary (upload/batch endpoints and the classification fallback).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

type Direction = Literal["debit", "credit"]
type Confidence = Literal["high", "medium", "low"]
type Issuer = Literal["ing", "dkb"]
type StatementFormat = Literal["delimited", "free_text"]


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DraftTransaction:
    """A parsed-but-not-yet-stored transaction candidate."""

    date: date
    amount: int
    direction: Direction
    raw_vendor: str
    normalized_vendor: str
    description: str = ""
    type_label: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("DraftTransaction.amount must be non-negative; use direction")
        if self.direction not in ("debit", "credit"):
            raise ValueError(f"invalid direction: {self.direction!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "amount": self.amount,
            "direction": self.direction,
            "raw_vendor": self.raw_vendor,
            "normalized_vendor": self.normalized_vendor,
            "description": self.description,
            "type_label": self.type_label,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True, slots=True)
class ParseWarning:
    line: int
    message: str
    raw: str

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "message": self.message, "raw": self.raw}


@dataclass(frozen=True, slots=True)
class ParsedStatement:
    """One parsed document: drafts in document order plus row-level warnings."""

    transactions: tuple[DraftTransaction, ...]
    warnings: tuple[ParseWarning, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "warnings": [w.to_dict() for w in self.warnings],
            "metadata": dict(self.metadata),
        }


# ---------------------------------------------------------------------------
# Import results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ImportCounts:
    """Aggregate counters returned by a batch import."""

    total: int = 0
    inserted: int = 0
    duplicates: int = 0
    classified: int = 0
    transfers: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "classified": self.classified,
            "transfers": self.transfers,
        }


# ---------------------------------------------------------------------------
# Boundary DTOs
# ---------------------------------------------------------------------------


class ParsedTransactionIn(BaseModel):
    """ParsedTransaction record accepted by the batch import interface."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: date
    amount: int
    direction: Literal["debit", "credit"]
    raw_vendor: str
    normalized_vendor: str | None = None
    description: str = ""
    type_label: str | None = None
    metadata: dict[str, str] = {}

    @field_validator("amount")
    @classmethod
    def _amount_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("amount must be non-negative minor units")
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def _stringify_metadata(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {str(k): "" if val is None else str(val) for k, val in v.items()}
        return v


class BatchImportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    account_id: int
    import_job_id: int | None = None
    transactions: list[ParsedTransactionIn]


class CategoryChangeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    category: str
    actor: str | None = None


class FallbackDecision(BaseModel):
    """Decision returned by the external classification fallback."""

    model_config = ConfigDict(strict=True, extra="allow", str_strip_whitespace=True)

    category: str
    reasoning: str = ""

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must be non-empty")
        return v


__all__ = [
    "BatchImportRequest",
    "CategoryChangeRequest",
    "Confidence",
    "Direction",
    "DraftTransaction",
    "FallbackDecision",
    "ImportCounts",
    "Issuer",
    "ParseWarning",
    "ParsedStatement",
    "ParsedTransactionIn",
    "StatementFormat",
]
