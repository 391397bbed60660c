"""Vendor-rule classification.

Rules come from ``ledger_vendor_rules`` and are evaluated in a fixed order:

1. ``exact`` rules before every other type;
2. lower ``priority`` first;
3. longer ``match_pattern`` first;
4. lower ``id`` first (stable tiebreak).

The first matching rule wins. ``exact`` compares against the normalized
vendor only; ``contains`` and ``pattern`` test the raw and the normalized
vendor. Matching is case-insensitive for every type. Confidence follows the match:
``exact`` is high; ``contains`` is high when its priority is at most
:data:`CONTAINS_HIGH_PRIORITY_MAX` and medium otherwise; ``pattern`` is
medium. Unmatched rows get no category here and are handed to the fallback
(:mod:`ledger_ingest.categorize`), whose answers are always low confidence.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from ledger_db.models import VendorRule
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import Confidence

CONTAINS_HIGH_PRIORITY_MAX = 15

_logger = get_logger("ledger_ingest.classifier")


@dataclass(frozen=True, slots=True)
class Rule:
    """Detached snapshot of a vendor rule."""

    id: int
    match_pattern: str
    match_type: str
    category: str
    priority: int = 100
    normalized_vendor: str = ""

    @classmethod
    def from_row(cls, row: VendorRule) -> Rule:
        return cls(
            id=row.id,
            match_pattern=row.match_pattern,
            match_type=row.match_type,
            category=row.category,
            priority=row.priority,
            normalized_vendor=row.normalized_vendor,
        )


@dataclass(frozen=True, slots=True)
class RuleMatch:
    rule_id: int
    category: str
    match_type: str
    priority: int
    confidence: Confidence


def rule_sort_key(rule: Rule) -> tuple[int, int, int, int]:
    return (0 if rule.match_type == "exact" else 1, rule.priority, -len(rule.match_pattern), rule.id)


def confidence_for(match_type: str, priority: int) -> Confidence:
    if match_type == "exact":
        return "high"
    if match_type == "contains":
        return "high" if priority <= CONTAINS_HIGH_PRIORITY_MAX else "medium"
    return "medium"


class RuleSet:
    """Ordered, pre-compiled view over a collection of rules.

    ``pattern`` rules whose regex does not compile are dropped with a
    warning instead of failing the whole import.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        ordered: list[tuple[Rule, re.Pattern[str] | None]] = []
        for rule in sorted(rules, key=rule_sort_key):
            compiled: re.Pattern[str] | None = None
            if rule.match_type == "pattern":
                try:
                    compiled = re.compile(rule.match_pattern, re.IGNORECASE)
                except re.error as e:
                    _logger.warning(
                        "classifier:invalid_pattern rule_id=%s pattern=%r error=%s",
                        rule.id,
                        rule.match_pattern,
                        e,
                    )
                    continue
            elif rule.match_type not in ("exact", "contains"):
                _logger.warning(
                    "classifier:unknown_match_type rule_id=%s match_type=%s",
                    rule.id,
                    rule.match_type,
                )
                continue
            ordered.append((rule, compiled))
        self._ordered = ordered

    def __len__(self) -> int:
        return len(self._ordered)

    @property
    def rules(self) -> list[Rule]:
        return [r for r, _ in self._ordered]

    @classmethod
    def load(cls, session: Session) -> RuleSet:
        rows = session.execute(select(VendorRule).where(VendorRule.is_active.is_(True))).scalars()
        return cls(Rule.from_row(r) for r in rows)

    def match(self, raw_vendor: str, normalized_vendor: str) -> RuleMatch | None:
        normalized = (normalized_vendor or "").strip().casefold()
        candidates = [v.casefold() for v in (raw_vendor, normalized_vendor) if v]
        if not candidates:
            return None
        for rule, compiled in self._ordered:
            if _matches(rule, compiled, normalized, candidates):
                return RuleMatch(
                    rule_id=rule.id,
                    category=rule.category,
                    match_type=rule.match_type,
                    priority=rule.priority,
                    confidence=confidence_for(rule.match_type, rule.priority),
                )
        return None


def _matches(
    rule: Rule, compiled: re.Pattern[str] | None, normalized: str, candidates: list[str]
) -> bool:
    if compiled is not None:
        return any(compiled.search(c) for c in candidates)
    needle = rule.match_pattern.strip().casefold()
    if not needle:
        return False
    if rule.match_type == "exact":
        return normalized == needle
    return any(needle in c for c in candidates)


def classify(
    session: Session, raw_vendor: str, normalized_vendor: str
) -> RuleMatch | None:
    """One-off classification against the currently active rules."""

    return RuleSet.load(session).match(raw_vendor, normalized_vendor)


__all__ = [
    "CONTAINS_HIGH_PRIORITY_MAX",
    "Rule",
    "RuleMatch",
    "RuleSet",
    "classify",
    "confidence_for",
    "rule_sort_key",
]
