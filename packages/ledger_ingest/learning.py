"""Manual category corrections and the rule learner.

Every correction appends a :class:`~ledger_db.models.CategoryOverride` and
then notifies post-insert hooks. The default hook, :func:`learn_from_override`,
counts how often the same normalized vendor has been corrected to the same
category; once the count reaches ``LEARN_THRESHOLD`` and no active rule
already maps that vendor to that category, it creates a high-priority
``contains`` rule and re-applies it to every unreviewed transaction of that
vendor.

Hooks are plain callables ``(session, override) -> object``, so the learner
can be exercised without the correction path and vice versa.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ledger_db.models import CategoryOverride, LedgerTransaction, VendorRule
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .categories import require_category
from .errors import NotFoundError
from .logging_setup import get_logger

LEARN_THRESHOLD = 2
LEARNED_RULE_PRIORITY = 10

type OverrideHook = Callable[[Session, CategoryOverride], Any]

_logger = get_logger("ledger_ingest.learning")


@dataclass(frozen=True, slots=True)
class LearningOutcome:
    rule_id: int
    retroactive_count: int


@dataclass(frozen=True, slots=True)
class CorrectionResult:
    transaction_id: int
    category: str
    override_id: int | None
    learned: LearningOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "transaction_id": self.transaction_id,
            "category": self.category,
            "override_id": self.override_id,
            "learned_rule_id": None,
            "retroactive_count": 0,
        }
        if self.learned is not None:
            out["learned_rule_id"] = self.learned.rule_id
            out["retroactive_count"] = self.learned.retroactive_count
        return out


def apply_rule_retroactively(session: Session, rule: VendorRule) -> int:
    """Upgrade unreviewed transactions whose vendor text contains ``rule``'s pattern.

    Returns the number of rows changed. Reviewed rows and paired transfers are
    left alone. Vendor text is casefolded in Python, as in the classifier.
    """

    needle = rule.match_pattern.strip().casefold()
    if not needle:
        return 0
    candidates = session.execute(
        select(LedgerTransaction).where(
            LedgerTransaction.is_reviewed.is_(False),
            LedgerTransaction.transfer_group.is_(None),
        )
    ).scalars()
    rows = [
        row
        for row in candidates
        if needle in (row.normalized_vendor or "").casefold()
        or needle in (row.raw_vendor or "").casefold()
    ]
    for row in rows:
        row.category = rule.category
        row.confidence = "high"
        row.matched_rule_id = rule.id
    session.flush()
    return len(rows)


def learn_from_override(session: Session, override: CategoryOverride) -> LearningOutcome | None:
    """Create a learned rule once a vendor has been corrected often enough."""

    tx = session.get(LedgerTransaction, override.transaction_id)
    if tx is None:
        return None
    vendor = (tx.normalized_vendor or "").strip()
    if not vendor:
        return None

    count = session.execute(
        select(func.count(CategoryOverride.id))
        .join(LedgerTransaction, LedgerTransaction.id == CategoryOverride.transaction_id)
        .where(
            LedgerTransaction.normalized_vendor == tx.normalized_vendor,
            CategoryOverride.new_category == override.new_category,
        )
    ).scalar_one()
    if count < LEARN_THRESHOLD:
        return None

    patterns = session.execute(
        select(VendorRule.match_pattern).where(
            VendorRule.is_active.is_(True),
            VendorRule.category == override.new_category,
        )
    ).scalars()
    key = vendor.casefold()
    if any(p.strip().casefold() == key for p in patterns):
        return None

    rule = VendorRule(
        match_pattern=vendor,
        match_type="contains",
        normalized_vendor=vendor,
        category=override.new_category,
        priority=LEARNED_RULE_PRIORITY,
        source="learned",
    )
    session.add(rule)
    session.flush()
    updated = apply_rule_retroactively(session, rule)
    _logger.info(
        "learning:rule_created rule_id=%d vendor=%r category=%s overrides=%d retroactive=%d",
        rule.id,
        rule.match_pattern,
        rule.category,
        count,
        updated,
    )
    return LearningOutcome(rule_id=rule.id, retroactive_count=updated)


DEFAULT_HOOKS: tuple[OverrideHook, ...] = (learn_from_override,)


def change_category(
    session: Session,
    transaction_id: int,
    new_category: str,
    *,
    actor: str | None = None,
    hooks: Sequence[OverrideHook] = DEFAULT_HOOKS,
) -> CorrectionResult:
    """Record a manual correction and notify ``hooks``.

    A correction to the category the transaction already has records no
    override and runs no hooks; the row is only marked reviewed. Otherwise
    the transaction takes the new category at high confidence and is
    marked reviewed.

    Raises
    ------
    NotFoundError
        If the transaction does not exist.
    BadInputError
        If ``new_category`` is not an active category.
    """

    tx = session.get(LedgerTransaction, transaction_id)
    if tx is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    category = require_category(session, new_category).code

    if tx.category == category:
        if not tx.is_reviewed:
            tx.is_reviewed = True
            session.flush()
        return CorrectionResult(transaction_id=tx.id, category=category, override_id=None)

    override = CategoryOverride(
        transaction_id=tx.id,
        old_category=tx.category,
        new_category=category,
        actor=actor,
    )
    session.add(override)
    tx.category = category
    tx.confidence = "high"
    tx.matched_rule_id = None
    tx.is_reviewed = True
    session.flush()
    _logger.info(
        "learning:override tx_id=%d old=%s new=%s actor=%s",
        tx.id,
        override.old_category,
        category,
        actor,
    )

    learned: LearningOutcome | None = None
    for hook in hooks:
        outcome = hook(session, override)
        if isinstance(outcome, LearningOutcome):
            learned = outcome
    return CorrectionResult(
        transaction_id=tx.id, category=category, override_id=override.id, learned=learned
    )


__all__ = [
    "CorrectionResult",
    "DEFAULT_HOOKS",
    "LEARN_THRESHOLD",
    "LearningOutcome",
    "OverrideHook",
    "apply_rule_retroactively",
    "change_category",
    "learn_from_override",
]
