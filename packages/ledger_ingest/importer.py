"""Import orchestration: statement bytes in, ledger rows out.

Flow for one document (:func:`import_statement`):

1. extract text and parse it (input errors surface here, nothing persisted);
2. in one transaction: create the ``ImportJob``, run
   :func:`import_transactions_batch` over the drafts in document order, and
   mark the job ``completed`` with its counters;
3. after commit, ask the classification fallback about rows no rule matched,
   concurrently and one session per row.

If step 2 fails the whole transaction rolls back, then a ``failed`` job is
recorded in a fresh session and the error propagates, database errors as a
retryable ``UpstreamFailError``. A fallback failure never fails the import;
the row simply stays in needs-review.

Per draft, :func:`import_transactions_batch` fingerprints, skips duplicates,
classifies, inserts inside a SAVEPOINT and, for transfer candidates, looks
for the counterpart in another account.
"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ledger_db.client import session_scope
from ledger_db.models import ImportJob, LedgerAccount, LedgerTransaction
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .categories import list_categories, transfer_category_code
from .categorize import FallbackClassifier, default_fallback
from .classifier import RuleSet
from .duplicates import compute_fingerprint, is_duplicate
from .errors import BadInputError, IngestError, NotFoundError, UpstreamFailError
from .ingest import extract_text, parse_document
from .logging_setup import get_logger
from .models import DraftTransaction, ImportCounts, ParsedTransactionIn, ParseWarning
from .normalizers import normalize_vendor
from .persistence import insert_transaction
from .pmap import p_map
from .transfers import find_pair, is_transfer_candidate, pair, unpair

_CONCURRENCY_ENV = "LEDGER_FALLBACK_CONCURRENCY"
_DEFAULT_CONCURRENCY = 4

_logger = get_logger("ledger_ingest.importer")


@dataclass(slots=True)
class BatchOutcome:
    counts: ImportCounts
    # Inserted rows still without a category, in insert order.
    needs_fallback: list[int] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ImportResult:
    job_id: int
    status: str
    counts: ImportCounts
    warnings: tuple[ParseWarning, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "counts": self.counts.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "metadata": dict(self.metadata),
        }


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        _logger.warning("importer:bad_env name=%s value=%r", name, raw)
        return default
    return value if value >= 1 else default


def _now() -> datetime:
    return datetime.now(UTC)


def require_account(session: Session, account_id: int) -> LedgerAccount:
    account = session.get(LedgerAccount, account_id)
    if account is None or not account.is_active:
        raise BadInputError(f"Unknown account: {account_id}")
    return account


def drafts_from_payload(items: Iterable[ParsedTransactionIn]) -> list[DraftTransaction]:
    """Convert boundary records into drafts, normalizing the vendor when absent."""

    return [
        DraftTransaction(
            date=item.date,
            amount=item.amount,
            direction=item.direction,
            raw_vendor=item.raw_vendor,
            normalized_vendor=item.normalized_vendor or normalize_vendor(item.raw_vendor),
            description=item.description,
            type_label=item.type_label,
            metadata=dict(item.metadata),
        )
        for item in items
    ]


def import_transactions_batch(
    session: Session,
    *,
    account_id: int,
    import_job_id: int | None,
    transactions: Iterable[DraftTransaction],
    rules: RuleSet | None = None,
) -> BatchOutcome:
    """Insert drafts for one account in order; return counters and fallback ids.

    Runs inside the caller's transaction. Rows already stored for the account
    (same fingerprint), including rows inserted earlier in this batch, count
    as duplicates. When ``import_job_id`` is given the job must exist for the
    same account and its counters are increased by this batch.
    """

    require_account(session, account_id)
    job: ImportJob | None = None
    if import_job_id is not None:
        job = session.get(ImportJob, import_job_id)
        if job is None or job.account_id != account_id:
            raise NotFoundError(f"Import job {import_job_id} not found for account {account_id}")

    rules = rules if rules is not None else RuleSet.load(session)
    transfer_category = transfer_category_code(session)
    outcome = BatchOutcome(counts=ImportCounts())
    counts = outcome.counts

    for draft in transactions:
        counts.total += 1
        fingerprint = compute_fingerprint(
            account_id=account_id,
            date=draft.date,
            amount=draft.amount,
            direction=draft.direction,
            normalized_vendor=draft.normalized_vendor,
        )
        if is_duplicate(session, account_id=account_id, fingerprint=fingerprint):
            counts.duplicates += 1
            continue

        match = rules.match(draft.raw_vendor, draft.normalized_vendor)
        flagged = is_transfer_candidate(draft.raw_vendor, draft.description, draft.metadata)
        row = insert_transaction(
            session,
            account_id=account_id,
            import_job_id=import_job_id,
            draft=draft,
            fingerprint=fingerprint,
            match=match,
            is_transfer=flagged,
        )
        if row is None:
            counts.duplicates += 1
            continue
        counts.inserted += 1
        if match is not None:
            counts.classified += 1

        if flagged:
            counts.transfers += 1
            partner = find_pair(
                session,
                account_id=account_id,
                date=row.date,
                amount=row.amount,
                direction=row.direction,
                exclude_id=row.id,
            )
            if partner is not None:
                pair(session, row, partner, transfer_category=transfer_category)

        if row.category is None:
            outcome.needs_fallback.append(row.id)

    if job is not None:
        job.total_count += counts.total
        job.inserted_count += counts.inserted
        job.duplicates_count += counts.duplicates
        job.classified_count += counts.classified
        job.transfers_count += counts.transfers
    session.flush()
    _logger.info(
        "import:batch account_id=%s job_id=%s total=%d inserted=%d duplicates=%d "
        "classified=%d transfers=%d",
        account_id,
        import_job_id,
        counts.total,
        counts.inserted,
        counts.duplicates,
        counts.classified,
        counts.transfers,
    )
    return outcome


def apply_fallback(
    transaction_ids: Sequence[int],
    *,
    classifier: FallbackClassifier,
    database_url: str | None = None,
    concurrency: int | None = None,
) -> int:
    """Classify ``transaction_ids`` with the fallback; return how many got a category.

    Each row is read and written in its own short session so no connection
    is held across the network call. Rows that meanwhile gained a category
    or were reviewed are left as they are.
    """

    if not transaction_ids:
        return 0
    limit = concurrency or _env_int(_CONCURRENCY_ENV, _DEFAULT_CONCURRENCY)

    def _one(tx_id: int) -> bool:
        try:
            with session_scope(database_url=database_url) as session:
                tx = session.get(LedgerTransaction, tx_id)
                if tx is None or tx.category is not None:
                    return False
                payload = {
                    "date": tx.date.isoformat(),
                    "amount": tx.amount,
                    "direction": tx.direction,
                    "raw_vendor": tx.raw_vendor,
                    "normalized_vendor": tx.normalized_vendor,
                    "description": tx.description,
                }
            code = classifier.classify(payload)
            if code is None:
                return False
            with session_scope(database_url=database_url) as session:
                tx = session.get(LedgerTransaction, tx_id)
                if tx is None or tx.category is not None or tx.is_reviewed:
                    return False
                tx.category = code
                tx.confidence = "low"
            return True
        except SQLAlchemyError as e:
            _logger.warning(
                "import:fallback_store_failed tx_id=%s error=%s", tx_id, e.__class__.__name__
            )
            return False

    results = p_map(transaction_ids, _one, concurrency=limit)
    applied = sum(1 for ok in results if ok)
    _logger.info(
        "import:fallback_done requested=%d classified=%d", len(transaction_ids), applied
    )
    return applied


def run_fallback(
    transaction_ids: Sequence[int],
    *,
    database_url: str | None = None,
    fallback: FallbackClassifier | None = None,
    concurrency: int | None = None,
    import_job_id: int | None = None,
) -> int:
    """Run the fallback phase after a committed batch; return the classified count.

    Without an explicit ``fallback`` one is built from the environment and the
    active taxonomy; no API key means no fallback. When ``import_job_id`` is
    given its ``classified_count`` is increased by the result.
    """

    if not transaction_ids:
        return 0
    classifier = fallback
    if classifier is None:
        with session_scope(database_url=database_url) as session:
            taxonomy = [dict(c) for c in list_categories(session)]
        classifier = default_fallback(taxonomy)
        if classifier is None:
            return 0
    applied = apply_fallback(
        transaction_ids,
        classifier=classifier,
        database_url=database_url,
        concurrency=concurrency,
    )
    if applied and import_job_id is not None:
        with session_scope(database_url=database_url) as session:
            job = session.get(ImportJob, import_job_id)
            if job is not None:
                job.classified_count += applied
    return applied


def _record_failure(
    *,
    database_url: str | None,
    account_id: int,
    filename: str,
    file_hash: str,
    metadata: Mapping[str, str],
    warnings: Sequence[ParseWarning],
    error: BaseException,
) -> int | None:
    try:
        with session_scope(database_url=database_url) as session:
            job = ImportJob(
                account_id=account_id,
                filename=filename,
                file_hash=file_hash,
                issuer=metadata.get("issuer"),
                format=metadata.get("format"),
                status="failed",
                warnings=[w.to_dict() for w in warnings],
                errors=[{"type": error.__class__.__name__, "message": str(error)}],
                meta=dict(metadata),
                completed_at=_now(),
            )
            session.add(job)
            session.flush()
            return job.id
    except SQLAlchemyError as e:
        _logger.error(
            "import:failure_not_recorded filename=%s error=%s", filename, e.__class__.__name__
        )
        return None


def import_statement(
    data: bytes,
    *,
    filename: str,
    account_id: int,
    issuer: str | None = None,
    database_url: str | None = None,
    fallback: FallbackClassifier | None = None,
    use_fallback: bool = True,
    fallback_concurrency: int | None = None,
) -> ImportResult:
    """Import one statement document into ``account_id``.

    Parameters
    ----------
    data, filename:
        Raw document bytes; the extension picks the text extractor.
    issuer:
        ``"ing"`` or ``"dkb"`` to skip issuer detection.
    fallback:
        Classifier for rows no rule matched. When ``None`` and
        ``use_fallback`` is true, one is built from the environment (and
        skipped without ``OPENAI_API_KEY``).

    Raises
    ------
    BadInputError, UnrecognizedFormatError, ExtractionError
        Before anything is persisted.
    UpstreamFailError
        When the database fails mid-import; a failed job is recorded when
        possible and no transactions are kept.
    """

    text = extract_text(data, filename)
    parsed = parse_document(text, filename=filename, issuer=issuer)
    file_hash = hashlib.sha256(data).hexdigest()
    metadata = dict(parsed.metadata)

    try:
        with session_scope(database_url=database_url) as session:
            require_account(session, account_id)
            previous = session.execute(
                select(ImportJob.id)
                .where(
                    ImportJob.account_id == account_id,
                    ImportJob.file_hash == file_hash,
                    ImportJob.status == "completed",
                )
                .limit(1)
            ).scalar_one_or_none()
            if previous is not None:
                _logger.info(
                    "import:same_file_again account_id=%s previous_job_id=%s", account_id, previous
                )

            job = ImportJob(
                account_id=account_id,
                filename=filename,
                file_hash=file_hash,
                issuer=metadata.get("issuer"),
                format=metadata.get("format"),
                status="pending",
                total_count=0,
                inserted_count=0,
                duplicates_count=0,
                classified_count=0,
                transfers_count=0,
                warnings=[w.to_dict() for w in parsed.warnings],
                errors=[],
                meta=metadata,
            )
            session.add(job)
            session.flush()
            job.status = "processing"

            outcome = import_transactions_batch(
                session,
                account_id=account_id,
                import_job_id=job.id,
                transactions=parsed.transactions,
            )
            job.status = "completed"
            job.completed_at = _now()
            job_id = job.id
    except IngestError:
        raise
    except Exception as e:
        failed_id = _record_failure(
            database_url=database_url,
            account_id=account_id,
            filename=filename,
            file_hash=file_hash,
            metadata=metadata,
            warnings=parsed.warnings,
            error=e,
        )
        _logger.error(
            "import:failed filename=%s job_id=%s error=%s", filename, failed_id, e.__class__.__name__
        )
        if isinstance(e, SQLAlchemyError):
            raise UpstreamFailError(
                "Ledger database unavailable; the import was rolled back",
                hint="Retry the upload",
            ) from e
        raise

    counts = outcome.counts
    if use_fallback:
        counts.classified += run_fallback(
            outcome.needs_fallback,
            database_url=database_url,
            fallback=fallback,
            concurrency=fallback_concurrency,
            import_job_id=job_id,
        )

    _logger.info(
        "import:done job_id=%d filename=%s inserted=%d duplicates=%d classified=%d "
        "transfers=%d warnings=%d",
        job_id,
        filename,
        counts.inserted,
        counts.duplicates,
        counts.classified,
        counts.transfers,
        len(parsed.warnings),
    )
    return ImportResult(
        job_id=job_id,
        status="completed",
        counts=counts,
        warnings=parsed.warnings,
        metadata=metadata,
    )


def rollback_import(session: Session, job_id: int) -> int:
    """Delete the rows a job inserted and mark it ``rolled_back``.

    Transfer partners in other imports are released from their group.
    Returns the number of deleted rows; rolling back twice deletes nothing.
    """

    job = session.get(ImportJob, job_id)
    if job is None:
        raise NotFoundError(f"Import job {job_id} not found")
    if job.status == "rolled_back":
        return 0
    if job.status != "completed":
        raise BadInputError(f"Import job {job_id} is {job.status}; only completed jobs roll back")

    rows = list(
        session.execute(
            select(LedgerTransaction).where(LedgerTransaction.import_job_id == job_id)
        ).scalars()
    )
    for row in rows:
        unpair(session, row)
    session.flush()
    for row in rows:
        session.delete(row)
    job.status = "rolled_back"
    job.meta = {**(job.meta or {}), "rolled_back_count": str(len(rows))}
    session.flush()
    _logger.info("import:rolled_back job_id=%d deleted=%d", job_id, len(rows))
    return len(rows)


__all__ = [
    "BatchOutcome",
    "ImportResult",
    "apply_fallback",
    "drafts_from_payload",
    "import_statement",
    "import_transactions_batch",
    "require_account",
    "run_fallback",
    "rollback_import",
]
