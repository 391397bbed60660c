"""Public interface for the ``ledger_ingest`` package.

Statement parsing, deduplicated import, rule-based classification with an
OpenAI fallback, cross-account transfer pairing, and learning from manual
corrections. Only symbol re-exports live here; the HTTP app
(:mod:`ledger_ingest.api`) and the CLI (:mod:`ledger_ingest.cli`) are
imported explicitly by their entry points.
"""

from .classifier import RuleMatch, RuleSet, classify
from .duplicates import compute_fingerprint, is_duplicate
from .errors import (
    BadInputError,
    ExtractionError,
    IngestError,
    NotFoundError,
    UnrecognizedFormatError,
    UpstreamFailError,
)
from .importer import (
    ImportResult,
    import_statement,
    import_transactions_batch,
    rollback_import,
)
from .ingest import detect_issuer, extract_text, parse_document
from .learning import apply_rule_retroactively, change_category, learn_from_override
from .models import DraftTransaction, ImportCounts, ParsedStatement, ParseWarning
from .normalizers import format_amount, normalize_vendor, parse_amount, parse_date
from .transfers import detect_transfer_keywords, find_pair, pair

__all__ = [
    # Pipeline
    "parse_document",
    "detect_issuer",
    "extract_text",
    "import_statement",
    "import_transactions_batch",
    "rollback_import",
    "ImportResult",
    # Deduplication / classification / transfers / learning
    "compute_fingerprint",
    "is_duplicate",
    "classify",
    "RuleSet",
    "RuleMatch",
    "detect_transfer_keywords",
    "find_pair",
    "pair",
    "change_category",
    "learn_from_override",
    "apply_rule_retroactively",
    # Normalization
    "parse_amount",
    "format_amount",
    "parse_date",
    "normalize_vendor",
    # Models / errors
    "DraftTransaction",
    "ParsedStatement",
    "ParseWarning",
    "ImportCounts",
    "IngestError",
    "BadInputError",
    "UnrecognizedFormatError",
    "ExtractionError",
    "UpstreamFailError",
    "NotFoundError",
]
