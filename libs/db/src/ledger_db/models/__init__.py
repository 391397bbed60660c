"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the ledger domain models used by ``ledger_ingest``.
"""

from .ledger import (
    Base,
    CategoryOverride,
    ImportJob,
    LedgerAccount,
    LedgerCategory,
    LedgerTransaction,
    VendorRule,
)

__all__ = [
    "Base",
    "CategoryOverride",
    "ImportJob",
    "LedgerAccount",
    "LedgerCategory",
    "LedgerTransaction",
    "VendorRule",
]
