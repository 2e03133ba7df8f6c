"""Public interface for the ``ledger_import`` package.

Re-exports the parsers, duplicate detector, pipeline, models and error kinds
as the stable import surface. There is no runtime logic here.
"""

from .config import ImportConfig
from .duplicates import is_overlap
from .errors import (
    AccountNotFound,
    AmountParseError,
    DateParseError,
    InputFormatError,
    LedgerCommitError,
    LedgerImportError,
    LedgerQueryError,
    NoAccountsAvailable,
)
from .models import (
    Account,
    CanonicalTransaction,
    ExistingTransaction,
    FetchFailed,
    FetchOk,
    ImportReport,
    SourceRecord,
)
from .parsers import parse_amount, parse_date, signed_amount, to_canonical
from .pipeline import ReconciliationPipeline, load_source_records, resolve_date_range

__all__ = [
    # Parsing / detection
    "parse_date",
    "parse_amount",
    "signed_amount",
    "to_canonical",
    "is_overlap",
    # Pipeline
    "ReconciliationPipeline",
    "load_source_records",
    "resolve_date_range",
    "ImportConfig",
    # Models
    "SourceRecord",
    "CanonicalTransaction",
    "ExistingTransaction",
    "Account",
    "FetchOk",
    "FetchFailed",
    "ImportReport",
    # Errors
    "LedgerImportError",
    "InputFormatError",
    "DateParseError",
    "AmountParseError",
    "NoAccountsAvailable",
    "AccountNotFound",
    "LedgerQueryError",
    "LedgerCommitError",
]
