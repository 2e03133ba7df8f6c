"""Error kinds raised by the import pipeline.

Every error derives from :class:`LedgerImportError` so callers (the CLI) can
report the failing kind by class name. ``LedgerQueryError`` is the only kind
the pipeline absorbs; all others terminate the run.
"""

from __future__ import annotations


class LedgerImportError(Exception):
    """Base class for all pipeline failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InputFormatError(LedgerImportError, ValueError):
    """The payload is not JSON or lacks a well-formed ``transactions`` list."""


class DateParseError(LedgerImportError, ValueError):
    """A ``processDate`` value could not be converted to ``YYYY-MM-DD``."""


class AmountParseError(LedgerImportError, ValueError):
    """An ``amount`` value has no parsable digits after cleaning."""


class NoAccountsAvailable(LedgerImportError):
    """The ledger has no accounts at all."""


class AccountNotFound(LedgerImportError):
    """No ledger account matches the configured account name."""

    def __init__(self, account_name: str) -> None:
        super().__init__(f'Account with name "{account_name}" not found')
        self.account_name = account_name


class LedgerQueryError(LedgerImportError):
    """Reading existing transactions or accounts from the ledger failed."""


class LedgerCommitError(LedgerImportError):
    """Importing the accepted batch into the ledger failed."""


__all__ = [
    "LedgerImportError",
    "InputFormatError",
    "DateParseError",
    "AmountParseError",
    "NoAccountsAvailable",
    "AccountNotFound",
    "LedgerQueryError",
    "LedgerCommitError",
]
