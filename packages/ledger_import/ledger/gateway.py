"""Interface the pipeline expects from a ledger backend.

Any object with these three methods can serve as the destination ledger;
:class:`~ledger_import.ledger.sql.SqlLedgerGateway` is the bundled adapter.
Every method may raise; the pipeline decides which failures are fatal.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from ..models import Account, CanonicalTransaction, ExistingTransaction


class LedgerGateway(Protocol):
    def list_accounts(self) -> Sequence[Account]: ...

    def list_transactions(
        self, account_id: str, start: date, end: date
    ) -> Sequence[ExistingTransaction]:
        """Transactions of ``account_id`` dated within ``[start, end]``."""
        ...

    def import_transactions(
        self, account_id: str, transactions: Sequence[CanonicalTransaction]
    ) -> None:
        """Store the whole batch in one call; all or nothing."""
        ...


__all__ = ["LedgerGateway"]
