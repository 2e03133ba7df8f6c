"""Reconciliation pipeline: bank JSON batch -> accepted batch -> ledger.

Flow for one batch
------------------
1. Validate the payload (``transactions`` must be a non-empty list of
   well-formed records); failures raise ``InputFormatError`` before the
   ledger is touched.
2. Resolve the date range from the first and last record, in batch order.
3. Fetch existing ledger transactions in that range across all accounts.
   The lookup is best-effort: a failure yields ``FetchFailed`` and duplicate
   detection runs against an empty set.
4. For each record in order: normalize, check for an overlap, and when one
   exists ask the injected decision function whether to keep it anyway.
5. Commit the accepted batch to the configured account in one call; an empty
   batch skips the commit.

A malformed record (bad date or amount) aborts the whole run; nothing is
committed in that case.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any, TypeAlias

from pydantic import ValidationError

from .duplicates import is_overlap
from .errors import (
    AccountNotFound,
    InputFormatError,
    LedgerCommitError,
    LedgerQueryError,
    NoAccountsAvailable,
)
from .ledger.gateway import LedgerGateway
from .logging_setup import get_logger
from .models import (
    Account,
    CanonicalTransaction,
    ExistingFetch,
    ExistingTransaction,
    FetchFailed,
    FetchOk,
    ImportReport,
    SourceRecord,
)
from .parsers import parse_date, to_canonical

logger = get_logger("ledger_import.pipeline")

DecisionFn: TypeAlias = Callable[[str, bool], bool]
"""``(message, default) -> bool``; ``True`` keeps an overlapping record."""


# ----------------------------------------------------------------------------
# Validation and range resolution
# ----------------------------------------------------------------------------


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def load_source_records(payload: str | bytes | Mapping[str, Any]) -> list[SourceRecord]:
    """Decode ``payload`` and return its validated transaction records."""

    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InputFormatError(f"Invalid JSON input: {exc}") from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise InputFormatError("Invalid transactions data - expected a JSON object")
    raw = data.get("transactions")
    if not isinstance(raw, list):
        raise InputFormatError("Invalid transactions data - missing transactions array")
    if not raw:
        raise InputFormatError("Invalid transactions data - transactions array is empty")

    records: list[SourceRecord] = []
    for i, item in enumerate(raw):
        try:
            records.append(SourceRecord.model_validate(item))
        except ValidationError as exc:
            raise InputFormatError(
                f"Transaction #{i} is malformed: {_describe_validation_error(exc)}"
            ) from exc
    return records


def resolve_date_range(records: Sequence[SourceRecord]) -> tuple[str, str]:
    """Return ``(first, last)`` dates using the batch's own order.

    The batch is expected to be chronological; it is not sorted here.
    """

    first = parse_date(records[0].process_date)
    last = parse_date(records[-1].process_date)
    if first > last:
        logger.warning(
            "Batch is not in chronological order (%s > %s); existing-transaction lookup "
            "may miss duplicates",
            first,
            last,
        )
    return first, last


def describe_overlap(tx: CanonicalTransaction) -> str:
    return f"Transaction on {tx.date} for {tx.amount} already exists. Overwrite?"


# ----------------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------------


class ReconciliationPipeline:
    """Normalize a bank batch, resolve duplicates, and commit to the ledger.

    Parameters
    ----------
    ledger:
        Destination ledger (see :class:`~ledger_import.ledger.gateway.LedgerGateway`).
    account_name:
        Exact name of the account that receives the accepted batch.
    decide:
        Called once per overlapping record with a description and the default
        answer (``False``); returning ``True`` keeps the record.
    """

    def __init__(
        self,
        ledger: LedgerGateway,
        *,
        account_name: str,
        decide: DecisionFn,
    ) -> None:
        self._ledger = ledger
        self._account_name = account_name
        self._decide = decide

    # ---- existing lookup --------------------------------------------------

    def fetch_existing(self, start: str, end: str) -> ExistingFetch:
        """Collect ledger transactions in ``[start, end]`` across all accounts.

        Ledger query errors and connection-level ``OSError``s become
        ``FetchFailed``; anything else is a defect and propagates.
        """

        start_d, end_d = date.fromisoformat(start), date.fromisoformat(end)
        found: list[ExistingTransaction] = []
        try:
            for account in self._ledger.list_accounts():
                found.extend(self._ledger.list_transactions(account.id, start_d, end_d))
        except LedgerQueryError as exc:
            return FetchFailed(error=exc)
        except OSError as exc:
            err = LedgerQueryError(f"Error fetching existing transactions: {exc}")
            err.__cause__ = exc
            return FetchFailed(error=err)
        logger.info("Loaded %d existing transaction(s) between %s and %s", len(found), start, end)
        return FetchOk(transactions=tuple(found))

    # ---- per-record resolution --------------------------------------------

    def reconcile(
        self,
        records: Sequence[SourceRecord],
        existing: Sequence[ExistingTransaction],
    ) -> tuple[list[CanonicalTransaction], list[CanonicalTransaction], int]:
        """Return ``(accepted, skipped, overlap_count)`` for ``records``."""

        accepted: list[CanonicalTransaction] = []
        skipped: list[CanonicalTransaction] = []
        overlaps = 0
        for record in records:
            logger.info("Processing transaction: %s", record.remark)
            tx = to_canonical(record)
            logger.debug(
                "Transaction details: date=%s amount=%d payee=%s", tx.date, tx.amount, tx.payee_name
            )

            if is_overlap(tx, existing):
                overlaps += 1
                logger.info("Potential duplicate transaction detected on %s", tx.date)
                if not self._decide(describe_overlap(tx), False):
                    logger.info("Skipping transaction on %s", tx.date)
                    skipped.append(tx)
                    continue
                logger.info("User chose to overwrite existing transaction")

            accepted.append(tx)
        return accepted, skipped, overlaps

    # ---- commit -----------------------------------------------------------

    def resolve_account(self) -> Account:
        try:
            accounts = list(self._ledger.list_accounts())
        except Exception as exc:
            raise LedgerCommitError(f"Failed to list accounts: {exc}") from exc
        if not accounts:
            raise NoAccountsAvailable("No accounts found in the ledger")
        for account in accounts:
            if account.name == self._account_name:
                return account
        raise AccountNotFound(self._account_name)

    def commit(self, batch: Sequence[CanonicalTransaction]) -> str:
        """Import ``batch`` into the configured account; return its id."""

        account = self.resolve_account()
        logger.info("Adding %d transaction(s) to account %r...", len(batch), account.name)
        try:
            self._ledger.import_transactions(account.id, list(batch))
        except LedgerCommitError:
            logger.error("Error adding transactions to account %r", account.name)
            raise
        except Exception as exc:
            logger.error("Error adding transactions to account %r: %s", account.name, exc)
            raise LedgerCommitError(f"Failed to import transactions: {exc}") from exc
        logger.info("Successfully added %d transaction(s)", len(batch))
        return account.id

    # ---- orchestration ----------------------------------------------------

    def run(self, payload: str | bytes | Mapping[str, Any]) -> ImportReport:
        """Validate ``payload`` and run the full flow on its records."""

        return self.run_records(load_source_records(payload))

    def run_records(self, records: Sequence[SourceRecord]) -> ImportReport:
        if not records:
            raise InputFormatError("Invalid transactions data - transactions array is empty")
        first, last = resolve_date_range(records)

        fetched = self.fetch_existing(first, last)
        if isinstance(fetched, FetchFailed):
            logger.warning("%s; continuing without duplicate detection", fetched.error)
            existing: tuple[ExistingTransaction, ...] = ()
        else:
            existing = fetched.transactions

        logger.info("Starting transaction processing...")
        accepted, skipped, overlaps = self.reconcile(records, existing)

        account_id: str | None = None
        if accepted:
            account_id = self.commit(accepted)
        else:
            logger.info("No transactions to import")

        return ImportReport(
            accepted=tuple(accepted),
            skipped=tuple(skipped),
            overlaps=overlaps,
            committed=account_id is not None,
            account_id=account_id,
            existing_fetch_failed=isinstance(fetched, FetchFailed),
            date_range=(first, last),
        )


__all__ = [
    "DecisionFn",
    "ReconciliationPipeline",
    "describe_overlap",
    "load_source_records",
    "resolve_date_range",
]
