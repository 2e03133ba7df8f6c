"""Data models for ``ledger_import``.

- ``SourceRecord``: one bank transaction as delivered in the JSON payload,
  validated with pydantic (camelCase keys as exported by the bank).
- ``CanonicalTransaction``: the normalized, ledger-ready record.
- ``ExistingTransaction`` / ``Account``: read-only ledger-side views.
- ``FetchOk`` / ``FetchFailed``: outcome of the best-effort existing
  transaction lookup.
- ``ImportReport``: summary of one pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from .errors import LedgerQueryError

# ---------------------------------------------------------------------------
# Source side
# ---------------------------------------------------------------------------


class SourceRecord(BaseModel):
    """A raw transaction from the bank's history export.

    Only the fields used by the import are declared; any other keys present
    in the payload are ignored. Values must be strings exactly as exported so
    amount cleaning never sees a float.
    """

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    process_date: str = Field(alias="processDate")
    amount: str
    dor_c: str = Field(alias="dorC")
    remark: str
    corresponsive_name: str | None = Field(default=None, alias="corresponsiveName")


# ---------------------------------------------------------------------------
# Canonical / ledger side
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CanonicalTransaction:
    """A normalized transaction ready for import.

    ``amount`` is in minor currency units; negative values are debits.
    """

    date: str
    amount: int
    payee_name: str
    notes: str
    cleared: bool = True

    def to_ledger_payload(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "amount": self.amount,
            "payee_name": self.payee_name,
            "notes": self.notes,
            "cleared": self.cleared,
        }


@dataclass(frozen=True, slots=True)
class ExistingTransaction:
    """A transaction already stored in the ledger (same units as canonical)."""

    date: str
    amount: int
    id: str | None = None
    payee_name: str | None = None


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    name: str


# ---------------------------------------------------------------------------
# Existing-transaction lookup outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FetchOk:
    transactions: tuple[ExistingTransaction, ...]


@dataclass(frozen=True, slots=True)
class FetchFailed:
    error: LedgerQueryError


ExistingFetch: TypeAlias = FetchOk | FetchFailed
"""Result of the existing-transaction lookup; failure carries the error."""


# ---------------------------------------------------------------------------
# Run summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImportReport:
    """Outcome of one pipeline run.

    Attributes
    ----------
    accepted:
        Transactions chosen for commit, in input order.
    skipped:
        Overlapping transactions the decision function declined.
    overlaps:
        Number of candidates that matched an existing transaction.
    committed:
        ``True`` when the accepted batch was imported.
    account_id:
        Destination account id, set only when a commit happened.
    existing_fetch_failed:
        ``True`` when duplicate detection ran against an empty set because
        the ledger lookup failed.
    date_range:
        ``(first, last)`` dates resolved from the batch order.
    """

    accepted: tuple[CanonicalTransaction, ...]
    skipped: tuple[CanonicalTransaction, ...]
    overlaps: int
    committed: bool
    account_id: str | None
    existing_fetch_failed: bool
    date_range: tuple[str, str]


__all__ = [
    "SourceRecord",
    "CanonicalTransaction",
    "ExistingTransaction",
    "Account",
    "FetchOk",
    "FetchFailed",
    "ExistingFetch",
    "ImportReport",
]
