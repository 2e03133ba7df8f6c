"""Duplicate lookup against transactions already in the ledger.

Matching is heuristic: the bank export carries no identifier the ledger
knows about, so a candidate conflicts with an existing transaction when both
fall on the same day for (effectively) the same amount. The detector only
answers whether a conflict exists; choosing what to do is the caller's job.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import CanonicalTransaction, ExistingTransaction

# Amounts closer than one minor unit are treated as equal.
AMOUNT_TOLERANCE = 1


def is_overlap(
    candidate: CanonicalTransaction, existing: Iterable[ExistingTransaction]
) -> bool:
    return any(
        tx.date == candidate.date and abs(tx.amount - candidate.amount) < AMOUNT_TOLERANCE
        for tx in existing
    )


__all__ = ["is_overlap", "AMOUNT_TOLERANCE"]
