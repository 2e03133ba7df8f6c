"""Field parsers: bank export values -> canonical transaction fields.

The bank history export writes dates as ``DD-MM-YYYY HH:MM:SS`` and amounts
as display strings (``"1,234"``) in whole currency units, with the direction
carried separately by the ``dorC`` marker. Canonical output uses
``YYYY-MM-DD`` dates and signed integer amounts in minor units (x100).
"""

from __future__ import annotations

import re
from datetime import date

from .errors import AmountParseError, DateParseError
from .logging_setup import get_logger
from .models import CanonicalTransaction, SourceRecord

logger = get_logger("ledger_import.parsers")

_NON_AMOUNT_CHARS = re.compile(r"[^-\d]")

DEBIT_MARKER = "D"
MINOR_UNITS = 100


def parse_date(raw: str) -> str:
    """Convert ``"DD-MM-YYYY <anything>"`` to ``"YYYY-MM-DD"``.

    Only the text before the first whitespace is considered. It must hold
    exactly three numeric ``-``-separated parts forming a real calendar date.
    """

    logger.debug("Parsing date from source format: %s", raw)
    head = raw.split(maxsplit=1)
    if not head:
        raise DateParseError(f"invalid date: {raw!r}")
    parts = head[0].split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise DateParseError(f"invalid date: {raw!r} (expected DD-MM-YYYY)")
    day, month, year = (int(p) for p in parts)
    try:
        iso = date(year, month, day).isoformat()
    except ValueError as exc:
        raise DateParseError(f"invalid date: {raw!r} ({exc})") from exc
    logger.debug("Converted to simple date format: %s", iso)
    return iso


def parse_amount(raw: str) -> int:
    """Convert a display amount to integer minor units.

    Every character other than digits and ``-`` is dropped, the rest is read
    as a base-10 integer and scaled by 100. A sign present in ``raw`` is kept;
    the debit/credit direction is applied by :func:`signed_amount`.
    """

    logger.debug("Parsing amount from string: %s", raw)
    cleaned = _NON_AMOUNT_CHARS.sub("", raw)
    if not any(ch.isdigit() for ch in cleaned):
        raise AmountParseError(f"invalid amount: {raw!r} (no digits)")
    try:
        value = int(cleaned, 10)
    except ValueError as exc:
        raise AmountParseError(f"invalid amount: {raw!r}") from exc
    minor = value * MINOR_UNITS
    logger.debug("Converted to minor units: %d", minor)
    return minor


def signed_amount(record: SourceRecord) -> int:
    """Amount in minor units, negated for debit (``"D"``) records."""

    amount = parse_amount(record.amount)
    return -amount if record.dor_c == DEBIT_MARKER else amount


def to_canonical(record: SourceRecord) -> CanonicalTransaction:
    """Build the canonical transaction for one source record.

    The payee is the counterparty name when the bank supplied one, otherwise
    the remark. The remark is always kept verbatim as notes.
    """

    return CanonicalTransaction(
        date=parse_date(record.process_date),
        amount=signed_amount(record),
        payee_name=record.corresponsive_name or record.remark,
        notes=record.remark,
        cleared=True,
    )


__all__ = ["parse_date", "parse_amount", "signed_amount", "to_canonical"]
