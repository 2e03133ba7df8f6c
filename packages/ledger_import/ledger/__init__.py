"""Ledger backend: the gateway interface plus the bundled SQL adapter."""

from .gateway import LedgerGateway
from .sql import SqlLedgerGateway, open_ledger

__all__ = ["LedgerGateway", "SqlLedgerGateway", "open_ledger"]
