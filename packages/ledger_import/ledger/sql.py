"""SQL-backed ledger adapter implementing :class:`LedgerGateway`.

Accounts and transactions live in two tables (see :mod:`.models`). Accounts
may be scoped to a budget id; a gateway opened for a budget only sees that
budget's accounts. Batch imports run in a single session scope, so a failure
part-way leaves the ledger untouched.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import ImportConfig
from ..errors import LedgerCommitError, LedgerQueryError
from ..logging_setup import get_logger
from ..models import Account, CanonicalTransaction, ExistingTransaction
from .client import (
    create_ledger_engine,
    make_session_factory,
    resolve_database_url,
    session_scope,
)
from .models import Base, LedgerAccount, LedgerTransaction

logger = get_logger("ledger_import.ledger.sql")


def _account_pk(account_id: str) -> int:
    try:
        return int(account_id)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid account id: {account_id!r}") from exc


class SqlLedgerGateway:
    """Ledger gateway over a SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, budget_id: str | None = None) -> None:
        self._engine = engine
        self._sessions: sessionmaker[Session] = make_session_factory(engine)
        self._budget_id = budget_id

    @property
    def budget_id(self) -> str | None:
        return self._budget_id

    def ensure_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def _account_filter(self):
        if self._budget_id is None:
            return LedgerAccount.budget_id.is_(None)
        return LedgerAccount.budget_id == self._budget_id

    # ---- accounts ---------------------------------------------------------

    def list_accounts(self) -> list[Account]:
        try:
            with session_scope(self._sessions) as session:
                rows = session.scalars(
                    select(LedgerAccount).where(self._account_filter()).order_by(LedgerAccount.id)
                ).all()
                return [Account(id=str(r.id), name=r.name) for r in rows]
        except SQLAlchemyError as exc:
            raise LedgerQueryError(f"failed to list accounts: {exc}") from exc

    def create_account(self, name: str) -> Account:
        """Add an account to the current budget scope and return it."""

        clean = name.strip()
        if not clean:
            raise ValueError("account name must be non-empty")
        try:
            with session_scope(self._sessions) as session:
                row = LedgerAccount(budget_id=self._budget_id, name=clean)
                session.add(row)
                session.flush()
                account = Account(id=str(row.id), name=row.name)
        except SQLAlchemyError as exc:
            raise LedgerCommitError(f"failed to create account {clean!r}: {exc}") from exc
        logger.info("Created account %r (id=%s)", account.name, account.id)
        return account

    # ---- transactions -----------------------------------------------------

    def list_transactions(
        self, account_id: str, start: date, end: date
    ) -> list[ExistingTransaction]:
        try:
            pk = _account_pk(account_id)
            with session_scope(self._sessions) as session:
                rows = session.scalars(
                    select(LedgerTransaction)
                    .where(LedgerTransaction.account_id == pk)
                    .where(LedgerTransaction.date >= start)
                    .where(LedgerTransaction.date <= end)
                    .order_by(LedgerTransaction.date, LedgerTransaction.id)
                ).all()
                return [
                    ExistingTransaction(
                        date=r.date.isoformat(),
                        amount=int(r.amount),
                        id=str(r.id),
                        payee_name=r.payee_name,
                    )
                    for r in rows
                ]
        except (SQLAlchemyError, ValueError) as exc:
            raise LedgerQueryError(
                f"failed to list transactions for account {account_id}: {exc}"
            ) from exc

    def import_transactions(
        self, account_id: str, transactions: Sequence[CanonicalTransaction]
    ) -> None:
        items = list(transactions)
        if not items:
            return
        try:
            pk = _account_pk(account_id)
            with session_scope(self._sessions) as session:
                owner = session.scalars(
                    select(LedgerAccount.id)
                    .where(LedgerAccount.id == pk)
                    .where(self._account_filter())
                ).first()
                if owner is None:
                    raise LedgerCommitError(f"account {account_id} does not exist in this ledger")
                session.add_all(
                    LedgerTransaction(
                        account_id=pk,
                        date=date.fromisoformat(tx.date),
                        amount=tx.amount,
                        payee_name=tx.payee_name,
                        notes=tx.notes,
                        cleared=tx.cleared,
                    )
                    for tx in items
                )
        except LedgerCommitError:
            raise
        except (SQLAlchemyError, ValueError) as exc:
            raise LedgerCommitError(f"failed to import {len(items)} transaction(s): {exc}") from exc
        logger.info("Stored %d transaction(s) in account %s", len(items), account_id)


@contextmanager
def open_ledger(config: ImportConfig) -> Iterator[SqlLedgerGateway]:
    """Open the configured ledger for the duration of a ``with`` block.

    Creates the data directory and schema when missing and disposes of the
    engine on exit. Any failure to reach the ledger (unwritable data
    directory, malformed URL, unknown dialect, unreachable server) is raised
    as ``LedgerQueryError``.
    """

    logger.info("Opening ledger...")
    engine: Engine | None = None
    try:
        try:
            config.data_dir.mkdir(parents=True, exist_ok=True)
            url = resolve_database_url(
                config.server_url, password=config.password, data_dir=config.data_dir
            )
            engine = create_ledger_engine(url)
            gateway = SqlLedgerGateway(engine, budget_id=config.budget_id)
            gateway.ensure_schema()
        except (SQLAlchemyError, OSError) as exc:
            raise LedgerQueryError(f"failed to open ledger: {exc}") from exc
        logger.info("Ledger opened (budget: %s)", config.budget_id or "default")
        yield gateway
    finally:
        if engine is not None:
            engine.dispose()


__all__ = ["SqlLedgerGateway", "open_ledger"]
