# ruff: noqa: I001
"""CLI for the ``ledger_import`` package.

Command handlers (``cmd_*``) hold the flow and return process exit codes; the
Typer commands below are thin wrappers that build an :class:`ImportConfig`
from the environment (``.env`` is loaded by the root callback via
``python-dotenv``) plus CLI overrides, then delegate.
"""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import ImportConfig
from .errors import LedgerImportError
from .logging_setup import configure_logging
from .models import ImportReport
from .pipeline import DecisionFn

BACKUP_QUESTION = (
    "Have you manually backed up your ledger data? This is critical in case "
    "something goes wrong with the import."
)
PAYLOAD_PROMPT = (
    "Paste the JSON response from getHistTransactions API "
    "(Esc then Enter to submit, Ctrl-X Ctrl-E to open $EDITOR):"
)


class DuplicatePolicy(str, Enum):
    ask = "ask"
    skip = "skip"
    keep = "keep"


def decision_policy(policy: DuplicatePolicy) -> DecisionFn:
    """Map a ``--on-duplicate`` choice to a decision function."""

    if policy is DuplicatePolicy.skip:
        return lambda _message, _default: False
    if policy is DuplicatePolicy.keep:
        return lambda _message, _default: True

    from .term_ui import confirm

    return lambda message, default: confirm(message, default=default)


def _print_report(report: ImportReport, *, account_name: str) -> None:
    if report.existing_fetch_failed:
        print(
            "Warning: could not load existing transactions; duplicate detection was skipped.",
            file=sys.stderr,
        )
    first, last = report.date_range
    print(f"Processed transactions from {first} to {last}.")
    if report.skipped:
        print(f"Skipped {len(report.skipped)} duplicate transaction(s).")
    if report.committed:
        print(f"Successfully added {len(report.accepted)} transaction(s) to '{account_name}'.")
    else:
        print("No new transactions to import.")


def cmd_import(
    config: ImportConfig,
    *,
    json_file: Path | None = None,
    assume_backup: bool = False,
    on_duplicate: DuplicatePolicy = DuplicatePolicy.ask,
) -> int:
    """Run one import: backup check → payload → pipeline → summary.

    Errors are written to stderr as ``Error: <kind>: <message>`` and the
    function returns ``1``; on success it returns ``0``.
    """

    # Local imports keep ``--help`` fast
    from .ledger.sql import open_ledger
    from .pipeline import ReconciliationPipeline, load_source_records
    from .term_ui import confirm, editor_input

    account_name = config.account_name
    if not account_name:
        print(
            "Error: no destination account configured (set LEDGER_ACCOUNT_NAME or "
            "pass --account-name).",
            file=sys.stderr,
        )
        return 1

    try:
        if not assume_backup and not confirm(BACKUP_QUESTION, default=False):
            print("Please backup your data before proceeding.")
            return 0

        payload: str | bytes
        if json_file is not None:
            # Raw bytes; decoding errors surface as InputFormatError.
            try:
                payload = json_file.read_bytes()
            except FileNotFoundError:
                print(f"Error: File not found: {json_file}", file=sys.stderr)
                return 1
            except PermissionError:
                print(f"Error: Permission denied: {json_file}", file=sys.stderr)
                return 1
            except OSError as e:
                print(f"Error: Could not read {json_file}: {e}", file=sys.stderr)
                return 1
        else:
            payload = editor_input(PAYLOAD_PROMPT)

        # Reject malformed input before the ledger is opened.
        records = load_source_records(payload)

        with open_ledger(config) as ledger:
            pipeline = ReconciliationPipeline(
                ledger,
                account_name=account_name,
                decide=decision_policy(on_duplicate),
            )
            report = pipeline.run_records(records)
    except LedgerImportError as e:
        print(f"Error: {e.kind}: {e}", file=sys.stderr)
        print("Error occurred while processing transactions", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("Aborted.", file=sys.stderr)
        return 1

    _print_report(report, account_name=account_name)
    print("All transactions processed successfully")
    return 0


def cmd_accounts(config: ImportConfig) -> int:
    """Print ``<id>\\t<name>`` for each account visible in the ledger."""

    from .ledger.sql import open_ledger

    try:
        with open_ledger(config) as ledger:
            accounts = ledger.list_accounts()
    except LedgerImportError as e:
        print(f"Error: {e.kind}: {e}", file=sys.stderr)
        return 1

    if not accounts:
        print("No accounts found.")
        return 0
    for account in accounts:
        print(f"{account.id}\t{account.name}")
    return 0


def cmd_create_account(config: ImportConfig, name: str) -> int:
    from .ledger.sql import open_ledger

    try:
        with open_ledger(config) as ledger:
            account = ledger.create_account(name)
    except LedgerImportError as e:
        print(f"Error: {e.kind}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Created account '{account.name}' (id={account.id})")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import a bank transaction history (JSON) into a ledger, asking before "
        "adding likely duplicates. Loads settings from a local .env first."
    ),
)


def _build_config(
    *,
    server_url: str | None,
    budget_id: str | None,
    account_name: str | None,
    data_dir: Path | None,
) -> ImportConfig:
    config = ImportConfig.from_env().with_overrides(
        server_url=server_url,
        budget_id=budget_id,
        account_name=account_name,
        data_dir=data_dir,
    )
    config.log_summary()
    return config


@app.command("import")
def import_cmd(
    *,
    json_file: Path | None = typer.Option(
        None,
        "--json-file",
        help="Read the bank JSON from a file instead of the editor prompt.",
        dir_okay=False,
    ),
    account_name: str | None = typer.Option(
        None, help="Destination account name (falls back to LEDGER_ACCOUNT_NAME)."
    ),
    budget_id: str | None = typer.Option(
        None, help="Ledger/budget identifier (falls back to LEDGER_BUDGET_ID)."
    ),
    server_url: str | None = typer.Option(
        None, help="Ledger database URL (falls back to LEDGER_SERVER_URL)."
    ),
    data_dir: Path | None = typer.Option(
        None, help="Local ledger data directory (falls back to LEDGER_DATA_DIR)."
    ),
    assume_backup: bool = typer.Option(
        False, "--assume-backup", help="Skip the backup confirmation prompt."
    ),
    on_duplicate: DuplicatePolicy = typer.Option(
        DuplicatePolicy.ask,
        help="What to do with likely duplicates: ask, skip, or keep.",
    ),
) -> None:
    """Import one JSON batch into the configured account."""

    config = _build_config(
        server_url=server_url,
        budget_id=budget_id,
        account_name=account_name,
        data_dir=data_dir,
    )
    raise typer.Exit(
        cmd_import(
            config,
            json_file=json_file,
            assume_backup=assume_backup,
            on_duplicate=on_duplicate,
        )
    )


@app.command("accounts")
def accounts_cmd(
    *,
    budget_id: str | None = typer.Option(None, help="Override LEDGER_BUDGET_ID."),
    server_url: str | None = typer.Option(None, help="Override LEDGER_SERVER_URL."),
    data_dir: Path | None = typer.Option(None, help="Override LEDGER_DATA_DIR."),
) -> None:
    """List accounts in the ledger."""

    config = _build_config(
        server_url=server_url, budget_id=budget_id, account_name=None, data_dir=data_dir
    )
    raise typer.Exit(cmd_accounts(config))


@app.command("create-account")
def create_account_cmd(
    name: str = typer.Argument(..., help="Name of the account to create."),
    *,
    budget_id: str | None = typer.Option(None, help="Override LEDGER_BUDGET_ID."),
    server_url: str | None = typer.Option(None, help="Override LEDGER_SERVER_URL."),
    data_dir: Path | None = typer.Option(None, help="Override LEDGER_DATA_DIR."),
) -> None:
    """Create an account in the ledger."""

    config = _build_config(
        server_url=server_url, budget_id=budget_id, account_name=None, data_dir=data_dir
    )
    raise typer.Exit(cmd_create_account(config, name))


@app.callback()
def _root(
    *,
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to LEDGER_IMPORT_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding
    already-set environment variables), then configures logging. ``.env`` is
    loaded first so it can supply ``LEDGER_IMPORT_LOG_LEVEL``.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


if __name__ == "__main__":  # pragma: no cover
    app()
