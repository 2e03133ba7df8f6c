"""Runtime configuration read once at startup.

Values come from the environment (``.env`` is loaded by the CLI via
``python-dotenv`` before this module is consulted) and may be overridden by
CLI options. The resulting :class:`ImportConfig` is passed explicitly to the
ledger adapter and the pipeline; nothing here is read mid-run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from .logging_setup import get_logger

logger = get_logger("ledger_import.config")

DEFAULT_DATA_DIR = "./.ledger-data"

ENV_SERVER_URL = "LEDGER_SERVER_URL"
ENV_PASSWORD = "LEDGER_PASSWORD"
ENV_BUDGET_ID = "LEDGER_BUDGET_ID"
ENV_ACCOUNT_NAME = "LEDGER_ACCOUNT_NAME"
ENV_DATA_DIR = "LEDGER_DATA_DIR"


def _env(name: str) -> str | None:
    val = os.getenv(name)
    if val is None:
        return None
    val = val.strip()
    return val or None


@dataclass(frozen=True, slots=True)
class ImportConfig:
    """Connection and destination settings for one import run.

    Attributes
    ----------
    server_url:
        SQLAlchemy URL of the ledger database. ``None`` selects a SQLite file
        inside ``data_dir``.
    password:
        Credential injected into ``server_url`` when the URL has none.
    budget_id:
        Target ledger identifier; scopes which accounts are visible.
    account_name:
        Name of the destination account for the commit.
    data_dir:
        Working directory used by the local ledger (created on open).
    """

    server_url: str | None = None
    password: str | None = None
    budget_id: str | None = None
    account_name: str | None = None
    data_dir: Path = Path(DEFAULT_DATA_DIR)

    @classmethod
    def from_env(cls) -> ImportConfig:
        return cls(
            server_url=_env(ENV_SERVER_URL),
            password=_env(ENV_PASSWORD),
            budget_id=_env(ENV_BUDGET_ID),
            account_name=_env(ENV_ACCOUNT_NAME),
            data_dir=Path(_env(ENV_DATA_DIR) or DEFAULT_DATA_DIR),
        )

    def with_overrides(self, **overrides: object) -> ImportConfig:
        """Return a copy with every non-``None`` override applied."""

        values = {k: v for k, v in overrides.items() if v is not None}
        if "data_dir" in values:
            values["data_dir"] = Path(str(values["data_dir"]))
        return replace(self, **values)

    def summary_lines(self) -> list[str]:
        """Human-readable settings with the credential masked."""

        def _show(v: str | None) -> str:
            return v if v else "Not set"

        return [
            f"- {ENV_SERVER_URL}: {'****' if self.server_url else 'Not set'}",
            f"- {ENV_PASSWORD}: {'****' if self.password else 'Not set'}",
            f"- {ENV_BUDGET_ID}: {_show(self.budget_id)}",
            f"- {ENV_ACCOUNT_NAME}: {_show(self.account_name)}",
            f"- {ENV_DATA_DIR}: {self.data_dir}",
        ]

    def log_summary(self) -> None:
        logger.info("Configuration loaded:")
        for line in self.summary_lines():
            logger.info(line)


__all__ = ["ImportConfig", "DEFAULT_DATA_DIR"]
