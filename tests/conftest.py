"""Pytest configuration for test isolation.

The CLI reads ``LEDGER_*`` settings from the environment (and from a ``.env``
in the working directory). To keep tests hermetic, every test starts with
those variables cleared and the local ledger data directory pointed at the
test's own temporary directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_LEDGER_ENV = (
    "LEDGER_SERVER_URL",
    "LEDGER_PASSWORD",
    "LEDGER_BUDGET_ID",
    "LEDGER_ACCOUNT_NAME",
    "LEDGER_DATA_DIR",
    "LEDGER_IMPORT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_ledger_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Clear ledger settings and use a per-test data directory."""

    for name in _LEDGER_ENV:
        monkeypatch.delenv(name, raising=False)
    data_dir = tmp_path / "ledger-data"
    monkeypatch.setenv("LEDGER_DATA_DIR", os.fspath(data_dir))
    # Keep a stray developer .env out of CLI runs.
    monkeypatch.chdir(tmp_path)
    return data_dir
