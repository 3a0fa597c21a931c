"""
Shared fixtures for the Tabkeeper tests.

Everything runs against in-memory storage unless a test asks for a
temporary directory.
"""

import os
import tempfile
from pathlib import Path

import pytest

from tabkeeper.audit import TransactionLog
from tabkeeper.config import LedgerSettings, Settings, get_settings
from tabkeeper.ledger import Ledger
from tabkeeper.orchestrator import CommandProcessor
from tabkeeper.runtime import LedgerRuntime, create_runtime
from tabkeeper.services.storage import (
    InMemorySnapshotStorage,
    InMemoryTransactionLogStorage,
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep host TABKEEPER_* variables and cached settings out of tests."""
    for name in list(os.environ):
        if name.startswith("TABKEEPER_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()


@pytest.fixture
def log_storage() -> InMemoryTransactionLogStorage:
    return InMemoryTransactionLogStorage()


@pytest.fixture
def transaction_log(log_storage) -> TransactionLog:
    return TransactionLog(log_storage)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def processor(ledger, transaction_log, ledger_settings) -> CommandProcessor:
    return CommandProcessor(ledger, transaction_log, ledger_settings)


@pytest.fixture
def snapshot_storage() -> InMemorySnapshotStorage:
    return InMemorySnapshotStorage()


@pytest.fixture
def runtime(ledger, processor, snapshot_storage) -> LedgerRuntime:
    return LedgerRuntime(ledger, processor, snapshot_storage)


@pytest.fixture
def make_file_runtime(temp_dir, monkeypatch):
    """Factory for file-backed runtimes writing into temp_dir."""
    monkeypatch.setenv("TABKEEPER_SNAPSHOT_PATH", str(temp_dir / "accounts.json"))
    monkeypatch.setenv("TABKEEPER_TRANSACTION_LOG_PATH", str(temp_dir / "transactions.log"))

    def factory() -> LedgerRuntime:
        return create_runtime(Settings())

    return factory
