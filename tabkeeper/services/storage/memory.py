"""
In-Memory Storage Implementation

Used by tests and by runs without configured files. Behaves like the file
stores: snapshots are copied on the way in and out, and log lines are only
ever appended.
"""

from typing import Optional

from tabkeeper.models.transaction import AccountsMapping
from tabkeeper.services.storage.interface import (
    SnapshotStorageInterface,
    StorageIOError,
    TransactionLogStorageInterface,
)


def _copy(accounts: AccountsMapping) -> AccountsMapping:
    return {holder: dict(balances) for holder, balances in accounts.items()}


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Keeps the last saved snapshot in memory."""

    def __init__(self, initial: Optional[AccountsMapping] = None):
        self._snapshot: Optional[AccountsMapping] = (
            _copy(initial) if initial is not None else None
        )
        self.save_count = 0

    @property
    def snapshot(self) -> Optional[AccountsMapping]:
        """The stored snapshot, or None if nothing was saved yet."""
        return self._snapshot

    async def save(self, snapshot: AccountsMapping) -> None:
        self._snapshot = _copy(snapshot)
        self.save_count += 1

    async def load(self) -> AccountsMapping:
        if self._snapshot is None:
            return {}
        return _copy(self._snapshot)


class InMemoryTransactionLogStorage(TransactionLogStorageInterface):
    """
    Collects log lines in a list.

    Set `fail` to make every append raise StorageIOError.
    """

    def __init__(self):
        self.lines: list[str] = []
        self.fail = False

    async def append_line(self, line: str) -> None:
        if self.fail:
            raise StorageIOError("Transaction log storage unavailable")
        self.lines.append(line)
