"""
Abstract Storage Interface

Two stores back the ledger:

1. The snapshot store: the full ledger mapping, overwritten as a whole on
   shutdown and read once at startup.
2. The transaction log store: append-only lines, one per committed
   transaction. Never rewritten or truncated.

Concrete stores implement these interfaces (JSON/text files for
production, in-memory for tests and storage-less runs), so the runtime and
the transaction log never depend on a storage implementation.
"""

from abc import ABC, abstractmethod

from tabkeeper.models.errors import ErrorKind, TabkeeperError
from tabkeeper.models.transaction import AccountsMapping


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for ledger snapshot storage.

    Round-trip law: load() after save(x) returns x.
    """

    @abstractmethod
    async def save(self, snapshot: AccountsMapping) -> None:
        """
        Persist the full ledger state, replacing any previous snapshot.

        Args:
            snapshot: Copy of the ledger mapping

        Raises:
            StorageIOError: If the snapshot could not be written
        """
        pass

    @abstractmethod
    async def load(self) -> AccountsMapping:
        """
        Read the last saved ledger state.

        Returns:
            The ledger mapping; empty if nothing was ever saved

        Raises:
            CorruptDataError: If a snapshot exists but cannot be decoded
            StorageIOError: If the snapshot exists but cannot be read
        """
        pass


class TransactionLogStorageInterface(ABC):
    """
    Abstract interface for transaction log storage.

    Lines are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_line(self, line: str) -> None:
        """
        Durably append one line (without trailing newline).

        Raises:
            StorageIOError: If the line could not be written
        """
        pass


class StorageError(TabkeeperError):
    """Base exception for storage operations."""

    kind = ErrorKind.IO_ERROR


class StorageIOError(StorageError):
    """Filesystem failure while reading or writing."""

    kind = ErrorKind.IO_ERROR


class CorruptDataError(StorageError):
    """Stored data exists but cannot be decoded."""

    kind = ErrorKind.CORRUPT_DATA
