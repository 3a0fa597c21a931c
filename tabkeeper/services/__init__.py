"""Services package."""

from tabkeeper.services.storage import (
    CorruptDataError,
    InMemorySnapshotStorage,
    InMemoryTransactionLogStorage,
    JsonFileSnapshotStorage,
    SnapshotStorageInterface,
    StorageError,
    StorageIOError,
    TextFileTransactionLogStorage,
    TransactionLogStorageInterface,
)

__all__ = [
    "CorruptDataError",
    "InMemorySnapshotStorage",
    "InMemoryTransactionLogStorage",
    "JsonFileSnapshotStorage",
    "SnapshotStorageInterface",
    "StorageError",
    "StorageIOError",
    "TextFileTransactionLogStorage",
    "TransactionLogStorageInterface",
]
