"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the ledger
snapshot and the transaction log. File-backed stores are used in
production; in-memory stores for tests.
"""

from tabkeeper.services.storage.interface import (
    CorruptDataError,
    SnapshotStorageInterface,
    StorageError,
    StorageIOError,
    TransactionLogStorageInterface,
)
from tabkeeper.services.storage.files import (
    SNAPSHOT_VERSION,
    JsonFileSnapshotStorage,
    SnapshotDocument,
    TextFileTransactionLogStorage,
    decode_identity,
    encode_identity,
)
from tabkeeper.services.storage.memory import (
    InMemorySnapshotStorage,
    InMemoryTransactionLogStorage,
)

__all__ = [
    # Interfaces
    "SnapshotStorageInterface",
    "TransactionLogStorageInterface",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    "StorageIOError",
    # File implementation
    "SNAPSHOT_VERSION",
    "JsonFileSnapshotStorage",
    "SnapshotDocument",
    "TextFileTransactionLogStorage",
    "decode_identity",
    "encode_identity",
    # In-memory implementation
    "InMemorySnapshotStorage",
    "InMemoryTransactionLogStorage",
]
