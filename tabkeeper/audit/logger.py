"""
Transaction Log

Every committed ledger mutation is written as one human-readable line to an
append-only store, and emitted as a structured log event.

The transaction log:
- Is an audit trail, not the system of record (the snapshot is)
- Never rolls back a committed mutation: write failures are logged and
  reported as False
- Writes lines in commit order

Commit order holds because appends go through a FIFO asyncio.Lock and the
ledger releases its write lock without suspending: the committing task
reaches append() and queues on the lock before any later mutation can
commit.
"""

import asyncio
import logging
from typing import Callable, Optional

import structlog

from tabkeeper.money import MoneyCodec
from tabkeeper.models.transaction import Identity, Transaction, TransactionKind
from tabkeeper.services.storage import StorageError, TransactionLogStorageInterface


def _configure_structlog(renderer) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
_configure_structlog(structlog.processors.JSONRenderer())


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Route structlog through stdlib logging at `level`.

    JSON lines for production, the console renderer for interactive use.
    """
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    _configure_structlog(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )


class TransactionLog:
    """
    Append-only audit trail of committed transactions.

    Logs events both to:
    1. Structured local log (for operators)
    2. The transaction log storage (one text line per transaction)
    """

    def __init__(
        self,
        storage: Optional[TransactionLogStorageInterface] = None,
        codec: Optional[MoneyCodec] = None,
        display_name: Callable[[Identity], str] = str,
    ):
        """
        Initialize the transaction log.

        Args:
            storage: Storage backend for the lines.
                    If None, only logs locally.
            codec: Formats amounts in the lines.
            display_name: Renders identities in the lines.
        """
        self._storage = storage
        self._codec = codec or MoneyCodec()
        self._display_name = display_name
        self._write_lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    def format_line(self, transaction: Transaction) -> str:
        """Render a transaction as one human-readable line."""
        initiator = self._display_name(transaction.initiator)
        amount = self._codec.format(transaction.amount)
        header = f"#{transaction.sequence} {transaction.committed_at.isoformat()}"

        if transaction.kind == TransactionKind.DEBT:
            recipient = self._display_name(transaction.recipient)
            body = f"{initiator} owes {amount} to {recipient}"
        else:
            names = ", ".join(self._display_name(r) for r in transaction.recipients)
            body = (
                f"{initiator} billed {amount} to "
                f"{len(transaction.recipients)} users ({names})"
            )

        # One transaction per line, whatever the user typed.
        description = " ".join(transaction.description.split())
        return f"{header} {body} for {description}"

    async def append(self, transaction: Transaction) -> bool:
        """
        Log a committed transaction.

        Always logs locally. Persists to storage if available.

        Returns True if the storage write succeeded (or no storage configured).
        """
        line = self.format_line(transaction)

        async with self._write_lock:
            self._logger.info("transaction_committed", **transaction.to_log_dict())

            if self._storage is None:
                return True

            try:
                await self._storage.append_line(line)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "transaction_log_write_failed",
                    error=str(e),
                    sequence=transaction.sequence,
                    line=line,
                )
                return False

        return True
