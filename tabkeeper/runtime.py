"""
Process Runtime

Owns the lifecycle around the ledger:

1. start()     -> load the snapshot and restore the ledger before any command
2. submit()    -> run each command as its own task on the event loop
3. shutdown()  -> stop intake, drain in-flight commands, snapshot, save

Termination signals (SIGINT, SIGTERM) only set a stop event; the shutdown
itself runs on the event loop like any other handler, so it waits for
in-flight mutations instead of killing them.

A corrupt snapshot at startup is fatal and propagates to the caller. A
failed save at shutdown is logged and reported, never fatal.
"""

import asyncio
import signal
from collections.abc import AsyncIterator, Awaitable
from typing import Callable, Optional, Union

import structlog

from tabkeeper.audit import TransactionLog
from tabkeeper.config import Settings, get_settings
from tabkeeper.ledger import Ledger
from tabkeeper.money import MoneyCodec
from tabkeeper.models.commands import (
    BalanceCommand,
    CommandResult,
    DebtCommand,
    SplitCommand,
)
from tabkeeper.models.errors import CommandError, ErrorKind
from tabkeeper.models.transaction import Identity
from tabkeeper.orchestrator import CommandProcessor
from tabkeeper.services.storage import (
    JsonFileSnapshotStorage,
    SnapshotStorageInterface,
    StorageError,
    TextFileTransactionLogStorage,
)


logger = structlog.get_logger(__name__)

AnyCommand = Union[DebtCommand, SplitCommand, BalanceCommand]
ResultCallback = Callable[[CommandResult], Awaitable[None]]

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LedgerRuntime:
    """
    Runs commands against one ledger and persists it across restarts.
    """

    def __init__(
        self,
        ledger: Ledger,
        processor: CommandProcessor,
        snapshot_storage: SnapshotStorageInterface,
    ):
        self._ledger = ledger
        self._processor = processor
        self._snapshot_storage = snapshot_storage
        self._in_flight: set[asyncio.Task] = set()
        self._closing = False
        self._shutdown_result: Optional[bool] = None

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def processor(self) -> CommandProcessor:
        return self._processor

    @property
    def closing(self) -> bool:
        return self._closing

    @property
    def in_flight(self) -> int:
        """Number of commands currently running."""
        return len(self._in_flight)

    async def start(self) -> None:
        """
        Restore the ledger from the snapshot storage.

        Raises:
            CorruptDataError: If the snapshot cannot be decoded
            StorageIOError: If the snapshot cannot be read
        """
        accounts = await self._snapshot_storage.load()
        await self._ledger.restore(accounts)
        logger.info("runtime_started", accounts=len(accounts))

    async def submit(self, command: AnyCommand) -> CommandResult:
        """
        Run a command to completion as a tracked task.

        After shutdown has begun the command is rejected, still with a
        response string.
        """
        if self._closing:
            error = CommandError(
                kind=ErrorKind.UNAVAILABLE,
                message="The ledger is shutting down",
            )
            return CommandResult(
                response=f"Command not accepted: {error.message}",
                error=error,
            )

        task = asyncio.create_task(self._processor.execute(command))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        # Shielded: a cancelled caller must not abort a half-run command.
        return await asyncio.shield(task)

    async def shutdown(self) -> bool:
        """
        Drain in-flight commands, then snapshot and save the ledger.

        Idempotent. Returns True if the snapshot was saved.
        """
        if self._shutdown_result is not None:
            return self._shutdown_result

        self._closing = True
        logger.info("shutdown_started", in_flight=len(self._in_flight))

        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

        # The read lock waits for any mutation still holding the write lock;
        # the copy is written after the lock is released.
        accounts = await self._ledger.snapshot()
        try:
            await self._snapshot_storage.save(accounts)
            saved = True
        except StorageError as e:
            logger.error("snapshot_save_failed", error=str(e), kind=e.kind.value)
            saved = False

        self._shutdown_result = saved
        logger.info("shutdown_complete", saved=saved, accounts=len(accounts))
        return saved

    def install_signal_handlers(self, stop_event: asyncio.Event) -> None:
        """Set `stop_event` on SIGINT and SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, sig, stop_event)

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals, stop_event: asyncio.Event) -> None:
        logger.info("signal_received", signal=sig.name)
        stop_event.set()

    async def serve(
        self,
        commands: AsyncIterator[AnyCommand],
        on_result: Optional[ResultCallback] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> bool:
        """
        Start, run every command from `commands` concurrently, shut down.

        Stops taking commands when the iterator is exhausted or
        `stop_event` is set. Returns the result of shutdown().
        """
        stop_event = stop_event or asyncio.Event()
        await self.start()

        async def handle(command: AnyCommand) -> None:
            result = await self.submit(command)
            if on_result is not None:
                await on_result(result)

        handlers: set[asyncio.Task] = set()
        intake = asyncio.create_task(
            self._intake(commands, handle, handlers)
        )
        stopper = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait(
                {intake, stopper},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stopper.cancel()
            if not intake.done():
                intake.cancel()
            await asyncio.gather(intake, stopper, return_exceptions=True)

        if not intake.cancelled() and intake.exception() is None:
            # Source exhausted: every command already read still runs.
            if handlers:
                await asyncio.gather(*handlers, return_exceptions=True)

        saved = await self.shutdown()
        if handlers:
            await asyncio.gather(*handlers, return_exceptions=True)

        if not intake.cancelled() and intake.exception() is not None:
            raise intake.exception()
        return saved

    async def _intake(
        self,
        commands: AsyncIterator[AnyCommand],
        handle: Callable[[AnyCommand], Awaitable[None]],
        handlers: set[asyncio.Task],
    ) -> None:
        async for command in commands:
            task = asyncio.create_task(handle(command))
            handlers.add(task)
            task.add_done_callback(handlers.discard)


def create_runtime(
    settings: Optional[Settings] = None,
    display_name: Callable[[Identity], str] = str,
) -> LedgerRuntime:
    """
    Factory function wiring settings, file storages and the ledger.
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger
    storage_settings = settings.storage

    snapshot_storage = JsonFileSnapshotStorage(
        storage_settings.snapshot_path,
        write_attempts=storage_settings.snapshot_write_attempts,
    )
    transaction_log = TransactionLog(
        TextFileTransactionLogStorage(storage_settings.transaction_log_path),
        codec=MoneyCodec(ledger_settings.currency_symbol),
        display_name=display_name,
    )

    ledger = Ledger()
    processor = CommandProcessor(
        ledger,
        transaction_log=transaction_log,
        settings=ledger_settings,
        display_name=display_name,
    )
    return LedgerRuntime(ledger, processor, snapshot_storage)
