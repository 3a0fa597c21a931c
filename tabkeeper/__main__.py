"""
Local command source: ``python -m tabkeeper``

Reads one JSON command per line from stdin and prints each response:

    {"type": "debt", "initiator": 1, "recipient": 2, "amount": "5", "description": "lunch"}
    {"type": "split", "initiator": 1, "recipients": [2, 3], "amount": "$12.50", "description": "pizza"}
    {"type": "balance", "subject": 2}

Stops on EOF, SIGINT or SIGTERM; the ledger is snapshotted before exit.
Exit status is 1 only when the snapshot cannot be restored at startup.
"""

import asyncio
import sys
import threading
from collections.abc import AsyncIterator
from typing import Optional

import structlog
from pydantic import ValidationError

from tabkeeper.audit import configure_logging
from tabkeeper.config import Settings, get_settings
from tabkeeper.models.commands import CommandResult, command_adapter
from tabkeeper.runtime import AnyCommand, create_runtime
from tabkeeper.services.storage import StorageError


logger = structlog.get_logger(__name__)


def _pump_stdin(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    # Runs in a daemon thread; the loop may already be closed.
    try:
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(queue.put_nowait, line)
        except OSError as e:
            logger.error("stdin_read_failed", error=str(e))
        loop.call_soon_threadsafe(queue.put_nowait, None)
    except RuntimeError:
        return


def parse_command(line: str) -> AnyCommand:
    """
    Decode one JSON command.

    Raises:
        ValidationError: If the line is not a known command
    """
    return command_adapter.validate_json(line)


async def read_commands(queue: asyncio.Queue) -> AsyncIterator[AnyCommand]:
    """Yield commands from queued stdin lines until EOF (None)."""
    while True:
        line = await queue.get()
        if line is None:
            return
        line = line.strip()
        if not line:
            continue
        try:
            yield parse_command(line)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "command"
            print(f"Invalid command ({location}): {first['msg']}", flush=True)


async def print_result(result: CommandResult) -> None:
    print(result.response, flush=True)


async def run(settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    logging_settings = settings.logging
    configure_logging(logging_settings.level, logging_settings.json_output)

    runtime = create_runtime(settings)
    stop_event = asyncio.Event()
    runtime.install_signal_handlers(stop_event)

    queue: asyncio.Queue = asyncio.Queue()
    reader = threading.Thread(
        target=_pump_stdin,
        args=(asyncio.get_running_loop(), queue),
        name="tabkeeper-stdin",
        daemon=True,
    )
    reader.start()

    try:
        await runtime.serve(read_commands(queue), print_result, stop_event)
    except StorageError as e:
        logger.critical(
            "snapshot_restore_failed",
            error=str(e),
            kind=e.kind.value,
        )
        return 1
    finally:
        runtime.remove_signal_handlers()

    return 0


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
