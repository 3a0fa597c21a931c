"""
Tests for the process runtime: restore, command intake, shutdown.
"""

import asyncio
import json

import pytest

from tabkeeper.models.commands import (
    BalanceCommand,
    DebtCommand,
    SplitCommand,
    command_adapter,
)
from tabkeeper.models.errors import ErrorKind
from tabkeeper.runtime import LedgerRuntime
from tabkeeper.services.storage import (
    CorruptDataError,
    InMemorySnapshotStorage,
    StorageIOError,
)


class FailingSnapshotStorage(InMemorySnapshotStorage):
    async def save(self, snapshot):
        raise StorageIOError("disk full")


def debt(amount="1", initiator=1, recipient=2):
    return DebtCommand(
        initiator=initiator, recipient=recipient, amount=amount, description="x",
    )


async def from_list(commands):
    for command in commands:
        yield command


class TestStartAndShutdown:
    """Tests for the restore/snapshot lifecycle."""

    @pytest.mark.asyncio
    async def test_start_restores_snapshot(self, ledger, processor):
        """Test balances saved by a previous run are visible after start."""
        storage = InMemorySnapshotStorage({1: {2: 700}, 2: {1: -700}})
        runtime = LedgerRuntime(ledger, processor, storage)

        await runtime.start()

        assert ledger.initialized
        assert await ledger.get_balance(1, 2) == 700

    @pytest.mark.asyncio
    async def test_start_without_snapshot(self, runtime, ledger):
        """Test a first run starts empty."""
        await runtime.start()

        assert ledger.initialized
        assert await ledger.snapshot() == {}

    @pytest.mark.asyncio
    async def test_shutdown_saves_state(self, runtime, snapshot_storage):
        """Test shutdown persists every committed mutation."""
        await runtime.start()
        await runtime.submit(debt("5"))

        assert await runtime.shutdown() is True
        assert snapshot_storage.snapshot == {2: {1: 500}, 1: {2: -500}}

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, runtime, snapshot_storage):
        """Test repeated shutdowns save once."""
        await runtime.start()

        assert await runtime.shutdown() is True
        assert await runtime.shutdown() is True
        assert snapshot_storage.save_count == 1

    @pytest.mark.asyncio
    async def test_commands_rejected_after_shutdown(self, runtime, ledger):
        """Test no mutation happens once shutdown began."""
        await runtime.start()
        await runtime.shutdown()

        result = await runtime.submit(debt())

        assert runtime.closing
        assert result.error.kind == ErrorKind.UNAVAILABLE
        assert result.response
        assert await ledger.snapshot() == {}

    @pytest.mark.asyncio
    async def test_shutdown_drains_in_flight(self, runtime, snapshot_storage):
        """Test commands submitted before shutdown are in the snapshot."""
        await runtime.start()

        submissions = [asyncio.create_task(runtime.submit(debt())) for _ in range(10)]
        await asyncio.sleep(0)
        saved = await runtime.shutdown()
        results = await asyncio.gather(*submissions)

        assert saved is True
        assert all(result.ok for result in results)
        assert snapshot_storage.snapshot[2][1] == 1000

    @pytest.mark.asyncio
    async def test_save_failure_is_reported(self, ledger, processor):
        """Test a failed save returns False instead of raising."""
        runtime = LedgerRuntime(ledger, processor, FailingSnapshotStorage())
        await runtime.start()

        assert await runtime.shutdown() is False

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_aborts_start(self, temp_dir, make_file_runtime):
        """Test a corrupt snapshot at startup propagates."""
        (temp_dir / "accounts.json").write_text("{broken", encoding="utf-8")
        runtime = make_file_runtime()

        with pytest.raises(CorruptDataError):
            await runtime.start()
        assert not runtime.ledger.initialized


class TestServe:
    """Tests for running a command source to completion."""

    @pytest.mark.asyncio
    async def test_serve_runs_every_command(self, runtime, ledger, snapshot_storage):
        """Test every command from an exhausted source runs before the save."""
        responses = []

        async def collect(result):
            responses.append(result.response)

        commands = [debt() for _ in range(5)] + [
            SplitCommand(initiator=2, recipients=[1, 3], amount="2", description="y"),
        ]

        saved = await runtime.serve(from_list(commands), collect)

        assert saved is True
        assert len(responses) == 6
        assert snapshot_storage.snapshot[2] == {1: 700, 3: 200}
        assert runtime.closing

    @pytest.mark.asyncio
    async def test_stop_event_ends_intake(self, runtime, snapshot_storage):
        """Test setting the stop event shuts down an endless source."""
        stop_event = asyncio.Event()
        served = 0

        async def endless():
            nonlocal served
            while True:
                served += 1
                if served == 3:
                    stop_event.set()
                yield debt()
                await asyncio.sleep(0)

        saved = await runtime.serve(endless(), stop_event=stop_event)

        assert saved is True
        assert snapshot_storage.save_count == 1

    @pytest.mark.asyncio
    async def test_source_error_propagates_after_save(self, runtime, snapshot_storage):
        """Test a failing command source still leaves a saved snapshot."""
        async def broken():
            yield debt()
            raise ValueError("source died")

        with pytest.raises(ValueError, match="source died"):
            await runtime.serve(broken())
        assert snapshot_storage.save_count == 1

    @pytest.mark.asyncio
    async def test_restart_sees_previous_balances(self, temp_dir, make_file_runtime):
        """Test balances survive a full stop and start with file storage."""
        first = make_file_runtime()
        await first.serve(from_list([debt("12.34", "alice", "bob")]))

        second = make_file_runtime()
        results = []

        async def collect(result):
            results.append(result)

        await second.serve(from_list([BalanceCommand(subject="bob")]), collect)

        assert results[0].response == f"bob's balance:\n`{'alice':<32}{'$12.34':>16}`\n"
        log_lines = (temp_dir / "transactions.log").read_text(encoding="utf-8").splitlines()
        assert len(log_lines) == 1
        assert log_lines[0].endswith("alice owes $12.34 to bob for x")

        document = json.loads((temp_dir / "accounts.json").read_text(encoding="utf-8"))
        assert document["accounts"] == {"bob": {"alice": 1234}, "alice": {"bob": -1234}}

    @pytest.mark.asyncio
    async def test_restart_keeps_string_identities(self, make_file_runtime):
        """Test users with numeric str ids find their balances after a restart."""
        owe = command_adapter.validate_json(
            '{"type": "debt", "initiator": "1", "recipient": "2", "amount": "5", "description": "lunch"}'
        )
        first = make_file_runtime()
        await first.serve(from_list([owe]))

        second = make_file_runtime()
        results = []

        async def collect(result):
            results.append(result)

        await second.serve(
            from_list([command_adapter.validate_json('{"type": "balance", "subject": "1"}')]),
            collect,
        )

        assert results[0].response == f"1's balance:\n`{'2':<32}{'-$5.00':>16}`\n"
        assert await second.ledger.get_balances("1") == {"2": -500}
        assert await second.ledger.get_balances(1) == {}
