"""
Tests for the transaction log.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from tabkeeper.audit import TransactionLog
from tabkeeper.money import MoneyCodec
from tabkeeper.models.transaction import Transaction, TransactionKind


COMMITTED_AT = datetime(2024, 12, 1, 10, 0, tzinfo=timezone.utc)


def make_debt(**overrides) -> Transaction:
    fields = dict(
        kind=TransactionKind.DEBT,
        initiator="alice",
        amount=1234,
        description="lunch",
        recipients=("bob",),
        sequence=3,
        committed_at=COMMITTED_AT,
    )
    fields.update(overrides)
    return Transaction(**fields)


class TestFormatLine:
    """Tests for the human-readable line."""

    def test_debt_line(self):
        """Test a debt renders as 'X owes $A to Y for D'."""
        line = TransactionLog().format_line(make_debt())

        assert line == "#3 2024-12-01T10:00:00+00:00 alice owes $12.34 to bob for lunch"

    def test_split_line(self):
        """Test a split lists the recipient count and names."""
        tx = make_debt(
            kind=TransactionKind.SPLIT,
            amount=500,
            description="pizza",
            recipients=("bob", "carol"),
        )

        line = TransactionLog().format_line(tx)

        assert line.endswith("alice billed $5.00 to 2 users (bob, carol) for pizza")

    def test_multiline_description_is_flattened(self):
        """Test one transaction never spans several lines."""
        line = TransactionLog().format_line(make_debt(description="rent\nfor   march"))

        assert "\n" not in line
        assert line.endswith("for rent for march")

    def test_codec_and_display_name(self):
        """Test the injected codec and name renderer are used."""
        log = TransactionLog(
            codec=MoneyCodec("EUR"),
            display_name=lambda identity: f"<@{identity}>",
        )

        line = log.format_line(make_debt(initiator=1, recipients=(2,), amount=-50))

        assert "<@1> owes -EUR0.50 to <@2>" in line


class TestAppend:
    """Tests for writing transactions."""

    @pytest.mark.asyncio
    async def test_append_writes_line(self, transaction_log, log_storage):
        """Test a committed transaction produces exactly one line."""
        assert await transaction_log.append(make_debt()) is True
        assert log_storage.lines == [transaction_log.format_line(make_debt())]

    @pytest.mark.asyncio
    async def test_append_without_storage(self):
        """Test a log without storage only logs locally."""
        assert await TransactionLog().append(make_debt()) is True

    @pytest.mark.asyncio
    async def test_storage_failure_returns_false(self, transaction_log, log_storage):
        """Test a failed write is reported, not raised."""
        log_storage.fail = True

        assert await transaction_log.append(make_debt()) is False
        assert log_storage.lines == []

    @pytest.mark.asyncio
    async def test_lines_follow_commit_order(self, ledger, transaction_log, log_storage):
        """Test concurrent commits are logged in sequence order."""
        async def commit(i):
            tx = await ledger.apply_debt("A", "B", i, f"debt {i}")
            await transaction_log.append(tx)

        await asyncio.gather(*(commit(i) for i in range(1, 51)))

        sequences = [int(line.split()[0][1:]) for line in log_storage.lines]
        assert sequences == list(range(1, 51))
