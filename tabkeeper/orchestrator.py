"""
Command Processor for Tabkeeper

This module ties the ledger, the validator and the transaction log
together and defines the end-to-end flow of every command:

    validate -> ledger mutation -> transaction log append -> response text

The orchestrator enforces the boundaries:
- No mutation unless every field of the command validated
- No committed mutation without a transaction log append
- Every command gets a response string, rejected ones included

It is the only caller of the ledger's mutation methods.
"""

from typing import Callable, Optional, Union

import structlog

from tabkeeper.audit import TransactionLog
from tabkeeper.config import LedgerSettings
from tabkeeper.ledger import Ledger
from tabkeeper.money import MoneyCodec
from tabkeeper.models.commands import (
    BalanceCommand,
    CommandResult,
    DebtCommand,
    SplitCommand,
)
from tabkeeper.models.errors import CommandError
from tabkeeper.models.transaction import Identity
from tabkeeper.validation import CommandValidator


logger = structlog.get_logger(__name__)

_ACTIONS = {
    "debt": "record the debt",
    "split": "split the bill",
    "balance": "show the balance",
}


class CommandProcessor:
    """
    Validates commands and drives the ledger and the transaction log.

    The ledger is injected; the processor never looks it up from a global.
    """

    def __init__(
        self,
        ledger: Ledger,
        transaction_log: Optional[TransactionLog] = None,
        settings: Optional[LedgerSettings] = None,
        display_name: Callable[[Identity], str] = str,
    ):
        self._ledger = ledger
        self._transaction_log = transaction_log
        self._settings = settings or LedgerSettings()
        self._codec = MoneyCodec(self._settings.currency_symbol)
        self._validator = CommandValidator(self._settings, self._codec)
        self._display_name = display_name

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    async def execute(
        self,
        command: Union[DebtCommand, SplitCommand, BalanceCommand],
    ) -> CommandResult:
        """
        Run one command to completion.

        Never raises for bad user input: a rejected command comes back
        as a CommandResult carrying the error.
        """
        validation = self._validator.validate(command)
        if not validation.is_valid:
            return self._reject(command, validation.first_error)

        if isinstance(command, DebtCommand):
            return await self._owe(command, validation.amount_cents)
        if isinstance(command, SplitCommand):
            return await self._bill(command, validation.amount_cents)
        return await self._balance(command)

    async def _owe(self, command: DebtCommand, amount: int) -> CommandResult:
        # The initiator owes the recipient: the recipient holds the balance.
        transaction = await self._ledger.apply_debt(
            command.recipient,
            command.initiator,
            amount,
            command.description,
        )
        if self._transaction_log is not None:
            await self._transaction_log.append(transaction)

        response = (
            f"{self._display_name(command.initiator)} owes "
            f"{self._codec.format(amount)} to "
            f"{self._display_name(command.recipient)} for {command.description}"
        )
        return CommandResult(response=response, transaction=transaction)

    async def _bill(self, command: SplitCommand, amount: int) -> CommandResult:
        transaction = await self._ledger.apply_split(
            command.initiator,
            amount,
            command.description,
            command.recipients,
        )
        if self._transaction_log is not None:
            await self._transaction_log.append(transaction)

        response = (
            f"{self._display_name(command.initiator)} billed "
            f"{self._codec.format(amount)} to {len(transaction.recipients)} "
            f"users for {command.description}"
        )
        return CommandResult(response=response, transaction=transaction)

    async def _balance(self, command: BalanceCommand) -> CommandResult:
        balances = await self._ledger.get_balances(command.subject)

        lines = [f"{self._display_name(command.subject)}'s balance:"]
        for other, cents in balances.items():
            name = self._display_name(other)
            lines.append(f"`{name:<32}{self._codec.format(cents):>16}`")

        return CommandResult(response="\n".join(lines) + "\n")

    def _reject(self, command, error: CommandError) -> CommandResult:
        logger.info(
            "command_rejected",
            command=command.type,
            kind=error.kind.value,
            field=error.field,
        )
        return CommandResult(
            response=f"Could not {_ACTIONS[command.type]}: {error.message}",
            error=error,
        )
