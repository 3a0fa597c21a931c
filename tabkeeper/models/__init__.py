"""
Data Models Package

This package contains all Pydantic models used in Tabkeeper:
transactions, command inputs/results and the error taxonomy.
"""

from tabkeeper.models.commands import (
    BalanceCommand,
    Command,
    CommandResult,
    DebtCommand,
    SplitCommand,
    command_adapter,
)
from tabkeeper.models.errors import (
    CommandError,
    ErrorKind,
    TabkeeperError,
)
from tabkeeper.models.transaction import (
    AccountsMapping,
    Identity,
    Transaction,
    TransactionKind,
)

__all__ = [
    # Command models
    "BalanceCommand",
    "Command",
    "CommandResult",
    "DebtCommand",
    "SplitCommand",
    "command_adapter",
    # Errors
    "CommandError",
    "ErrorKind",
    "TabkeeperError",
    # Transaction models
    "AccountsMapping",
    "Identity",
    "Transaction",
    "TransactionKind",
]
