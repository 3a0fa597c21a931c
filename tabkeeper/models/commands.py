"""
Command Models

Inputs handed to the command processor by the external command layer,
and the result handed back.

Fields the processor requires are still Optional here: the command layer
may deliver a command with fields missing, and the validator reports each
one as a MISSING_FIELD issue before any ledger mutation happens.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from tabkeeper.models.errors import CommandError
from tabkeeper.models.transaction import Identity, Transaction


class DebtCommand(BaseModel):
    """The initiator owes `amount` to `recipient`."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Literal["debt"] = "debt"
    initiator: Identity = Field(
        ...,
        description="Authenticated user issuing the command"
    )
    recipient: Optional[Identity] = Field(
        default=None,
        description="User being owed"
    )
    amount: Optional[str] = Field(
        default=None,
        description="Amount as typed by the user, e.g. '$12.34'"
    )
    description: Optional[str] = Field(
        default=None,
        description="What the debt is for"
    )


class SplitCommand(BaseModel):
    """Every recipient owes the full `amount` to the initiator."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Literal["split"] = "split"
    initiator: Identity = Field(
        ...,
        description="Authenticated user issuing the command"
    )
    recipients: Optional[list[Identity]] = Field(
        default=None,
        description="Users being billed, in command order"
    )
    amount: Optional[str] = Field(
        default=None,
        description="Amount charged to each recipient"
    )
    description: Optional[str] = Field(
        default=None,
        description="What the bill is for"
    )


class BalanceCommand(BaseModel):
    """Show every balance of `subject`."""

    type: Literal["balance"] = "balance"
    subject: Identity = Field(
        ...,
        description="User whose balances are shown"
    )


Command = Annotated[
    Union[DebtCommand, SplitCommand, BalanceCommand],
    Field(discriminator="type"),
]

command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


class CommandResult(BaseModel):
    """
    What the command processor returns for every command.

    `response` is always set, even when the command was rejected.
    """

    response: str = Field(
        ...,
        description="Text to display to the caller"
    )
    transaction: Optional[Transaction] = Field(
        default=None,
        description="Committed transaction, for mutating commands"
    )
    error: Optional[CommandError] = Field(
        default=None,
        description="Why the command was rejected, if it was"
    )

    @property
    def ok(self) -> bool:
        return self.error is None
