"""
Transaction Models

A Transaction is the immutable record of one committed ledger mutation.
It is created by the Ledger inside the mutation it describes and is only
consumed afterwards (transaction log, command responses).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Opaque user identifier issued by the chat platform. Only used as a key.
Identity = Union[int, str]

# Identity -> counter-party Identity -> balance in cents
AccountsMapping = dict[Identity, dict[Identity, int]]


class TransactionKind(str, Enum):
    """Which ledger mutation produced a transaction."""
    DEBT = "debt"
    SPLIT = "split"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(BaseModel):
    """
    One committed ledger mutation.

    For DEBT, `initiator` owes `amount` to the single entry of `recipients`.
    For SPLIT, every entry of `recipients` owes the full `amount` to
    `initiator`.
    """
    model_config = ConfigDict(frozen=True)

    kind: TransactionKind = Field(
        ...,
        description="Mutation that produced this transaction"
    )
    initiator: Identity = Field(
        ...,
        description="User who issued the command"
    )
    amount: int = Field(
        ...,
        description="Amount in cents"
    )
    description: str = Field(
        ...,
        description="Free-text description given by the initiator"
    )
    recipients: tuple[Identity, ...] = Field(
        default=(),
        description="Counter-parties, in command order"
    )
    sequence: int = Field(
        default=0,
        ge=0,
        description="Ledger commit number (1 for the first mutation)"
    )
    committed_at: datetime = Field(
        default_factory=_utcnow,
        description="When the mutation committed (UTC)"
    )

    @property
    def recipient(self) -> Optional[Identity]:
        """The counter-party of a DEBT transaction."""
        if self.kind == TransactionKind.DEBT and self.recipients:
            return self.recipients[0]
        return None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "sequence": self.sequence,
            "kind": self.kind.value,
            "initiator": str(self.initiator),
            "amount": self.amount,
            "recipients": [str(r) for r in self.recipients],
            "description": self.description,
            "committed_at": self.committed_at.isoformat(),
        }
