"""
The Ledger

Holds every pairwise balance, in cents, keyed from each party's point of
view:

    accounts[a][b] > 0   ->  b owes a
    accounts[a][b] < 0   ->  a owes b

INVARIANT: accounts[a][b] == -accounts[b][a] for every pair with an entry.
Both sides of a pair are always written inside the same write-locked
section, so readers never observe one side without the other.

Zero balances are kept, never pruned.

The Ledger is the only shared mutable state of the system. Snapshot file
I/O is never done here: snapshot() copies the state under the read lock
and the caller writes the copy after the lock is released.
"""

from collections.abc import Mapping, Sequence
from typing import Optional

import structlog

from tabkeeper.ledger.lock import ReadWriteLock
from tabkeeper.models.transaction import (
    AccountsMapping,
    Identity,
    Transaction,
    TransactionKind,
)


logger = structlog.get_logger(__name__)


class Ledger:
    """
    Concurrent map of pairwise obligations.

    Balance queries share a read lock. Mutations and restore take the
    write lock, so each one is applied as a single atomic unit.
    """

    def __init__(self, accounts: Optional[Mapping] = None):
        self._accounts: AccountsMapping = {}
        self._lock = ReadWriteLock()
        self._sequence = 0
        self._initialized = False
        if accounts is not None:
            self._accounts = _copy_accounts(accounts)
            self._initialized = True

    @property
    def initialized(self) -> bool:
        """True once state was restored (or given at construction)."""
        return self._initialized

    @property
    def sequence(self) -> int:
        """Commit number of the last mutation (0 before the first one)."""
        return self._sequence

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_balances(self, who: Identity) -> dict[Identity, int]:
        """Point-in-time copy of every counter-party balance of `who`."""
        async with self._lock.read():
            return dict(self._accounts.get(who, {}))

    async def get_balance(self, who: Identity, other: Identity) -> int:
        """Balance of `who` against `other`; 0 when they never transacted."""
        async with self._lock.read():
            return self._accounts.get(who, {}).get(other, 0)

    async def snapshot(self) -> AccountsMapping:
        """Deep copy of the full state."""
        async with self._lock.read():
            return _copy_accounts(self._accounts)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def apply_debt(
        self,
        holder: Identity,
        counterparty: Identity,
        amount: int,
        description: str,
    ) -> Transaction:
        """
        Move `amount` onto the pair balance held by `holder`.

        accounts[holder][counterparty] += amount
        accounts[counterparty][holder] -= amount

        A positive amount means `counterparty` owes `holder` that much more;
        the transaction records `counterparty` as the one who owes. A
        negative amount is applied as-is and reverses the direction.
        """
        async with self._lock.write():
            self._transfer(holder, counterparty, amount)
            return self._commit(
                kind=TransactionKind.DEBT,
                initiator=counterparty,
                amount=amount,
                description=description,
                recipients=(holder,),
            )

    async def apply_split(
        self,
        initiator: Identity,
        amount: int,
        description: str,
        recipients: Sequence[Identity],
    ) -> Transaction:
        """
        Charge every recipient the full `amount`, owed to `initiator`.

        The amount is not divided among recipients. An empty recipient
        list commits a transaction that transfers nothing.
        """
        recipients = tuple(recipients)
        async with self._lock.write():
            for recipient in recipients:
                self._transfer(initiator, recipient, amount)
            return self._commit(
                kind=TransactionKind.SPLIT,
                initiator=initiator,
                amount=amount,
                description=description,
                recipients=recipients,
            )

    async def restore(self, accounts: Mapping) -> None:
        """Replace the full state with a copy of `accounts`."""
        restored = _copy_accounts(accounts)
        async with self._lock.write():
            self._accounts = restored
            self._initialized = True
        logger.info(
            "ledger_restored",
            accounts=len(restored),
            pairs=sum(len(balances) for balances in restored.values()),
        )

    def _transfer(self, holder: Identity, counterparty: Identity, amount: int) -> None:
        # Caller holds the write lock.
        holder_entry = self._accounts.setdefault(holder, {})
        holder_entry[counterparty] = holder_entry.get(counterparty, 0) + amount

        counterparty_entry = self._accounts.setdefault(counterparty, {})
        counterparty_entry[holder] = counterparty_entry.get(holder, 0) - amount

    def _commit(self, **fields) -> Transaction:
        # Caller holds the write lock.
        self._sequence += 1
        return Transaction(sequence=self._sequence, **fields)


def _copy_accounts(accounts: Mapping) -> AccountsMapping:
    return {holder: dict(balances) for holder, balances in accounts.items()}
