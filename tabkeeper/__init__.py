"""
Tabkeeper - Source Package

A small ledger of pairwise debts ("who owes whom how much") between user
identities, driven by chat commands: owe a user, bill several users, and
check a balance.

INVARIANTS:
1. Balances are integer cents, never floating point
2. ledger[a][b] == -ledger[b][a] for every pair that has an entry
3. Every committed mutation is appended to the transaction log exactly once
4. The ledger is restored before the first command and snapshotted after the last
"""

__version__ = "1.0.0"
__author__ = "Tabkeeper Team"
