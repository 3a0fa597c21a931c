"""Ledger package: the shared balance map and its reader/writer lock."""

from tabkeeper.ledger.ledger import Ledger
from tabkeeper.ledger.lock import ReadWriteLock

__all__ = ["Ledger", "ReadWriteLock"]
