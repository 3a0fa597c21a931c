"""Transaction log package."""

from tabkeeper.audit.logger import TransactionLog, configure_logging

__all__ = ["TransactionLog", "configure_logging"]
