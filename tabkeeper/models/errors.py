"""
Error Taxonomy for Tabkeeper

Every failure the system can surface belongs to one ErrorKind.

- User input problems (bad amount, missing field) are returned as
  CommandError values and turned into a rejection message.
- Storage problems are raised as TabkeeperError subclasses carrying
  their kind, so callers can decide what is fatal.

Ledger mutations themselves never fail.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Every kind of failure the system distinguishes."""
    INVALID_FORMAT = "invalid_format"    # money string unparseable
    MISSING_FIELD = "missing_field"      # required command field absent
    INVALID_FIELD = "invalid_field"      # field present but not acceptable
    IO_ERROR = "io_error"                # filesystem failure in save/load
    CORRUPT_DATA = "corrupt_data"        # snapshot file unreadable/malformed
    UNAVAILABLE = "unavailable"          # runtime is shutting down


class TabkeeperError(Exception):
    """Base exception for all raised Tabkeeper errors."""

    kind: ErrorKind = ErrorKind.IO_ERROR

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class CommandError(BaseModel):
    """
    A rejected command.

    Returned (never raised) by the command processor alongside the
    user-facing rejection message.
    """
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind = Field(
        ...,
        description="Error classification"
    )
    field: Optional[str] = Field(
        default=None,
        description="Command field that failed validation, if any"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the problem"
    )
