"""Command validation package."""

from tabkeeper.validation.validator import (
    CommandValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = ["CommandValidator", "ValidationIssue", "ValidationResult"]
