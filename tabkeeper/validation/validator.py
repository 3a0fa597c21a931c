"""
Command Validation

Every field a command needs is checked before the ledger is touched. A
command with any error-level issue is rejected as a whole; no partial
mutation ever happens.

Checks:
- Required field presence (MISSING_FIELD)
- Amount length and format, through the money codec (INVALID_FORMAT)
- Field limits: recipient count, description length, sign of the amount
  when negative amounts are disabled (INVALID_FIELD)

Validation never silently fixes a command. It reports issues; the
processor turns the first one into the rejection message.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field

from tabkeeper.config import LedgerSettings
from tabkeeper.money import InvalidFormatError, MoneyCodec
from tabkeeper.models.commands import BalanceCommand, DebtCommand, SplitCommand
from tabkeeper.models.errors import CommandError, ErrorKind


class ValidationIssue(BaseModel):
    """A single problem found in a command."""

    field: str = Field(
        ...,
        description="Command field with the issue"
    )
    kind: ErrorKind = Field(
        ...,
        description="Error classification"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )

    def to_error(self) -> CommandError:
        return CommandError(kind=self.kind, field=self.field, message=self.message)


class ValidationResult(BaseModel):
    """Outcome of validating one command."""

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="Every issue found, in field order"
    )
    amount_cents: Optional[int] = Field(
        default=None,
        description="Parsed amount, when the command carries a valid one"
    )

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def first_error(self) -> Optional[CommandError]:
        if not self.issues:
            return None
        return self.issues[0].to_error()


class CommandValidator:
    """
    Validates commands against the ledger settings.

    Stateless apart from settings: safe to share between concurrent
    commands.
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        codec: Optional[MoneyCodec] = None,
    ):
        self._settings = settings or LedgerSettings()
        self._codec = codec or MoneyCodec(self._settings.currency_symbol)

    def validate(
        self,
        command: Union[DebtCommand, SplitCommand, BalanceCommand],
    ) -> ValidationResult:
        if isinstance(command, BalanceCommand):
            return ValidationResult()

        issues: list[ValidationIssue] = []
        cents = self._validate_amount(command.amount, issues)
        self._validate_description(command.description, issues)

        if isinstance(command, DebtCommand):
            self._validate_recipient(command.recipient, issues)
        else:
            self._validate_recipients(command.recipients, issues)

        return ValidationResult(issues=issues, amount_cents=cents)

    def _validate_amount(
        self,
        amount: Optional[str],
        issues: list[ValidationIssue],
    ) -> Optional[int]:
        if amount is None or amount == "":
            issues.append(ValidationIssue(
                field="amount",
                kind=ErrorKind.MISSING_FIELD,
                message="An amount is required",
            ))
            return None

        limit = self._settings.max_amount_length
        if len(amount) > limit:
            issues.append(ValidationIssue(
                field="amount",
                kind=ErrorKind.INVALID_FORMAT,
                message=f"Amount is longer than {limit} characters",
            ))
            return None

        try:
            cents = self._codec.parse(amount)
        except InvalidFormatError:
            issues.append(ValidationIssue(
                field="amount",
                kind=ErrorKind.INVALID_FORMAT,
                message=(
                    f"Could not read {amount!r} as an amount "
                    f"(use e.g. 12 or {self._codec.symbol}12.34)"
                ),
            ))
            return None

        if cents < 0 and not self._settings.allow_negative_amounts:
            issues.append(ValidationIssue(
                field="amount",
                kind=ErrorKind.INVALID_FIELD,
                message="Amount cannot be negative",
            ))
            return None

        return cents

    def _validate_description(
        self,
        description: Optional[str],
        issues: list[ValidationIssue],
    ) -> None:
        if description is None or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                kind=ErrorKind.MISSING_FIELD,
                message="A description is required",
            ))
            return

        limit = self._settings.max_description_length
        if len(description) > limit:
            issues.append(ValidationIssue(
                field="description",
                kind=ErrorKind.INVALID_FIELD,
                message=f"Description is longer than {limit} characters",
            ))

    def _validate_recipient(self, recipient, issues: list[ValidationIssue]) -> None:
        if recipient is None or recipient == "":
            issues.append(ValidationIssue(
                field="recipient",
                kind=ErrorKind.MISSING_FIELD,
                message="A user to owe is required",
            ))

    def _validate_recipients(
        self,
        recipients: Optional[list],
        issues: list[ValidationIssue],
    ) -> None:
        if recipients is None:
            issues.append(ValidationIssue(
                field="recipients",
                kind=ErrorKind.MISSING_FIELD,
                message="At least one user to bill is required",
            ))
            return

        if not recipients and not self._settings.allow_empty_split:
            issues.append(ValidationIssue(
                field="recipients",
                kind=ErrorKind.MISSING_FIELD,
                message="At least one user to bill is required",
            ))
            return

        limit = self._settings.max_split_recipients
        if len(recipients) > limit:
            issues.append(ValidationIssue(
                field="recipients",
                kind=ErrorKind.INVALID_FIELD,
                message=f"A bill can be split to at most {limit} users",
            ))
