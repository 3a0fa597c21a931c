"""
Configuration Management for Tabkeeper

Uses pydantic-settings for type-safe configuration from environment variables
and an optional .env file.

All configuration is centralized here so that every tunable of the ledger,
the storage layer and logging is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Command validation and money formatting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TABKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    currency_symbol: str = Field(
        default="$",
        min_length=1,
        max_length=3,
        description="Symbol rendered in front of formatted amounts"
    )
    max_split_recipients: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of users a single bill can be split to"
    )
    allow_negative_amounts: bool = Field(
        default=True,
        description="Accept negative amounts (reversed direction) in commands"
    )
    allow_empty_split: bool = Field(
        default=True,
        description="Accept a bill with no recipients (transfers nothing)"
    )
    max_amount_length: int = Field(
        default=24,
        ge=1,
        le=1000,
        description="Longest amount string accepted, sign and symbol included"
    )
    max_description_length: int = Field(
        default=200,
        ge=1,
        description="Maximum length of a transaction description"
    )

    @field_validator('currency_symbol')
    @classmethod
    def validate_currency_symbol(cls, v: str) -> str:
        """The symbol must not collide with the sign or the decimal point."""
        if any(c.isdigit() or c in "-." for c in v):
            raise ValueError("Currency symbol cannot contain digits, '-' or '.'")
        return v


class StorageSettings(BaseSettings):
    """Snapshot and transaction log file configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TABKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    snapshot_path: Path = Field(
        default=Path("accounts.json"),
        description="File the ledger is restored from and snapshotted to"
    )
    transaction_log_path: Path = Field(
        default=Path("transactions.log"),
        description="Append-only text file with one line per transaction"
    )
    snapshot_write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a snapshot write hitting transient OS errors"
    )


class LoggingSettings(BaseSettings):
    """Operational logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TABKEEPER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Standard library log level name"
    )
    json_output: bool = Field(
        default=True,
        description="Render log events as JSON (False: console renderer)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the sections that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "storage", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
