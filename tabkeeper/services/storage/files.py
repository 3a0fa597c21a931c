"""
File Storage Implementation

Snapshots are stored as one JSON document:

    {
      "version": 2,
      "saved_at": "2024-12-01T10:00:00+00:00",
      "accounts": {"<identity>": {"<identity>": <cents>, ...}, ...}
    }

- Identity keys are stringified without losing their type. An int is
  written as its decimal text. A str is written as-is, unless it would read
  back as an int or starts with the "s:" marker; then it is written with
  the "s:" marker in front. So "42" means 42, "s:42" means the str "42".
- Version 1 documents and bare accounts mappings predate the marker: there,
  canonical decimal keys load as int and every other key as str.
- Unknown extra fields are ignored.
- Writes go to a temporary file in the same directory, are fsynced, then
  renamed over the snapshot, so the snapshot file is always either the old
  or the new full state.

The transaction log is a plain UTF-8 text file, one line per transaction,
only ever opened in append mode.

All file I/O runs in a worker thread so the event loop keeps serving
commands.
"""

import asyncio
import contextlib
import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tabkeeper.models.transaction import AccountsMapping, Identity
from tabkeeper.services.storage.interface import (
    CorruptDataError,
    SnapshotStorageInterface,
    StorageIOError,
    TransactionLogStorageInterface,
)


logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 2

# First version whose str keys may carry the marker.
_MARKED_KEYS_VERSION = 2

_CANONICAL_INT = re.compile(r"0|-?[1-9][0-9]*")
_STR_MARKER = "s:"

# Retrying these cannot succeed without operator action.
_PERMANENT_ERRORS = (
    FileNotFoundError,
    PermissionError,
    IsADirectoryError,
    NotADirectoryError,
)


class SnapshotDocument(BaseModel):
    """On-disk layout of a ledger snapshot."""
    model_config = ConfigDict(extra="ignore")

    version: int = Field(
        default=1,
        description="Snapshot format version (1 when the document has none)"
    )
    saved_at: Optional[datetime] = Field(
        default=None,
        description="When the snapshot was written (UTC)"
    )
    accounts: dict[str, dict[str, StrictInt]] = Field(
        default_factory=dict,
        description="Encoded identity -> encoded identity -> cents"
    )


def encode_identity(identity: Identity) -> str:
    if isinstance(identity, int):
        return str(identity)
    if _CANONICAL_INT.fullmatch(identity) or identity.startswith(_STR_MARKER):
        return _STR_MARKER + identity
    return identity


def decode_identity(key: str, version: int = SNAPSHOT_VERSION) -> Identity:
    """Inverse of encode_identity; `version` is that of the document read."""
    if version >= _MARKED_KEYS_VERSION and key.startswith(_STR_MARKER):
        return key[len(_STR_MARKER):]
    if _CANONICAL_INT.fullmatch(key):
        return int(key)
    return key


def encode_accounts(accounts: AccountsMapping) -> dict[str, dict[str, int]]:
    return {
        encode_identity(holder): {
            encode_identity(other): balance
            for other, balance in balances.items()
        }
        for holder, balances in accounts.items()
    }


def decode_accounts(
    accounts: dict[str, dict[str, int]],
    version: int = SNAPSHOT_VERSION,
) -> AccountsMapping:
    return {
        decode_identity(holder, version): {
            decode_identity(other, version): balance
            for other, balance in balances.items()
        }
        for holder, balances in accounts.items()
    }

def _is_transient(error: BaseException) -> bool:
    return isinstance(error, OSError) and not isinstance(error, _PERMANENT_ERRORS)


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """
    Ledger snapshots in a single JSON file.

    Transient OS errors during a write are retried with exponential
    back-off; missing directories and permission errors fail at once.
    """

    def __init__(
        self,
        path: Union[str, Path],
        write_attempts: int = 3,
    ):
        self._path = Path(path)
        self._write_attempts = write_attempts

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, snapshot: AccountsMapping) -> None:
        document = SnapshotDocument(
            version=SNAPSHOT_VERSION,
            saved_at=datetime.now(timezone.utc),
            accounts=encode_accounts(snapshot),
        )
        payload = document.model_dump_json(indent=2)

        retryer = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, max=2),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        try:
            await asyncio.to_thread(retryer, self._write, payload)
        except OSError as e:
            raise StorageIOError(
                f"Failed to write snapshot {self._path}: {e}"
            ) from e

        logger.info(
            "snapshot_saved",
            path=str(self._path),
            accounts=len(snapshot),
        )

    async def load(self) -> AccountsMapping:
        try:
            text = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("snapshot_missing", path=str(self._path))
            return {}
        except OSError as e:
            raise StorageIOError(
                f"Failed to read snapshot {self._path}: {e}"
            ) from e
        except UnicodeDecodeError as e:
            raise CorruptDataError(
                f"Snapshot {self._path} is not valid UTF-8: {e}"
            ) from e

        document = self._decode(text)
        if document.version > SNAPSHOT_VERSION:
            logger.warning(
                "snapshot_newer_version",
                path=str(self._path),
                version=document.version,
                supported=SNAPSHOT_VERSION,
            )

        accounts = decode_accounts(document.accounts, document.version)
        logger.info(
            "snapshot_loaded",
            path=str(self._path),
            accounts=len(accounts),
        )
        return accounts

    def _decode(self, text: str) -> SnapshotDocument:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptDataError(
                f"Snapshot {self._path} is not valid JSON: {e}"
            ) from e

        if not isinstance(raw, dict):
            raise CorruptDataError(
                f"Snapshot {self._path} must contain a JSON object"
            )

        if "accounts" not in raw:
            raw = {"accounts": raw}

        try:
            return SnapshotDocument.model_validate(raw)
        except ValidationError as e:
            raise CorruptDataError(
                f"Snapshot {self._path} has an invalid layout: {e}"
            ) from e

    def _write(self, payload: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise


class TextFileTransactionLogStorage(TransactionLogStorageInterface):
    """Append-only UTF-8 text file, one line per transaction."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def append_line(self, line: str) -> None:
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            raise StorageIOError(
                f"Failed to append to transaction log {self._path}: {e}"
            ) from e

    def _append(self, line: str) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
            handle.flush()
            os.fsync(handle.fileno())
