"""
JSON File Storage Implementation

DESIGN DECISION: The ledger lives in a single JSON file with exactly the
shape of the "budgetDataV2" section of a backup, because:
1. Users can open and read their data directly
2. No database setup required
3. A backup is the same document with a small envelope around it

TRADEOFFS:
- Every mutation rewrites the whole file (fine at personal-ledger scale)
- No transactions; a write goes to a temp file first and is then
  renamed over the original, so a crash never leaves half a ledger
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_tracker.models.audit import AuditEvent
from budget_tracker.services.storage.interface import (
    AuditStorageInterface,
    CorruptLedgerError,
    LedgerPersistenceInterface,
    RawLedger,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _atomic_write_text(path: Path, text: str) -> None:
    """Write `text` to a sibling temp file, then rename it over `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonFileLedgerPersistence(LedgerPersistenceInterface):
    """
    Ledger persisted as one JSON document on disk.

    Writes are retried with exponential back-off for transient OS errors
    (e.g. a file briefly locked by a sync client).
    """

    def __init__(
        self,
        path: Path,
        metadata_path: Optional[Path] = None,
        write_attempts: int = 3,
    ):
        self._path = Path(path)
        self._metadata_path = (
            Path(metadata_path) if metadata_path else self._path.with_suffix(".meta.json")
        )
        self._write_attempts = write_attempts

    @property
    def path(self) -> Path:
        return self._path

    def _write_with_retry(self, path: Path, text: str) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    _atomic_write_text(path, text)
        except (OSError, RetryError) as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def read_ledger(self) -> RawLedger:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise CorruptLedgerError(f"Ledger file {self._path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise CorruptLedgerError(
                f"Ledger file {self._path} must hold a JSON object, got {type(data).__name__}"
            )
        return data

    def write_ledger(self, ledger: RawLedger) -> None:
        self._write_with_retry(self._path, json.dumps(ledger, ensure_ascii=False))
        logger.debug("ledger_written", path=str(self._path), keys=len(ledger))

    def read_metadata(self) -> dict[str, Any]:
        if not self._metadata_path.exists():
            return {}
        try:
            data = json.loads(self._metadata_path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            # Reminder state is disposable; a broken file just resets it.
            logger.warning("metadata_unreadable", path=str(self._metadata_path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def write_metadata(self, metadata: dict[str, Any]) -> None:
        self._write_with_retry(
            self._metadata_path,
            json.dumps(metadata, ensure_ascii=False, default=str),
        )


class JsonLinesAuditStorage(AuditStorageInterface):
    """Audit events appended to a JSON-lines file, one event per line."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(event.to_json_line() + "\n")
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        with self._path.open(encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if line:
                    events.append(AuditEvent.model_validate_json(line))
        return list(reversed(events))[:limit]
