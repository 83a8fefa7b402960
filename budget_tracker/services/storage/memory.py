"""
In-Memory Storage Implementation

Used by tests and by sessions that should not touch the disk.
Snapshots are deep-copied through JSON so callers can never alias
stored state.
"""

import json
from typing import Any

from budget_tracker.models.audit import AuditEvent
from budget_tracker.services.storage.interface import (
    AuditStorageInterface,
    LedgerPersistenceInterface,
    RawLedger,
)


class InMemoryLedgerPersistence(LedgerPersistenceInterface):
    """Keeps the last written snapshot in memory."""

    def __init__(self, initial: RawLedger | None = None):
        self._ledger: str = json.dumps(initial or {})
        self._metadata: str = json.dumps({})
        self.write_count = 0

    def read_ledger(self) -> RawLedger:
        return json.loads(self._ledger)

    def write_ledger(self, ledger: RawLedger) -> None:
        self._ledger = json.dumps(ledger)
        self.write_count += 1

    def read_metadata(self) -> dict[str, Any]:
        return json.loads(self._metadata)

    def write_metadata(self, metadata: dict[str, Any]) -> None:
        self._metadata = json.dumps(metadata, default=str)


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit events kept in a list, oldest first."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
