"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in a JSON file today and somewhere else later
2. Use in-memory storage for testing
3. Keep the ledger store decoupled from where bytes end up

The persistence contract is deliberately coarse: the whole ledger is read
once and written back as one snapshot after every mutation. There are no
partial writes to get wrong.
"""

from abc import ABC, abstractmethod
from typing import Any

from budget_tracker.models.audit import AuditEvent


RawLedger = dict[str, list[dict[str, Any]]]


class LedgerPersistenceInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Implementations deal in the persisted JSON shape only
    (creation key -> list of expense records).
    """

    @abstractmethod
    def read_ledger(self) -> RawLedger:
        """
        Read the whole ledger.

        Returns:
            The persisted mapping, or an empty dict if nothing was saved yet

        Raises:
            CorruptLedgerError: If stored data cannot be parsed
        """
        pass

    @abstractmethod
    def write_ledger(self, ledger: RawLedger) -> None:
        """
        Replace the stored ledger with `ledger`.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def read_metadata(self) -> dict[str, Any]:
        """
        Read auxiliary key/value state (e.g. backup reminder).

        Returns:
            Stored metadata, or an empty dict
        """
        pass

    @abstractmethod
    def write_metadata(self, metadata: dict[str, Any]) -> None:
        """
        Replace the stored metadata.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptLedgerError(StorageError):
    """Stored ledger exists but cannot be read as a ledger."""
    pass
