"""Services package."""

from budget_tracker.services.storage import (
    AuditStorageInterface,
    CorruptLedgerError,
    InMemoryAuditStorage,
    InMemoryLedgerPersistence,
    JsonFileLedgerPersistence,
    JsonLinesAuditStorage,
    LedgerPersistenceInterface,
    LedgerStore,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "CorruptLedgerError",
    "InMemoryAuditStorage",
    "InMemoryLedgerPersistence",
    "JsonFileLedgerPersistence",
    "JsonLinesAuditStorage",
    "LedgerPersistenceInterface",
    "LedgerStore",
    "StorageError",
]
