"""
Storage Services Package

Provides the ledger store plus abstract persistence interfaces and their
concrete implementations (JSON file on disk, in memory for tests).
"""

from budget_tracker.services.storage.interface import (
    AuditStorageInterface,
    CorruptLedgerError,
    LedgerPersistenceInterface,
    RawLedger,
    StorageError,
)
from budget_tracker.services.storage.json_file import (
    JsonFileLedgerPersistence,
    JsonLinesAuditStorage,
)
from budget_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerPersistence,
)
from budget_tracker.services.storage.ledger import (
    LedgerFormatError,
    LedgerStore,
    key_sort_order,
    parse_ledger,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerPersistenceInterface",
    "RawLedger",
    # Exceptions
    "CorruptLedgerError",
    "LedgerFormatError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryLedgerPersistence",
    "JsonFileLedgerPersistence",
    "JsonLinesAuditStorage",
    # Ledger store
    "LedgerStore",
    "key_sort_order",
    "parse_ledger",
]
