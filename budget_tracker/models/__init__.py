"""
Data Models Package

This package contains all Pydantic models used in the Budget Tracker.
All data flowing through the tracker must conform to these schemas.
"""

from budget_tracker.models.categories import (
    ALL,
    DEFAULT_TAXONOMY,
    TOTAL,
    CategoryDefinition,
    CategoryTaxonomy,
)
from budget_tracker.models.expense import (
    MONTH_NAMES,
    BrowsingContext,
    Expense,
    Recurrence,
    VirtualEntry,
    month_index_abs,
    month_key,
    parse_month_key,
)
from budget_tracker.models.backup import (
    BACKUP_APP_NAME,
    BACKUP_VERSION,
    BackupPayload,
    BackupReminderState,
)
from budget_tracker.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from budget_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Categories
    "ALL",
    "DEFAULT_TAXONOMY",
    "TOTAL",
    "CategoryDefinition",
    "CategoryTaxonomy",
    # Ledger models
    "MONTH_NAMES",
    "BrowsingContext",
    "Expense",
    "Recurrence",
    "VirtualEntry",
    "month_index_abs",
    "month_key",
    "parse_month_key",
    # Backup models
    "BACKUP_APP_NAME",
    "BACKUP_VERSION",
    "BackupPayload",
    "BackupReminderState",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
