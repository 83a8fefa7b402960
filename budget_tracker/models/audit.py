"""
Audit Models for Budget Tracker

Every ledger mutation and every backup operation is logged for audit
purposes. Because invalid input is a silent no-op for callers, the audit
trail is where the reason for a rejected add can still be found.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    EXPENSE_ADDED = "expense_added"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_EDITED = "expense_edited"
    RECURRENCE_STOPPED = "recurrence_stopped"
    STALE_INDEX = "stale_index"

    # Persistence
    LEDGER_SAVED = "ledger_saved"
    SAVE_FAILED = "save_failed"

    # Backups
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_REJECTED = "backup_rejected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'ledger', 'backup')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Single-line JSON for append-only files."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False, default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, "2024-0", "Food", "50")
        event = AuditEventBuilder.backup_rejected("shape", "app field differs")
    """

    @staticmethod
    def expense_added(
        expense_id: UUID,
        key: str,
        main: str,
        amount: str,
        recurring: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense added under {key}: {main} {amount}",
            details={
                "key": key,
                "main": main,
                "amount": amount,
                "recurring": recurring,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        key: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            description=f"Expense rejected under {key} with {len(issues)} issues",
            details={
                "key": key,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        key: str,
        index: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense deleted from {key} at position {index}",
            details={
                "key": key,
                "index": index,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_edited(
        old_id: UUID,
        new_id: UUID,
        key: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_EDITED,
            entity_type="expense",
            entity_id=new_id,
            description=f"Expense replaced; new record under {key}",
            details={
                "replaced_id": str(old_id),
                "key": key,
            },
            is_user_action=True,
        )

    @staticmethod
    def recurrence_stopped(
        expense_id: UUID,
        end_key: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRENCE_STOPPED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Recurring expense stopped at {end_key}",
            details={
                "end_key": end_key,
            },
            is_user_action=True,
        )

    @staticmethod
    def stale_index(
        operation: str,
        visible_index: int,
        view_size: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_INDEX,
            severity=AuditSeverity.DEBUG,
            description=f"{operation} ignored: index {visible_index} not in current view",
            details={
                "operation": operation,
                "visible_index": visible_index,
                "view_size": view_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_saved(
        key_count: int,
        record_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            description=f"Ledger saved: {record_count} records in {key_count} months",
            details={
                "key_count": key_count,
                "record_count": record_count,
            },
        )

    @staticmethod
    def save_failed(
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger snapshot could not be written",
            error_message=error_message,
        )

    @staticmethod
    def backup_exported(
        record_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=f"Backup exported with {record_count} records",
            details={
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_imported(
        record_count: int,
        exported_at: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description=f"Ledger replaced from backup with {record_count} records",
            details={
                "record_count": record_count,
                "exported_at": exported_at,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_rejected(
        reason: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description=f"Backup rejected: {reason}",
            error_message=error_message,
            details={
                "reason": reason,
            },
            is_user_action=True,
        )
