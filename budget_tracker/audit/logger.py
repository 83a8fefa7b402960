"""
Audit Logger

DESIGN DECISION: Every ledger mutation and backup operation is logged.
This provides:
1. Traceability of what changed the ledger, and when
2. The reason behind adds that were silently rejected
3. Debugging capability for stale-index no-ops

The audit logger:
- Is synchronous, like the rest of the tracker
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from budget_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from budget_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional audit storage (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("budget_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except (OSError, ValueError) as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_expense_added(
        self,
        expense_id: UUID,
        key: str,
        main: str,
        amount: str,
        recurring: bool,
    ) -> None:
        self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            key=key,
            main=main,
            amount=amount,
            recurring=recurring,
        ))

    def log_expense_rejected(self, key: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.expense_rejected(key=key, issues=issues))

    def log_expense_deleted(self, expense_id: UUID, key: str, index: int) -> None:
        self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            key=key,
            index=index,
        ))

    def log_expense_edited(self, old_id: UUID, new_id: UUID, key: str) -> None:
        self.log(AuditEventBuilder.expense_edited(old_id=old_id, new_id=new_id, key=key))

    def log_recurrence_stopped(self, expense_id: UUID, end_key: str) -> None:
        self.log(AuditEventBuilder.recurrence_stopped(expense_id=expense_id, end_key=end_key))

    def log_stale_index(self, operation: str, visible_index: int, view_size: int) -> None:
        """Log an index that didn't resolve against the current view."""
        self.log(AuditEventBuilder.stale_index(
            operation=operation,
            visible_index=visible_index,
            view_size=view_size,
        ))

    def log_ledger_saved(self, key_count: int, record_count: int) -> None:
        self.log(AuditEventBuilder.ledger_saved(key_count=key_count, record_count=record_count))

    def log_save_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(error_message=error_message))

    def log_backup_exported(self, record_count: int) -> None:
        self.log(AuditEventBuilder.backup_exported(record_count=record_count))

    def log_backup_imported(self, record_count: int, exported_at: Optional[str]) -> None:
        self.log(AuditEventBuilder.backup_imported(
            record_count=record_count,
            exported_at=exported_at,
        ))

    def log_backup_rejected(self, reason: str, error_message: str) -> None:
        self.log(AuditEventBuilder.backup_rejected(reason=reason, error_message=error_message))
