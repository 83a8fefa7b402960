"""
Backup Export / Import

DESIGN DECISION: A backup is the persisted ledger wrapped in a small
envelope ({app, version, exportedAt, budgetDataV2}). How the file gets
to or from the user (download, file picker) is the front end's concern;
this service only produces and consumes the JSON text.

Import is all-or-nothing. A rejected file leaves the ledger untouched,
and the two kinds of rejection stay distinguishable:
- BackupParseError: the text is not JSON at all
- BackupShapeError: it is JSON, but not a backup of this app
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from budget_tracker.audit import AuditLogger
from budget_tracker.models.backup import (
    BACKUP_APP_NAME,
    BackupPayload,
    BackupReminderState,
)
from budget_tracker.models.expense import month_key
from budget_tracker.services.storage import (
    LedgerFormatError,
    LedgerStore,
    StorageError,
    parse_ledger,
)


logger = structlog.get_logger(__name__)

REMINDER_NEVER_BACKED_UP = "💾 Quick reminder: you haven’t saved a backup yet this month."
REMINDER_MONTHLY = "💾 Friendly reminder: save a monthly backup for your archive."


class BackupRejectedError(Exception):
    """Base exception for backups that cannot be loaded."""
    pass


class BackupParseError(BackupRejectedError):
    """The backup text could not be parsed as JSON."""
    pass


class BackupShapeError(BackupRejectedError):
    """The backup parsed, but is not a valid backup for this app."""
    pass


class BackupService:
    """Exports and imports ledger backups, and tracks the monthly reminder."""

    def __init__(
        self,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Reminder state
    # -------------------------------------------------------------------------

    def reminder_state(self) -> BackupReminderState:
        raw = self._store.persistence.read_metadata().get("backup_reminder") or {}
        try:
            return BackupReminderState.model_validate(raw)
        except ValueError:
            logger.warning("reminder_state_reset", raw=str(raw))
            return BackupReminderState()

    def _save_reminder_state(self, state: BackupReminderState) -> None:
        metadata = self._store.persistence.read_metadata()
        metadata["backup_reminder"] = state.model_dump(mode="json")
        self._store.persistence.write_metadata(metadata)

    def mark_backed_up(self, when: Optional[datetime] = None) -> None:
        """Record a backup at `when` (default: now) for the reminder."""
        when = when or datetime.now(timezone.utc)
        state = self.reminder_state()
        self._save_reminder_state(state.model_copy(update={"last_backup_at": when}))

    def dismiss_reminder(self, year: int, month: int) -> None:
        """Hide the reminder for (year, month) only."""
        state = self.reminder_state()
        self._save_reminder_state(state.model_copy(update={"dismissed_for": month_key(year, month)}))

    def reminder_message(self, year: int, month: int) -> Optional[str]:
        """
        Reminder text for the viewed month, or None.

        No reminder when it was dismissed for this month, or when the
        last backup was made in this month.
        """
        state = self.reminder_state()
        if state.dismissed_for == month_key(year, month):
            return None
        if state.last_backup_at is None:
            return REMINDER_NEVER_BACKED_UP
        last = state.last_backup_at.astimezone()
        if last.year == int(year) and last.month - 1 == int(month):
            return None
        return REMINDER_MONTHLY

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    @staticmethod
    def suggested_filename(year: int) -> str:
        return f"budget_backup_{int(year)}.json"

    def export_payload(self, now: Optional[datetime] = None) -> BackupPayload:
        """Current ledger wrapped in a backup envelope."""
        return BackupPayload(
            exported_at=now or datetime.now(timezone.utc),
            budget_data=self._store.snapshot(),
        )

    def export_json(
        self,
        now: Optional[datetime] = None,
        record: bool = True,
    ) -> str:
        """
        Backup document as pretty-printed JSON.

        With `record` the export counts as a backup for the monthly
        reminder. Front ends that prepare the file before the user
        actually saves it pass record=False and call mark_backed_up()
        once the download happens.
        """
        payload = self.export_payload(now)
        text = json.dumps(payload.to_document(), indent=2, ensure_ascii=False)
        if record:
            self.mark_backed_up(payload.exported_at)
            self._audit_logger.log_backup_exported(self._store.record_count())
        return text

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def _reject(self, error: BackupRejectedError, reason: str) -> BackupRejectedError:
        self._audit_logger.log_backup_rejected(reason, str(error))
        return error

    def parse(self, text: str) -> tuple[dict[str, Any], dict]:
        """
        Validate a backup without applying it.

        Returns:
            (document, parsed ledger)

        Raises:
            BackupParseError: If the text is not JSON
            BackupShapeError: If it is not a backup of this app
        """
        try:
            document = json.loads(text or "")
        except (json.JSONDecodeError, TypeError) as e:
            raise self._reject(
                BackupParseError(f"Could not read backup JSON: {e}"), "unparsable"
            ) from e

        if not isinstance(document, dict) or document.get("app") != BACKUP_APP_NAME:
            raise self._reject(
                BackupShapeError("This backup file doesn't look valid for this app."),
                "invalid_shape",
            )
        if not isinstance(document.get("budgetDataV2"), dict):
            raise self._reject(
                BackupShapeError("Backup has no ledger object (budgetDataV2)."),
                "invalid_shape",
            )

        try:
            ledger = parse_ledger(document["budgetDataV2"])
        except LedgerFormatError as e:
            raise self._reject(BackupShapeError(str(e)), "invalid_shape") from e

        return document, ledger

    def import_json(self, text: str, now: Optional[datetime] = None) -> int:
        """
        Replace the whole ledger with a backup's contents.

        Returns:
            Number of records loaded

        Raises:
            BackupParseError, BackupShapeError: Ledger left untouched
            StorageError: If the new ledger could not be persisted; the
                previous ledger is restored in memory
        """
        document, ledger = self.parse(text)

        checkpoint = self._store.checkpoint()
        self._store.replace_all(ledger)
        try:
            self._store.save()
        except StorageError as e:
            self._store.replace_all(checkpoint)
            self._audit_logger.log_save_failed(str(e))
            raise

        record_count = self._store.record_count()
        exported_at = document.get("exportedAt")
        self.mark_backed_up(now)
        self._audit_logger.log_backup_imported(
            record_count,
            str(exported_at) if exported_at is not None else None,
        )
        return record_count
