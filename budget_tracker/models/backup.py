"""
Backup Models

The backup file is the only way data leaves the tracker, so its shape is
a compatibility contract: older exports must keep loading.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


BACKUP_APP_NAME = "BudgetTracker"
BACKUP_VERSION = 3


class BackupPayload(BaseModel):
    """
    Exported backup document.

    `budget_data` is the ledger in its persisted JSON shape
    (creation key -> list of expense records).
    """

    model_config = ConfigDict(populate_by_name=True)

    app: str = Field(default=BACKUP_APP_NAME)
    version: int = Field(default=BACKUP_VERSION)
    exported_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="exportedAt",
    )
    budget_data: dict[str, list[dict[str, Any]]] = Field(
        default_factory=dict,
        alias="budgetDataV2",
    )

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict with the wire field names."""
        return {
            "app": self.app,
            "version": self.version,
            "exportedAt": self.exported_at.isoformat().replace("+00:00", "Z"),
            "budgetDataV2": self.budget_data,
        }


class BackupReminderState(BaseModel):
    """When the last backup happened and which month's reminder was dismissed."""

    last_backup_at: Optional[datetime] = None
    dismissed_for: Optional[str] = Field(
        default=None,
        description="Creation key of the month the reminder was dismissed for"
    )
