"""
Mutation Service

Add, delete, stop-recurring and edit operations against the ledger.

DESIGN DECISION: Index-addressed operations go through the last published
view. The caller renders a month, publishes the visible (filtered) list,
and later refers to a row by its position in that list. The service maps
the position to the record's stable id, so an outdated position can at
worst miss; it can never hit a different record that moved into its slot.

Failures never raise to the caller:
- invalid input on add is a silent no-op (reasons go to the audit log)
- an index outside the published view is a no-op
Only persistence failures propagate, after being audited and after the
store has been rolled back to its state before the operation.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

import structlog

from budget_tracker.audit import AuditLogger
from budget_tracker.models.expense import (
    BrowsingContext,
    Expense,
    Recurrence,
    VirtualEntry,
    month_key,
)
from budget_tracker.services.storage import LedgerStore, StorageError
from budget_tracker.validation.validator import ExpenseValidator


logger = structlog.get_logger(__name__)


class MutationService:
    """
    Writes to the ledger store and persists a full snapshot after each
    successful change.
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._context: Optional[BrowsingContext] = None
        self._view: list[VirtualEntry] = []

    # -------------------------------------------------------------------------
    # View binding
    # -------------------------------------------------------------------------

    def publish_view(self, context: BrowsingContext, entries: Sequence[VirtualEntry]) -> None:
        """
        Record the month being viewed and the list the user sees.

        Visible indexes passed to delete_at/stop_recurring/edit_at refer
        to positions in `entries`.
        """
        self._context = context
        self._view = list(entries)

    @property
    def context(self) -> Optional[BrowsingContext]:
        return self._context

    @property
    def view(self) -> list[VirtualEntry]:
        return list(self._view)

    def _entry_at(self, operation: str, visible_index: int) -> Optional[VirtualEntry]:
        if 0 <= visible_index < len(self._view):
            return self._view[visible_index]
        self._audit_logger.log_stale_index(operation, visible_index, len(self._view))
        return None

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _persist(self, checkpoint: dict[str, list[Expense]]) -> None:
        """
        Write the snapshot, or roll the store back to `checkpoint`.

        A failed write leaves memory and disk agreeing on the state from
        before the mutation.
        """
        try:
            self._store.save()
        except StorageError as e:
            self._store.replace_all(checkpoint)
            self._audit_logger.log_save_failed(str(e))
            raise
        self._audit_logger.log_ledger_saved(
            key_count=len(self._store.keys()),
            record_count=self._store.record_count(),
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _build_expense(
        self,
        year: int,
        month: int,
        main: str,
        sub: Optional[str],
        amount: Any,
        note: Optional[str],
        is_recurring: bool,
    ) -> Optional[Expense]:
        """Validate input and build the record, or return None."""
        key = month_key(year, month)
        result = self._validator.validate(month, main, sub, amount)
        if not result.is_valid:
            self._audit_logger.log_expense_rejected(key, result.issue_dicts)
            return None

        recurrence = None
        if is_recurring:
            recurrence = Recurrence(start_year=int(year), start_month=int(month))

        return Expense(
            main=main,
            sub=result.sub,
            amount=result.amount,
            note=note or "",
            recurring=recurrence,
        )

    def add(
        self,
        year: int,
        month: int,
        main: str,
        sub: Optional[str],
        amount: Any,
        note: Optional[str] = "",
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        """
        Append a new expense under (year, month).

        Recurring expenses start in (year, month) and have no end.

        Returns:
            The stored expense, or None when validation failed (nothing
            is changed in that case)
        """
        expense = self._build_expense(year, month, main, sub, amount, note, is_recurring)
        if expense is None:
            return None

        key = month_key(year, month)
        checkpoint = self._store.checkpoint()
        self._store.append(key, expense)
        self._persist(checkpoint)
        self._audit_logger.log_expense_added(
            expense_id=expense.id,
            key=key,
            main=expense.main,
            amount=str(expense.amount),
            recurring=expense.is_recurring,
        )
        return expense

    def delete_at(self, visible_index: int) -> Optional[Expense]:
        """
        Delete the record behind a row of the published view.

        Deleting a generated occurrence deletes the whole series, since
        there is only one stored record behind it.

        Returns:
            The removed expense, or None if nothing was removed
        """
        entry = self._entry_at("delete", visible_index)
        if entry is None:
            return None

        checkpoint = self._store.checkpoint()
        removed = self._store.remove(entry.expense_id)
        if removed is None:
            logger.debug("delete_missed", expense_id=str(entry.expense_id))
            return None

        key, index, expense = removed
        self._persist(checkpoint)
        self._audit_logger.log_expense_deleted(expense.id, key, index)
        return expense

    def stop_recurring(self, visible_index: int) -> Optional[Expense]:
        """
        End a recurring series at the month currently being viewed.

        The end is the browsing context's month, not the month of the
        occurrence that was clicked. That month itself stays included.

        Returns:
            The updated expense, or None if nothing changed
        """
        entry = self._entry_at("stop_recurring", visible_index)
        if entry is None or self._context is None:
            return None

        current = self._store.get_by_id(entry.expense_id)
        if current is None or current.recurring is None:
            return None

        updated = current.model_copy(update={
            "recurring": current.recurring.ended_at(self._context.year, self._context.month),
        })
        checkpoint = self._store.checkpoint()
        self._store.replace(current.id, updated)
        self._persist(checkpoint)
        self._audit_logger.log_recurrence_stopped(updated.id, self._context.key)
        return updated

    def edit_at(self, visible_index: int) -> Optional[Expense]:
        """
        Take a record out of the ledger for editing.

        The record is deleted and returned as a draft; the caller fills
        the add form from it and calls add() again for the viewed month.
        A recurring series edited this way restarts at that month.
        """
        return self.delete_at(visible_index)

    def replace_at(
        self,
        visible_index: int,
        main: str,
        sub: Optional[str],
        amount: Any,
        note: Optional[str] = "",
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        """
        Atomic edit: swap a record for a new one created at the viewed month.

        Same observable result as edit_at() followed by add(): the new
        record is created under the viewed month, so a recurring series
        restarts there. Invalid replacements leave the original in place.
        """
        entry = self._entry_at("replace", visible_index)
        if entry is None or self._context is None:
            return None
        if self._store.get_by_id(entry.expense_id) is None:
            return None

        context = self._context
        replacement = self._build_expense(
            context.year, context.month, main, sub, amount, note, is_recurring
        )
        if replacement is None:
            return None

        checkpoint = self._store.checkpoint()
        self._store.remove(entry.expense_id)
        self._store.append(context.key, replacement)
        self._persist(checkpoint)
        self._audit_logger.log_expense_edited(entry.expense_id, replacement.id, context.key)
        return replacement


def draft_from(expense: Expense) -> dict[str, Any]:
    """Add-form values that recreate `expense` (used after edit_at)."""
    return {
        "main": expense.main,
        "sub": expense.sub,
        "amount": Decimal(expense.amount),
        "note": expense.note,
        "is_recurring": expense.is_recurring,
    }
