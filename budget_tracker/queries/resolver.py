"""
Recurrence Resolver

DESIGN DECISION: Month views are DERIVED, never stored.
A recurring expense exists once in the ledger, under the month it was
created. Every other month it appears in is computed here, on demand,
from its recurrence window.

Output order is deterministic: creation keys chronologically, then
insertion order within a key (see key_sort_order).
"""

from budget_tracker.models.expense import VirtualEntry, month_index_abs, month_key
from budget_tracker.services.storage.ledger import LedgerStore


class RecurrenceResolver:
    """
    Projects the ledger into the entries present in a target month.

    Pure query: it never mutates the store and may be called any number
    of times. Each call is O(records in the ledger).
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def resolve(self, year: int, month: int) -> list[VirtualEntry]:
        """
        Entries present in (year, month).

        - One-off records appear only under their own creation key.
        - Recurring records appear in every month of their window,
          wherever they are stored. They are "generated" everywhere
          except their start month.
        """
        target_key = month_key(year, month)
        target_abs = month_index_abs(year, month)
        entries = []

        for source_key, records in self._store.items():
            for source_index, expense in enumerate(records):
                recurrence = expense.recurring

                if recurrence is None:
                    if source_key == target_key:
                        entries.append(VirtualEntry(
                            expense=expense,
                            source_key=source_key,
                            source_index=source_index,
                            is_generated=False,
                        ))
                    continue

                if recurrence.covers(target_abs):
                    entries.append(VirtualEntry(
                        expense=expense,
                        source_key=source_key,
                        source_index=source_index,
                        is_generated=target_abs != recurrence.start_abs,
                    ))

        return entries

    def resolve_year(self, year: int) -> list[list[VirtualEntry]]:
        """The twelve monthly views of `year`, January first."""
        return [self.resolve(year, month) for month in range(12)]
