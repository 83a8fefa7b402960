"""
List Filters and Search

Narrows a month view down to what the expense list shows. Filtering only
ever removes entries; it never reorders them, so the visible index of an
entry is its position in the filtered list.
"""

from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from budget_tracker.models.categories import ALL
from budget_tracker.models.expense import VirtualEntry


class ListFilters(BaseModel):
    """Current filter settings of the expense list."""

    model_config = ConfigDict(frozen=True)

    main: str = Field(default=ALL, description="Main category or 'All'")
    sub: str = Field(default=ALL, description="Subcategory or 'All'")
    search: str = Field(default="", description="Case-insensitive note search")

    @property
    def is_active(self) -> bool:
        return self.main != ALL or self.sub != ALL or bool(self.search.strip())


def apply_filters(
    entries: Iterable[VirtualEntry],
    main_filter: str = ALL,
    sub_filter: str = ALL,
    search_text: str = "",
) -> list[VirtualEntry]:
    """
    Filter entries, preserving order.

    - main_filter: "All" or an exact main category
    - sub_filter: "All" or an exact subcategory; records without a sub
      never match a specific one
    - search_text: stripped, then matched case-insensitively as a
      substring of the note; empty notes never match a non-empty search
    """
    query = (search_text or "").strip().lower()
    filtered = []

    for entry in entries:
        expense = entry.expense
        if main_filter != ALL and expense.main != main_filter:
            continue
        if sub_filter != ALL and (not expense.sub or expense.sub != sub_filter):
            continue
        if query and query not in (expense.note or "").lower():
            continue
        filtered.append(entry)

    return filtered


def apply_list_filters(
    entries: Iterable[VirtualEntry],
    filters: ListFilters,
) -> list[VirtualEntry]:
    return apply_filters(entries, filters.main, filters.sub, filters.search)


def total_of(entries: Iterable[VirtualEntry]) -> Decimal:
    """Sum of amounts; Decimal("0") for no entries."""
    return sum((entry.amount for entry in entries), Decimal("0"))
