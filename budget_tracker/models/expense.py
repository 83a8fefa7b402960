"""
Core Data Models for Budget Tracker

Ledger records, their recurrence descriptors and the virtual entries
the resolver projects them into.

DESIGN DECISION: Months are zero-based everywhere (January == 0), because
that is how creation keys are written in persisted ledgers and backups.
Absolute month numbers (year * 12 + month) make window checks plain
integer comparisons.
"""

import math
import re
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_MONTH_KEY_RE = re.compile(r"^(-?\d+)-(\d+)$")


# =============================================================================
# MONTH HELPERS
# =============================================================================

def month_key(year: int, month: int) -> str:
    """Creation key for a month, e.g. (2024, 0) -> "2024-0"."""
    return f"{int(year)}-{int(month)}"


def parse_month_key(key: str) -> Optional[tuple[int, int]]:
    """Inverse of month_key. Returns None for keys that don't parse."""
    match = _MONTH_KEY_RE.match(key)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def month_index_abs(year: int, month: int) -> int:
    return int(year) * 12 + int(month)


class BrowsingContext(BaseModel):
    """The month the user is currently looking at."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(..., ge=0, le=11)

    @property
    def key(self) -> str:
        return month_key(self.year, self.month)

    @property
    def abs_month(self) -> int:
        return month_index_abs(self.year, self.month)


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Recurrence(BaseModel):
    """
    Recurrence window of a record.

    The window is inclusive on both ends. Without an end the record
    recurs forever. An end before the start is accepted and simply
    never matches any month.
    """

    model_config = ConfigDict(populate_by_name=True)

    start_year: int = Field(..., alias="startYear")
    start_month: int = Field(..., alias="startMonth")
    end_year: Optional[int] = Field(default=None, alias="endYear")
    end_month: Optional[int] = Field(default=None, alias="endMonth")

    @property
    def has_end(self) -> bool:
        return self.end_year is not None and self.end_month is not None

    @property
    def start_abs(self) -> int:
        return month_index_abs(self.start_year, self.start_month)

    @property
    def end_abs(self) -> float:
        if not self.has_end:
            return math.inf
        return month_index_abs(self.end_year, self.end_month)

    def covers(self, target_abs: int) -> bool:
        return self.start_abs <= target_abs <= self.end_abs

    def ended_at(self, year: int, month: int) -> 'Recurrence':
        """Copy of this window capped at (year, month)."""
        return self.model_copy(update={"end_year": int(year), "end_month": int(month)})

    def to_record(self) -> dict[str, Optional[int]]:
        return {
            "startYear": self.start_year,
            "startMonth": self.start_month,
            "endYear": self.end_year,
            "endMonth": self.end_month,
        }


class Expense(BaseModel):
    """
    One raw ledger record.

    The amount is only checked for being a finite number here. The
    "strictly positive" rule belongs to ExpenseValidator and is applied
    when a record is created, never when one is loaded back.

    `id` is generated in memory and is not part of the persisted record.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    id: UUID = Field(
        default_factory=uuid4,
        description="In-memory identity used to address mutations"
    )
    main: str = Field(
        ...,
        min_length=1,
        description="Main category name"
    )
    sub: Optional[str] = Field(
        default=None,
        description="Subcategory name, only for mains that have them"
    )
    amount: Decimal = Field(
        ...,
        description="Amount in currency units"
    )
    note: str = Field(
        default="",
        description="Free text note"
    )
    recurring: Optional[Recurrence] = None

    @property
    def is_recurring(self) -> bool:
        return self.recurring is not None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> 'Expense':
        """Build an Expense from its persisted JSON shape."""
        data = dict(record)
        data.pop("id", None)
        if data.get("note") is None:
            data["note"] = ""
        if not data.get("sub"):
            data["sub"] = None
        return cls.model_validate(data)

    def to_record(self) -> dict[str, Any]:
        """
        Convert to the persisted JSON shape.

        Integral amounts are written as ints, others as floats, so files
        stay readable by any JSON consumer.
        """
        record: dict[str, Any] = {
            "main": self.main,
            "sub": self.sub,
            "amount": _json_number(self.amount),
            "note": self.note,
        }
        if self.recurring is not None:
            record["recurring"] = self.recurring.to_record()
        return record


def _json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# =============================================================================
# RESOLVER OUTPUT
# =============================================================================

class VirtualEntry(BaseModel):
    """
    A ledger record as it appears in one target month.

    `source_key`/`source_index` locate the record in the ledger at the
    moment of resolution only. Use `expense_id` to address it later.
    """

    model_config = ConfigDict(frozen=True)

    expense: Expense
    source_key: str
    source_index: int = Field(..., ge=0)
    is_generated: bool = Field(
        ...,
        description="False only in the record's own start month"
    )

    @property
    def expense_id(self) -> UUID:
        return self.expense.id

    @property
    def amount(self) -> Decimal:
        return self.expense.amount
