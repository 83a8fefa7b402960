"""
Ledger Store

Owns the in-memory ledger: creation key -> ordered list of Expense.

Insertion order inside a key is meaningful (it is the order records were
entered), so records are only ever appended, removed or replaced in place.
Positions shift when an earlier record is removed; callers that need to
find a record again use its id.
"""

from typing import Any, Iterator, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from budget_tracker.models.expense import Expense, parse_month_key
from budget_tracker.services.storage.interface import (
    CorruptLedgerError,
    LedgerPersistenceInterface,
    RawLedger,
)


logger = structlog.get_logger(__name__)


class LedgerFormatError(ValueError):
    """Raw ledger data does not have the persisted ledger shape."""
    pass


def key_sort_order(key: str) -> tuple:
    """
    Sort key for creation keys.

    Valid keys sort chronologically by (year, month). Keys that don't
    parse go after all valid ones, in string order.
    """
    parsed = parse_month_key(key)
    if parsed is None:
        return (1, 0, 0, key)
    return (0, parsed[0], parsed[1], key)


def parse_ledger(raw: Any) -> dict[str, list[Expense]]:
    """
    Parse a ledger in its persisted JSON shape.

    Non-list values and null records are skipped, as older files can
    contain them. Anything else that isn't an expense record raises.

    Raises:
        LedgerFormatError: If `raw` is not a ledger
    """
    if not isinstance(raw, dict):
        raise LedgerFormatError(f"Ledger must be a JSON object, got {type(raw).__name__}")

    ledger: dict[str, list[Expense]] = {}
    for key, records in raw.items():
        if not isinstance(records, list):
            logger.warning("ledger_value_skipped", key=key, type=type(records).__name__)
            continue
        parsed = []
        for position, record in enumerate(records):
            if record is None:
                continue
            if not isinstance(record, dict):
                raise LedgerFormatError(f"Record {key}[{position}] is not an object")
            try:
                parsed.append(Expense.from_record(record))
            except ValidationError as e:
                raise LedgerFormatError(f"Record {key}[{position}] is invalid: {e}") from e
        ledger[str(key)] = parsed
    return ledger


class LedgerStore:
    """
    In-memory ledger with an injected persistence backend.

    The store never writes on its own: callers mutate, then call save()
    once to persist a full snapshot.
    """

    def __init__(self, persistence: LedgerPersistenceInterface):
        self._persistence = persistence
        self._ledger: dict[str, list[Expense]] = {}

    @property
    def persistence(self) -> LedgerPersistenceInterface:
        return self._persistence

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """
        Replace in-memory state with what the backend holds.

        Raises:
            CorruptLedgerError: If the stored ledger cannot be parsed
        """
        raw = self._persistence.read_ledger()
        try:
            self._ledger = parse_ledger(raw)
        except LedgerFormatError as e:
            raise CorruptLedgerError(str(e)) from e
        logger.info("ledger_loaded", keys=len(self._ledger), records=self.record_count())

    def save(self) -> None:
        """Write the whole ledger through the backend."""
        self._persistence.write_ledger(self.snapshot())

    def snapshot(self) -> RawLedger:
        """The ledger in persisted JSON shape, keys in chronological order."""
        return {
            key: [expense.to_record() for expense in self._ledger[key]]
            for key in self.keys()
        }

    def replace_all(self, ledger: dict[str, list[Expense]]) -> None:
        """Swap in a whole ledger (an import, or a checkpoint being restored)."""
        self._ledger = {key: list(records) for key, records in ledger.items()}

    def checkpoint(self) -> dict[str, list[Expense]]:
        """
        Copy of the current ledger, to be handed back to replace_all().

        Records are never modified in place, so copying the lists is enough.
        """
        return {key: list(records) for key, records in self._ledger.items()}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def keys(self) -> list[str]:
        return sorted(self._ledger, key=key_sort_order)

    def items(self) -> Iterator[tuple[str, list[Expense]]]:
        """(key, records) pairs in chronological key order."""
        for key in self.keys():
            yield key, list(self._ledger[key])

    def get(self, key: str) -> list[Expense]:
        """Records under `key` (a copy); empty if the key is absent."""
        return list(self._ledger.get(key, []))

    def find(self, expense_id: UUID) -> Optional[tuple[str, int]]:
        """Current (key, index) of a record, or None."""
        for key, records in self._ledger.items():
            for index, expense in enumerate(records):
                if expense.id == expense_id:
                    return key, index
        return None

    def get_by_id(self, expense_id: UUID) -> Optional[Expense]:
        location = self.find(expense_id)
        if location is None:
            return None
        key, index = location
        return self._ledger[key][index]

    def record_count(self) -> int:
        return sum(len(records) for records in self._ledger.values())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def append(self, key: str, expense: Expense) -> None:
        self._ledger.setdefault(key, []).append(expense)

    def remove_at(self, key: str, index: int) -> Optional[Expense]:
        """
        Remove the record at `index` under `key`.

        Out-of-range positions (including negative ones) are a no-op and
        return None. Later records under the same key shift down by one.
        """
        records = self._ledger.get(key)
        if records is None or index < 0 or index >= len(records):
            return None
        return records.pop(index)

    def remove(self, expense_id: UUID) -> Optional[tuple[str, int, Expense]]:
        """Remove a record by id. Unknown ids are a no-op returning None."""
        location = self.find(expense_id)
        if location is None:
            return None
        key, index = location
        return key, index, self._ledger[key].pop(index)

    def replace(self, expense_id: UUID, expense: Expense) -> bool:
        """Swap a record for `expense`, keeping its position."""
        location = self.find(expense_id)
        if location is None:
            return False
        key, index = location
        self._ledger[key][index] = expense
        return True
