"""
Tests for the mutation service

Index-addressed operations refer to the last published view, so most
tests resolve a month, publish it, and then act on a visible position.
"""

from decimal import Decimal

import pytest

from budget_tracker.models.audit import AuditEventType
from budget_tracker.models.expense import BrowsingContext
from budget_tracker.queries import RecurrenceResolver, apply_filters, total_of
from budget_tracker.services.mutations import MutationService, draft_from
from budget_tracker.services.storage import StorageError

from conftest import make_expense, publish


def _event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


@pytest.fixture
def flaky_mutations(flaky_store, audit_logger):
    return MutationService(flaky_store, audit_logger=audit_logger)


class TestAdd:
    """Tests for adding expenses."""

    def test_add_one_off(self, mutations, store, persistence):
        expense = mutations.add(2024, 0, "Food", "Supermarket", 50, "groceries")

        assert expense is not None
        assert expense.amount == Decimal("50")
        assert store.get("2024-0") == [expense]
        assert persistence.write_count == 1
        assert persistence.read_ledger() == {
            "2024-0": [{"main": "Food", "sub": "Supermarket", "amount": 50, "note": "groceries"}],
        }

    def test_add_recurring_starts_at_month(self, mutations, store):
        expense = mutations.add(2024, 3, "Rent", None, "700", is_recurring=True)

        assert expense.recurring.start_year == 2024
        assert expense.recurring.start_month == 3
        assert not expense.recurring.has_end

    def test_add_appends_in_order(self, mutations, store):
        mutations.add(2024, 0, "Food", "Snack", 1)
        mutations.add(2024, 0, "Rent", None, 2)
        assert [e.main for e in store.get("2024-0")] == ["Food", "Rent"]

    @pytest.mark.parametrize("amount", [0, -5, "abc", None, float("nan"), float("inf")])
    def test_invalid_amount_is_silent_no_op(self, mutations, store, persistence, amount):
        assert mutations.add(2024, 0, "Food", "Snack", amount) is None
        assert store.record_count() == 0
        assert persistence.write_count == 0

    def test_unknown_category_is_rejected(self, mutations, store):
        assert mutations.add(2024, 0, "Pets", None, 10) is None
        assert mutations.add(2024, 0, "Food", "Fuel", 10) is None
        assert store.record_count() == 0

    def test_rejection_is_audited(self, mutations, audit_storage):
        mutations.add(2024, 0, "Food", "Snack", 0)

        [event] = audit_storage.events
        assert event.event_type == AuditEventType.EXPENSE_REJECTED
        assert event.details["issues"][0]["field"] == "amount"

    def test_sub_dropped_for_main_without_subs(self, mutations):
        expense = mutations.add(2024, 0, "Rent", "Snack", 700)
        assert expense.sub is None

    def test_null_note_becomes_empty(self, mutations):
        assert mutations.add(2024, 0, "Rent", None, 700, None).note == ""

    def test_success_is_audited(self, mutations, audit_storage):
        mutations.add(2024, 0, "Rent", None, 700)
        assert _event_types(audit_storage) == [
            AuditEventType.LEDGER_SAVED,
            AuditEventType.EXPENSE_ADDED,
        ]


class TestSaveFailures:
    """A failed write raises and leaves the in-memory ledger as it was."""

    def test_add_rolls_back(self, flaky, flaky_store, flaky_mutations, audit_storage):
        flaky.failing = True

        with pytest.raises(StorageError):
            flaky_mutations.add(2024, 0, "Rent", None, 700)

        assert flaky_store.record_count() == 0
        assert _event_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    def test_failed_add_is_not_saved_later(self, flaky, flaky_store, flaky_mutations):
        flaky.failing = True
        with pytest.raises(StorageError):
            flaky_mutations.add(2024, 0, "Rent", None, 700)

        flaky.failing = False
        flaky_mutations.add(2024, 0, "Food", "Snack", 4)

        assert [r["main"] for r in flaky.read_ledger()["2024-0"]] == ["Food"]

    def test_delete_rolls_back(self, flaky, flaky_store, flaky_mutations):
        flaky_mutations.add(2024, 0, "Rent", None, 700)
        entries = RecurrenceResolver(flaky_store).resolve(2024, 0)
        flaky_mutations.publish_view(BrowsingContext(year=2024, month=0), entries)
        flaky.failing = True

        with pytest.raises(StorageError):
            flaky_mutations.delete_at(0)

        assert flaky_store.record_count() == 1
        assert flaky_store.get("2024-0")[0].main == "Rent"

    def test_stop_recurring_rolls_back(self, flaky, flaky_store, flaky_mutations):
        flaky_mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        entries = RecurrenceResolver(flaky_store).resolve(2024, 3)
        flaky_mutations.publish_view(BrowsingContext(year=2024, month=3), entries)
        flaky.failing = True

        with pytest.raises(StorageError):
            flaky_mutations.stop_recurring(0)

        assert not flaky_store.get("2024-0")[0].recurring.has_end

    def test_replace_rolls_back(self, flaky, flaky_store, flaky_mutations):
        original = flaky_mutations.add(2024, 0, "Rent", None, 700)
        entries = RecurrenceResolver(flaky_store).resolve(2024, 0)
        flaky_mutations.publish_view(BrowsingContext(year=2024, month=0), entries)
        flaky.failing = True

        with pytest.raises(StorageError):
            flaky_mutations.replace_at(0, "Rent", None, 800)

        assert flaky_store.get("2024-0") == [original]


class TestRecurringLifecycle:
    """Add, browse and stop a recurring expense."""

    def test_add_browse_stop(self, mutations, resolver, store):
        mutations.add(2024, 0, "Food", "Supermarket", 50, is_recurring=True)

        [january] = resolver.resolve(2024, 0)
        assert not january.is_generated

        [june] = resolver.resolve(2024, 5)
        assert june.amount == Decimal("50")
        assert june.is_generated

        publish(mutations, resolver, 2024, 5)
        stopped = mutations.stop_recurring(0)

        assert (stopped.recurring.end_year, stopped.recurring.end_month) == (2024, 5)
        assert resolver.resolve(2024, 6) == []
        assert len(resolver.resolve(2024, 5)) == 1
        assert len(resolver.resolve(2024, 0)) == 1
        assert store.get("2024-0")[0].recurring.has_end

    def test_stop_caps_at_viewed_month(self, mutations, resolver):
        """The end is the browsing month, even from the record's own month."""
        mutations.add(2024, 2, "Rent", None, 700, is_recurring=True)
        publish(mutations, resolver, 2024, 2)

        stopped = mutations.stop_recurring(0)
        assert (stopped.recurring.end_year, stopped.recurring.end_month) == (2024, 2)
        assert resolver.resolve(2024, 3) == []

    def test_stop_one_off_is_no_op(self, mutations, resolver, persistence):
        mutations.add(2024, 0, "Rent", None, 700)
        publish(mutations, resolver, 2024, 0)
        writes = persistence.write_count

        assert mutations.stop_recurring(0) is None
        assert persistence.write_count == writes

    def test_stop_is_audited(self, mutations, resolver, audit_storage):
        mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        publish(mutations, resolver, 2024, 4)
        mutations.stop_recurring(0)

        stopped = [e for e in audit_storage.events if e.event_type == AuditEventType.RECURRENCE_STOPPED]
        assert stopped[0].details["end_key"] == "2024-4"


class TestDelete:
    """Tests for deleting by visible index."""

    def test_delete_one_off(self, mutations, resolver, store):
        mutations.add(2024, 0, "Food", "Snack", 4)
        mutations.add(2024, 0, "Rent", None, 700)
        publish(mutations, resolver, 2024, 0)

        removed = mutations.delete_at(0)

        assert removed.main == "Food"
        assert [e.main for e in store.get("2024-0")] == ["Rent"]

    def test_delete_generated_removes_series(self, mutations, resolver, store):
        mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        publish(mutations, resolver, 2024, 7)

        mutations.delete_at(0)

        assert store.record_count() == 0
        assert resolver.resolve(2024, 0) == []

    def test_delete_through_filtered_view(self, mutations, resolver, store):
        """Indexes refer to the filtered list, not the month."""
        mutations.add(2024, 0, "Food", "Snack", 4, "coffee")
        mutations.add(2024, 0, "Rent", None, 700)
        mutations.add(2024, 0, "Food", "Restaurant", 30, "dinner")

        visible = apply_filters(resolver.resolve(2024, 0), search_text="dinner")
        mutations.publish_view(BrowsingContext(year=2024, month=0), visible)
        mutations.delete_at(0)

        assert [e.note for e in store.get("2024-0")] == ["coffee", ""]

    def test_filtered_total_drops_by_deleted_amount(self, mutations, resolver):
        mutations.add(2024, 0, "Food", "Snack", "4.5", "coffee")
        mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        mutations.add(2024, 0, "Food", "Restaurant", "30.25", "dinner")

        def visible_month():
            return apply_filters(resolver.resolve(2024, 0), main_filter="Food")

        before = visible_month()
        mutations.publish_view(BrowsingContext(year=2024, month=0), before)
        removed = mutations.delete_at(1)

        after = visible_month()
        assert removed.amount == Decimal("30.25")
        assert total_of(after) == total_of(before) - removed.amount
        assert len(after) == len(before) - 1

    @pytest.mark.parametrize("index", [-1, 1, 99])
    def test_out_of_range_is_no_op(self, mutations, resolver, store, persistence, index):
        mutations.add(2024, 0, "Rent", None, 700)
        publish(mutations, resolver, 2024, 0)
        writes = persistence.write_count

        assert mutations.delete_at(index) is None
        assert store.record_count() == 1
        assert persistence.write_count == writes

    def test_stale_index_is_audited(self, mutations, audit_storage):
        mutations.delete_at(3)

        [event] = audit_storage.events
        assert event.event_type == AuditEventType.STALE_INDEX
        assert event.details == {"operation": "delete", "visible_index": 3, "view_size": 0}

    def test_repeated_delete_never_hits_neighbour(self, mutations, resolver, store):
        """Deleting the same visible row twice misses the second time."""
        mutations.add(2024, 0, "Food", "Snack", 4)
        mutations.add(2024, 0, "Rent", None, 700)
        publish(mutations, resolver, 2024, 0)

        assert mutations.delete_at(0) is not None
        assert mutations.delete_at(0) is None
        assert [e.main for e in store.get("2024-0")] == ["Rent"]


class TestEdit:
    """Tests for edit (delete + draft) and the atomic replace."""

    def test_edit_returns_draft_and_removes(self, mutations, resolver, store):
        mutations.add(2024, 0, "Food", "Snack", "4.5", "coffee")
        publish(mutations, resolver, 2024, 0)

        draft = mutations.edit_at(0)

        assert store.record_count() == 0
        assert draft_from(draft) == {
            "main": "Food",
            "sub": "Snack",
            "amount": Decimal("4.5"),
            "note": "coffee",
            "is_recurring": False,
        }

    def test_edit_then_add_restarts_series(self, mutations, resolver, store):
        mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        publish(mutations, resolver, 2024, 5)

        draft = mutations.edit_at(0)
        values = draft_from(draft)
        mutations.add(2024, 5, values["main"], values["sub"], 750, values["note"], values["is_recurring"])

        assert resolver.resolve(2024, 4) == []
        [june] = resolver.resolve(2024, 5)
        assert june.amount == Decimal("750")
        assert not june.is_generated

    def test_replace_at(self, mutations, resolver, store, audit_storage):
        mutations.add(2024, 0, "Rent", None, 700, is_recurring=True)
        publish(mutations, resolver, 2024, 5)

        replacement = mutations.replace_at(0, "Rent", None, 750, "new lease", True)

        assert replacement.recurring.start_month == 5
        assert store.keys() == ["2024-0", "2024-5"]
        assert store.get("2024-0") == []
        assert [e.note for e in store.get("2024-5")] == ["new lease"]
        assert AuditEventType.EXPENSE_EDITED in _event_types(audit_storage)

    def test_invalid_replace_keeps_original(self, mutations, resolver, store):
        original = mutations.add(2024, 0, "Rent", None, 700)
        publish(mutations, resolver, 2024, 0)

        assert mutations.replace_at(0, "Rent", None, 0) is None
        assert store.get("2024-0") == [original]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
