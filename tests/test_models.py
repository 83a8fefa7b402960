"""
Tests for Budget Tracker models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory storage)
3. No disk access except through pytest's tmp_path
"""

import json
import math
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from budget_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_tracker.models.backup import BackupPayload, BackupReminderState
from budget_tracker.models.categories import (
    ALL,
    DEFAULT_COLOR,
    DEFAULT_TAXONOMY,
    TOTAL,
    CategoryDefinition,
    CategoryTaxonomy,
)
from budget_tracker.models.expense import (
    BrowsingContext,
    Expense,
    Recurrence,
    VirtualEntry,
    month_index_abs,
    month_key,
    parse_month_key,
)
from budget_tracker.models.validation import ValidationIssue, ValidationResult


class TestMonthHelpers:
    """Tests for creation keys and absolute month numbers."""

    def test_month_key_is_zero_based(self):
        """January is month 0."""
        assert month_key(2024, 0) == "2024-0"
        assert month_key(2024, 11) == "2024-11"

    def test_parse_month_key(self):
        """Valid keys parse back into (year, month)."""
        assert parse_month_key("2024-5") == (2024, 5)
        assert parse_month_key("2024-11") == (2024, 11)

    def test_parse_month_key_rejects_garbage(self):
        """Keys that don't look like year-month give None."""
        assert parse_month_key("garbage") is None
        assert parse_month_key("2024") is None
        assert parse_month_key("2024-x") is None

    def test_month_index_abs(self):
        """Absolute months are year * 12 + month."""
        assert month_index_abs(2024, 0) == 2024 * 12
        assert month_index_abs(2023, 11) + 1 == month_index_abs(2024, 0)

    def test_browsing_context(self):
        """Context exposes its key and bounds the month."""
        context = BrowsingContext(year=2024, month=3)
        assert context.key == "2024-3"
        assert context.abs_month == 2024 * 12 + 3

        with pytest.raises(ValueError):
            BrowsingContext(year=2024, month=12)


class TestRecurrence:
    """Tests for recurrence windows."""

    def test_open_ended_window(self):
        """Without an end the window never closes."""
        recurrence = Recurrence(start_year=2024, start_month=0)
        assert not recurrence.has_end
        assert recurrence.end_abs == math.inf
        assert recurrence.covers(month_index_abs(2099, 11))
        assert not recurrence.covers(month_index_abs(2023, 11))

    def test_window_is_inclusive(self):
        """Both the start and the end month are covered."""
        recurrence = Recurrence(start_year=2024, start_month=2, end_year=2024, end_month=4)
        assert recurrence.covers(month_index_abs(2024, 2))
        assert recurrence.covers(month_index_abs(2024, 4))
        assert not recurrence.covers(month_index_abs(2024, 5))

    def test_half_set_end_means_no_end(self):
        """An end year without an end month is treated as open-ended."""
        recurrence = Recurrence(start_year=2024, start_month=0, end_year=2024)
        assert not recurrence.has_end
        assert recurrence.covers(month_index_abs(2030, 0))

    def test_end_before_start_matches_nothing(self):
        """Such windows are accepted but empty."""
        recurrence = Recurrence(start_year=2024, start_month=5, end_year=2024, end_month=1)
        assert not any(recurrence.covers(month_index_abs(2024, m)) for m in range(12))

    def test_ended_at_returns_copy(self):
        """Stopping produces a new window and leaves the original alone."""
        recurrence = Recurrence(start_year=2024, start_month=0)
        ended = recurrence.ended_at(2024, 5)
        assert ended.has_end
        assert (ended.end_year, ended.end_month) == (2024, 5)
        assert not recurrence.has_end

    def test_wire_aliases(self):
        """Persisted recurrences use camelCase field names."""
        recurrence = Recurrence.model_validate(
            {"startYear": 2024, "startMonth": 1, "endYear": None, "endMonth": None}
        )
        assert recurrence.start_month == 1
        assert recurrence.to_record() == {
            "startYear": 2024,
            "startMonth": 1,
            "endYear": None,
            "endMonth": None,
        }


class TestExpense:
    """Tests for ledger records."""

    def test_from_record(self):
        """Persisted records load with a fresh id."""
        expense = Expense.from_record({"main": "Food", "sub": "Snack", "amount": 12.5, "note": "x"})
        assert expense.main == "Food"
        assert expense.sub == "Snack"
        assert expense.amount == Decimal("12.5")
        assert expense.id is not None
        assert not expense.is_recurring

    def test_from_record_normalizes_empty_fields(self):
        """Null notes become "" and empty subs become None."""
        expense = Expense.from_record({"main": "Rent", "sub": "", "amount": 700, "note": None})
        assert expense.note == ""
        assert expense.sub is None

    def test_from_record_ignores_persisted_id(self):
        """Ids are never read from disk."""
        expense = Expense.from_record({"id": "not-a-uuid", "main": "Rent", "amount": 1})
        assert str(expense.id) != "not-a-uuid"

    def test_ids_are_unique(self):
        record = {"main": "Rent", "amount": 700}
        assert Expense.from_record(record).id != Expense.from_record(record).id

    def test_from_record_rejects_non_numeric_amount(self):
        with pytest.raises(ValueError):
            Expense.from_record({"main": "Food", "amount": "lots"})

    def test_to_record_shape(self):
        """Records serialize without their id; integral amounts as ints."""
        expense = Expense(main="Rent", amount=Decimal("700"), note="flat")
        record = expense.to_record()
        assert record == {"main": "Rent", "sub": None, "amount": 700, "note": "flat"}
        assert isinstance(record["amount"], int)
        assert "recurring" not in record

    def test_to_record_fractional_amount(self):
        expense = Expense(main="Food", sub="Snack", amount=Decimal("3.75"))
        assert expense.to_record()["amount"] == 3.75

    def test_to_record_with_recurrence(self):
        expense = Expense(
            main="Subscriptions",
            sub="Netflix",
            amount=Decimal("15.99"),
            recurring=Recurrence(start_year=2024, start_month=0),
        )
        record = expense.to_record()
        assert record["recurring"]["startYear"] == 2024
        assert record["recurring"]["endMonth"] is None

    def test_virtual_entry_exposes_record(self):
        expense = Expense(main="Food", amount=Decimal("5"))
        entry = VirtualEntry(expense=expense, source_key="2024-0", source_index=0, is_generated=False)
        assert entry.expense_id == expense.id
        assert entry.amount == Decimal("5")


class TestCategoryTaxonomy:
    """Tests for the category taxonomy."""

    def test_default_categories(self):
        """All expected main categories exist, in display order."""
        assert DEFAULT_TAXONOMY.main_categories() == [
            "Rent", "Food", "Transport", "Subscriptions", "Shopping", "Health",
            "Insurance", "Utilities", "Entertainment", "Travel", "Others",
        ]

    def test_subcategories(self):
        assert DEFAULT_TAXONOMY.subcategories("Food") == ["Restaurant", "Snack", "Supermarket"]
        assert DEFAULT_TAXONOMY.subcategories("Rent") == []
        assert DEFAULT_TAXONOMY.subcategories("Nope") == []

    def test_accepts(self):
        """Subs must belong to their main; no sub is always fine."""
        assert DEFAULT_TAXONOMY.accepts("Food", "Snack")
        assert DEFAULT_TAXONOMY.accepts("Food", None)
        assert not DEFAULT_TAXONOMY.accepts("Food", "Fuel")
        assert not DEFAULT_TAXONOMY.accepts("Rent", "Snack")
        assert not DEFAULT_TAXONOMY.accepts("Nope", None)

    def test_label(self):
        assert DEFAULT_TAXONOMY.label("Food", "Snack") == "🍔 Food – Snack"
        assert DEFAULT_TAXONOMY.label("Rent") == "🏠 Rent"

    def test_color_for_sub_inherits_parent(self):
        food_color = DEFAULT_TAXONOMY.color_for("Food")
        assert DEFAULT_TAXONOMY.color_for("Snack") == food_color
        assert DEFAULT_TAXONOMY.color_for("Snack", {"Snack": "Food"}) == food_color
        assert DEFAULT_TAXONOMY.color_for("Mystery") == DEFAULT_COLOR

    def test_filter_options(self):
        """The sub filter lists the main's subs, or every sub for All."""
        assert DEFAULT_TAXONOMY.main_filter_options()[0] == ALL
        assert DEFAULT_TAXONOMY.sub_filter_options("Food") == [ALL, "Restaurant", "Snack", "Supermarket"]
        everything = DEFAULT_TAXONOMY.sub_filter_options(ALL)
        assert everything[0] == ALL
        assert everything[1:] == sorted(set(everything[1:]))
        assert "Netflix" in everything

    def test_compare_options(self):
        assert DEFAULT_TAXONOMY.compare_options()[0] == TOTAL

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            CategoryTaxonomy(categories=(
                CategoryDefinition(name="Food"),
                CategoryDefinition(name="Food"),
            ))

    def test_from_file(self, tmp_path):
        """Custom taxonomies load from a JSON list."""
        path = tmp_path / "categories.json"
        path.write_text(json.dumps([
            {"name": "Pets", "subcategories": ["Vet", "Food"], "color": "#123456", "emoji": "🐶"},
            {"name": "Misc"},
        ]), encoding="utf-8")

        taxonomy = CategoryTaxonomy.from_file(path)
        assert taxonomy.main_categories() == ["Pets", "Misc"]
        assert taxonomy.accepts("Pets", "Vet")
        assert taxonomy.color_for("Pets") == "#123456"


class TestBackupModels:
    """Tests for the backup envelope."""

    def test_payload_document(self):
        """Documents use the wire field names and a Z timestamp."""
        payload = BackupPayload(
            exported_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
            budget_data={"2024-0": [{"main": "Rent", "sub": None, "amount": 700, "note": ""}]},
        )
        document = payload.to_document()
        assert document["app"] == "BudgetTracker"
        assert document["version"] == 3
        assert document["exportedAt"] == "2024-03-01T00:00:00Z"
        assert list(document["budgetDataV2"]) == ["2024-0"]

    def test_reminder_state_defaults(self):
        state = BackupReminderState()
        assert state.last_backup_at is None
        assert state.dismissed_for is None


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Expense added",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        expense_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "expense_deleted"
        assert log_dict["entity_id"] == str(expense_id)

    def test_audit_event_to_json_line(self):
        """JSON lines round-trip through the model."""
        event = AuditEventBuilder.ledger_saved(key_count=2, record_count=5)
        line = event.to_json_line()
        assert "\n" not in line
        restored = AuditEvent.model_validate_json(line)
        assert restored.event_type == AuditEventType.LEDGER_SAVED
        assert restored.details == {"key_count": 2, "record_count": 5}

    def test_audit_event_builder_expense_added(self):
        expense_id = uuid4()
        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            key="2024-0",
            main="Food",
            amount="50",
            recurring=False,
        )
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.entity_id == expense_id
        assert event.details["key"] == "2024-0"
        assert event.is_user_action

    def test_audit_event_builder_rejections_are_warnings(self):
        rejected = AuditEventBuilder.expense_rejected("2024-0", [{"field": "amount"}])
        backup = AuditEventBuilder.backup_rejected("invalid_shape", "app field differs")
        assert rejected.severity == AuditSeverity.WARNING
        assert backup.severity == AuditSeverity.WARNING
        assert backup.error_message == "app field differs"


class TestValidationResult:
    """Tests for validation result model."""

    def test_issue_dicts(self):
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(field="amount", issue_type="invalid_value", message="Too small"),
            ],
        )
        assert result.issue_dicts == [
            {"field": "amount", "issue_type": "invalid_value", "message": "Too small"},
        ]

    def test_valid_result_carries_normalized_values(self):
        result = ValidationResult(is_valid=True, amount=Decimal("5"), sub=None)
        assert result.amount == Decimal("5")
        assert not result.issues


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
