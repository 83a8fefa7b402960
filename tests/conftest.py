"""Shared fixtures: an in-memory ledger wired the way the app wires it."""

from datetime import date

import pytest

from budget_tracker.audit import AuditLogger
from budget_tracker.models.categories import DEFAULT_TAXONOMY
from budget_tracker.models.expense import BrowsingContext, Expense, Recurrence
from budget_tracker.orchestrator import BudgetSession
from budget_tracker.queries import Aggregator, RecurrenceResolver
from budget_tracker.services.backup import BackupService
from budget_tracker.services.mutations import MutationService
from budget_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerPersistence,
    LedgerStore,
    StorageError,
)
from budget_tracker.validation.validator import ExpenseValidator


class FlakyPersistence(InMemoryLedgerPersistence):
    """In-memory persistence whose ledger writes fail while `failing` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def write_ledger(self, ledger):
        if self.failing:
            raise StorageError("disk full")
        super().write_ledger(ledger)


@pytest.fixture
def persistence():
    return InMemoryLedgerPersistence()


@pytest.fixture
def flaky():
    return FlakyPersistence()


@pytest.fixture
def flaky_store(flaky):
    return LedgerStore(flaky)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def store(persistence):
    return LedgerStore(persistence)


@pytest.fixture
def resolver(store):
    return RecurrenceResolver(store)


@pytest.fixture
def aggregator(resolver):
    return Aggregator(resolver, DEFAULT_TAXONOMY)


@pytest.fixture
def mutations(store, audit_logger):
    return MutationService(store, ExpenseValidator(DEFAULT_TAXONOMY), audit_logger)


@pytest.fixture
def backup_service(store, audit_logger):
    return BackupService(store, audit_logger)


@pytest.fixture
def session(store, audit_logger):
    """Session opened on January 2024."""
    return BudgetSession(store, DEFAULT_TAXONOMY, audit_logger, today=date(2024, 1, 15))


def make_expense(main="Food", sub=None, amount="10", note="", recurring=None):
    """Build a ledger record directly, bypassing add-time validation."""
    return Expense(main=main, sub=sub, amount=amount, note=note, recurring=recurring)


def recurring_from(year, month, end_year=None, end_month=None):
    return Recurrence(
        start_year=year,
        start_month=month,
        end_year=end_year,
        end_month=end_month,
    )


def publish(mutations, resolver, year, month):
    """Resolve a month and publish it unfiltered, as a render would."""
    entries = resolver.resolve(year, month)
    mutations.publish_view(BrowsingContext(year=year, month=month), entries)
    return entries
