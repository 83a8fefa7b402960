"""
Main Orchestrator for Budget Tracker

This module ties together all the components and defines the browsing
session a front end drives:

1. Render (resolve month -> filter -> publish view -> aggregate)
2. Mutate (add / delete / stop / edit, addressed by visible index)
3. Re-render, so the published view always matches what was shown

DESIGN DECISION: The session owns the browsing context (selected month,
filters, chart options). Components below it are stateless queries plus
the ledger store, so any number of sessions could share one store.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from budget_tracker.audit import AuditLogger, configure_logging
from budget_tracker.config import Settings, get_settings
from budget_tracker.models.categories import ALL, DEFAULT_TAXONOMY, TOTAL, CategoryTaxonomy
from budget_tracker.models.expense import BrowsingContext, Expense, VirtualEntry
from budget_tracker.queries import (
    Aggregator,
    AnnualReport,
    ChartDimension,
    Grouping,
    ListFilters,
    MonthlySeries,
    RecurrenceResolver,
    apply_list_filters,
    group_by,
    percentages_of,
    total_of,
)
from budget_tracker.services.backup import BackupService
from budget_tracker.services.mutations import MutationService
from budget_tracker.services.storage import (
    InMemoryLedgerPersistence,
    JsonFileLedgerPersistence,
    JsonLinesAuditStorage,
    LedgerStore,
)
from budget_tracker.validation.validator import ExpenseValidator


logger = structlog.get_logger(__name__)


class MonthView(BaseModel):
    """Everything a front end needs to draw one month."""

    model_config = ConfigDict(frozen=True)

    context: BrowsingContext
    filters: ListFilters
    entries: list[VirtualEntry]
    visible: list[VirtualEntry]
    visible_total: Decimal
    grouping: Grouping
    percentages: dict[str, float]
    series: MonthlySeries


class BudgetSession:
    """
    One user's browsing session over a ledger.

    Index-addressed mutations refer to rows of the most recent render().
    Every mutation re-renders, so indexes are always fresh after it.
    """

    def __init__(
        self,
        store: LedgerStore,
        taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[date] = None,
    ):
        today = today or date.today()
        audit_logger = audit_logger or AuditLogger()

        self._store = store
        self._taxonomy = taxonomy
        self._resolver = RecurrenceResolver(store)
        self._aggregator = Aggregator(self._resolver, taxonomy)
        self._mutations = MutationService(store, ExpenseValidator(taxonomy), audit_logger)
        self._backup = BackupService(store, audit_logger)

        self._context = BrowsingContext(year=today.year, month=today.month - 1)
        self._filters = ListFilters()
        self._dimension = ChartDimension.MAIN
        self._compare = TOTAL
        self._last_view: Optional[MonthView] = None

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def taxonomy(self) -> CategoryTaxonomy:
        return self._taxonomy

    @property
    def resolver(self) -> RecurrenceResolver:
        return self._resolver

    @property
    def aggregator(self) -> Aggregator:
        return self._aggregator

    @property
    def mutations(self) -> MutationService:
        return self._mutations

    @property
    def backup(self) -> BackupService:
        return self._backup

    # -------------------------------------------------------------------------
    # Browsing context
    # -------------------------------------------------------------------------

    @property
    def context(self) -> BrowsingContext:
        return self._context

    @property
    def filters(self) -> ListFilters:
        return self._filters

    @property
    def dimension(self) -> ChartDimension:
        return self._dimension

    @property
    def compare(self) -> str:
        return self._compare

    def select_month(self, year: int, month: int) -> MonthView:
        self._context = BrowsingContext(year=year, month=month)
        return self.render()

    def jump_to_today(self, today: Optional[date] = None) -> MonthView:
        today = today or date.today()
        return self.select_month(today.year, today.month - 1)

    def set_filters(
        self,
        main: Optional[str] = None,
        sub: Optional[str] = None,
        search: Optional[str] = None,
    ) -> MonthView:
        """
        Update list filters. Arguments left as None keep their value.

        Changing the main filter resets the sub filter to "All", since
        the available subs depend on the main.
        """
        updates: dict[str, Any] = {}
        if main is not None and main != self._filters.main:
            updates["main"] = main
            updates["sub"] = ALL
        if sub is not None:
            updates["sub"] = sub
        if search is not None:
            updates["search"] = search
        self._filters = self._filters.model_copy(update=updates)
        return self.render()

    def set_chart_view(self, dimension: ChartDimension) -> MonthView:
        self._dimension = ChartDimension(dimension)
        return self.render()

    def set_compare(self, selector: str) -> MonthView:
        self._compare = selector
        return self.render()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def render(self) -> MonthView:
        """
        Resolve and aggregate the current month.

        The filtered list is published to the mutation service; the
        grouping is built from the unfiltered month.
        """
        context = self._context
        entries = self._resolver.resolve(context.year, context.month)
        visible = apply_list_filters(entries, self._filters)
        self._mutations.publish_view(context, visible)

        grouping = group_by(entries, self._dimension)
        view = MonthView(
            context=context,
            filters=self._filters,
            entries=entries,
            visible=visible,
            visible_total=total_of(visible),
            grouping=grouping,
            percentages=percentages_of(grouping.totals),
            series=self._aggregator.monthly_series(context.year, self._compare),
        )
        self._last_view = view
        return view

    @property
    def last_view(self) -> Optional[MonthView]:
        return self._last_view

    def annual_report(self, year: Optional[int] = None) -> AnnualReport:
        return self._aggregator.annual_report(self._context.year if year is None else year)

    def reminder_message(self) -> Optional[str]:
        return self._backup.reminder_message(self._context.year, self._context.month)

    # -------------------------------------------------------------------------
    # Mutations (re-render afterwards)
    # -------------------------------------------------------------------------

    def add(
        self,
        main: str,
        sub: Optional[str],
        amount: Any,
        note: str = "",
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        """Add an expense to the viewed month."""
        expense = self._mutations.add(
            self._context.year, self._context.month, main, sub, amount, note, is_recurring
        )
        self.render()
        return expense

    def delete_at(self, visible_index: int) -> Optional[Expense]:
        removed = self._mutations.delete_at(visible_index)
        self.render()
        return removed

    def stop_recurring(self, visible_index: int) -> Optional[Expense]:
        updated = self._mutations.stop_recurring(visible_index)
        self.render()
        return updated

    def edit_at(self, visible_index: int) -> Optional[Expense]:
        """Remove a record and return it as a draft for the add form."""
        draft = self._mutations.edit_at(visible_index)
        self.render()
        return draft

    def replace_at(
        self,
        visible_index: int,
        main: str,
        sub: Optional[str],
        amount: Any,
        note: str = "",
        is_recurring: bool = False,
    ) -> Optional[Expense]:
        replacement = self._mutations.replace_at(
            visible_index, main, sub, amount, note, is_recurring
        )
        self.render()
        return replacement

    def import_backup(self, text: str) -> int:
        """Replace the ledger from backup text (see BackupService.import_json)."""
        count = self._backup.import_json(text)
        self.render()
        return count


def create_shared_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> tuple[LedgerStore, CategoryTaxonomy, AuditLogger]:
    """
    Create the parts every browsing session shares: the loaded ledger
    store, the category taxonomy and the audit logger.

    Args:
        settings: Settings to use (defaults to get_settings())
        use_storage: If False, keep the ledger in memory only

    Raises:
        StorageError: If the ledger file cannot be read
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    configure_logging(app_settings.log_level)

    taxonomy = DEFAULT_TAXONOMY
    if app_settings.taxonomy_path:
        taxonomy = CategoryTaxonomy.from_file(app_settings.taxonomy_path)

    if use_storage:
        persistence = JsonFileLedgerPersistence(
            storage_settings.ledger_path,
            metadata_path=storage_settings.metadata_path,
            write_attempts=storage_settings.write_attempts,
        )
        audit_storage = (
            JsonLinesAuditStorage(storage_settings.audit_log_path)
            if storage_settings.audit_log_path
            else None
        )
    else:
        persistence = InMemoryLedgerPersistence()
        audit_storage = None

    store = LedgerStore(persistence)
    store.load()

    logger.info(
        "ledger_opened",
        environment=app_settings.app_environment,
        persistent=use_storage,
        records=store.record_count(),
    )
    return store, taxonomy, AuditLogger(audit_storage)


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> BudgetSession:
    """
    Create a single session wired from configuration.

    Front ends serving several users at once should call
    create_shared_components() once and open one BudgetSession per user
    over the shared store, since a session holds its own published view.
    """
    store, taxonomy, audit_logger = create_shared_components(settings, use_storage)
    return BudgetSession(store, taxonomy, audit_logger)
