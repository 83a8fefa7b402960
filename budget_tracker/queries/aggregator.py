"""
Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and works on resolved
entries only. Chart and report consumers never see the raw ledger; they
get the groupings, percentages and series produced here.

Groupings are built from the UNFILTERED month view: list filters narrow
what the list shows, not what the charts add up.
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field

from budget_tracker.models.categories import DEFAULT_TAXONOMY, TOTAL, CategoryTaxonomy
from budget_tracker.models.expense import MONTH_NAMES, VirtualEntry
from budget_tracker.queries.resolver import RecurrenceResolver


NO_DATA_LABEL = "No data"


class ChartDimension(str, Enum):
    """Which label an entry is grouped under."""
    MAIN = "main"
    SUB = "sub"


class Grouping(BaseModel):
    """
    Summed amounts per label.

    `parents` maps each subcategory label to its main category. It is
    only filled for SUB groupings, and only for entries that have a sub.
    """

    dimension: ChartDimension
    totals: dict[str, Decimal] = Field(default_factory=dict)
    parents: dict[str, str] = Field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return sum(self.totals.values(), Decimal("0"))


class MonthlySeries(BaseModel):
    """
    Per-month sums for one year.

    For a single category there is one dataset. For the "Total" selector
    there is one dataset per main category (a category x month matrix).
    """

    year: int
    selector: str
    labels: list[str] = Field(default_factory=lambda: list(MONTH_NAMES))
    datasets: dict[str, list[Decimal]] = Field(default_factory=dict)


class AnnualReport(BaseModel):
    """Everything the annual report needs for one year."""

    year: int
    matrix: dict[str, list[Decimal]] = Field(
        default_factory=dict,
        description="Main category -> 12 monthly sums"
    )
    monthly_totals: list[Decimal] = Field(default_factory=list)
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    yearly_total: Decimal = Decimal("0")

    @property
    def has_data(self) -> bool:
        return self.yearly_total != 0

    @property
    def title(self) -> str:
        return f"Annual Budget Report - {self.year}"


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def group_by(entries: Iterable[VirtualEntry], dimension: ChartDimension) -> Grouping:
    """
    Sum entries per main category, or per subcategory.

    For SUB, an entry without a sub is counted under its main label, so
    both dimensions always add up to the same total. Labels keep the
    order in which they were first seen.
    """
    dimension = ChartDimension(dimension)
    totals: dict[str, Decimal] = {}
    parents: dict[str, str] = {}

    for entry in entries:
        expense = entry.expense
        if dimension == ChartDimension.MAIN:
            label = expense.main
        else:
            label = expense.sub or expense.main
            if expense.sub:
                parents[expense.sub] = expense.main
        totals[label] = totals.get(label, Decimal("0")) + expense.amount

    return Grouping(dimension=dimension, totals=totals, parents=parents)


def percentages_of(totals: dict[str, Decimal]) -> dict[str, float]:
    """
    Share of each label in percent.

    When there is nothing to divide by (no labels, or a zero total) the
    result is exactly {NO_DATA_LABEL: 100.0}.
    """
    total = sum(totals.values(), Decimal("0"))
    if not total:
        return {NO_DATA_LABEL: 100.0}
    return {label: float(value / total * 100) for label, value in totals.items()}


def is_no_data(percentages: dict[str, float]) -> bool:
    return list(percentages) == [NO_DATA_LABEL]


def chart_labels(totals: dict[str, Decimal]) -> list[str]:
    """Legend labels such as "Food (42.5%)"."""
    percentages = percentages_of(totals)
    if is_no_data(percentages):
        return [NO_DATA_LABEL]
    return [f"{label} ({pct:.1f}%)" for label, pct in percentages.items()]


def _sum_for_main(entries: Iterable[VirtualEntry], main: str) -> Decimal:
    return sum(
        (entry.amount for entry in entries if entry.expense.main == main),
        Decimal("0"),
    )


# =============================================================================
# MULTI-MONTH AGGREGATION
# =============================================================================

class Aggregator:
    """
    Builds multi-month series and annual reports.

    Each year-level call resolves all twelve months once, so its cost is
    twelve resolver passes over the ledger.
    """

    def __init__(
        self,
        resolver: RecurrenceResolver,
        taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
    ):
        self._resolver = resolver
        self._taxonomy = taxonomy

    def monthly_series(self, year: int, selector: str = TOTAL) -> MonthlySeries:
        """
        Monthly sums of `year` for one main category, or for all of them.

        With selector "Total" the datasets cover every taxonomy main
        category, in taxonomy order.
        """
        months = self._resolver.resolve_year(year)

        if selector == TOTAL:
            mains = self._taxonomy.main_categories()
        else:
            mains = [selector]

        datasets = {
            main: [_sum_for_main(entries, main) for entries in months]
            for main in mains
        }
        return MonthlySeries(year=year, selector=selector, datasets=datasets)

    def annual_report(self, year: int) -> AnnualReport:
        """
        Category x month matrix, monthly totals and yearly total.

        Every taxonomy category gets a row even when it is all zeros.
        Records whose main category is no longer in the taxonomy get a
        row of their own after the known ones.
        """
        matrix: dict[str, list[Decimal]] = {
            main: [Decimal("0")] * 12 for main in self._taxonomy.main_categories()
        }
        monthly_totals = [Decimal("0")] * 12
        yearly_total = Decimal("0")

        for month, entries in enumerate(self._resolver.resolve_year(year)):
            for entry in entries:
                amount = entry.amount
                main = entry.expense.main
                yearly_total += amount
                monthly_totals[month] += amount
                row = matrix.setdefault(main, [Decimal("0")] * 12)
                row[month] += amount

        category_totals = {
            main: sum(row, Decimal("0")) for main, row in matrix.items()
        }

        return AnnualReport(
            year=year,
            matrix=matrix,
            monthly_totals=monthly_totals,
            category_totals=category_totals,
            yearly_total=yearly_total,
        )
