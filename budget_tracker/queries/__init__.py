"""Month view queries: recurrence resolution, list filters and aggregation."""

from budget_tracker.queries.resolver import RecurrenceResolver
from budget_tracker.queries.filters import (
    ListFilters,
    apply_filters,
    apply_list_filters,
    total_of,
)
from budget_tracker.queries.aggregator import (
    NO_DATA_LABEL,
    Aggregator,
    AnnualReport,
    ChartDimension,
    Grouping,
    MonthlySeries,
    chart_labels,
    group_by,
    is_no_data,
    percentages_of,
)

__all__ = [
    "RecurrenceResolver",
    "ListFilters",
    "apply_filters",
    "apply_list_filters",
    "total_of",
    "NO_DATA_LABEL",
    "Aggregator",
    "AnnualReport",
    "ChartDimension",
    "Grouping",
    "MonthlySeries",
    "chart_labels",
    "group_by",
    "is_no_data",
    "percentages_of",
]
