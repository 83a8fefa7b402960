"""
Expense Validation

Checks applied once, when an expense is created:
- the month is a real month (0-11)
- the main category is part of the taxonomy
- the subcategory is absent or belongs to the main category
- the amount is a finite number greater than zero

IMPORTANT: Records already in the ledger are never re-validated, not even
when they are loaded from disk or restored from a backup.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from budget_tracker.models.categories import DEFAULT_TAXONOMY, CategoryTaxonomy
from budget_tracker.models.validation import ValidationIssue, ValidationResult


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Read a user-supplied amount as a finite Decimal.

    Floats go through str() so 0.1 stays 0.1. Returns None for anything
    that is not a finite number (bools included).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class ExpenseValidator:
    """Validates new expenses against the category taxonomy."""

    def __init__(self, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        self._taxonomy = taxonomy

    @property
    def taxonomy(self) -> CategoryTaxonomy:
        return self._taxonomy

    def validate(
        self,
        month: int,
        main: str,
        sub: Optional[str],
        amount: Any,
    ) -> ValidationResult:
        issues = []

        if not isinstance(month, int) or isinstance(month, bool) or not 0 <= month <= 11:
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_value",
                message=f"Month must be between 0 and 11, got {month!r}",
            ))

        # A main without subcategories has no sub selector; ignore whatever came in.
        normalized_sub = sub or None
        if self._taxonomy.is_known(main) and not self._taxonomy.subcategories(main):
            normalized_sub = None

        if not self._taxonomy.is_known(main):
            issues.append(ValidationIssue(
                field="main",
                issue_type="unknown_category",
                message=f"Unknown category: {main!r}",
            ))
        elif not self._taxonomy.accepts(main, normalized_sub):
            issues.append(ValidationIssue(
                field="sub",
                issue_type="unknown_subcategory",
                message=f"{normalized_sub!r} is not a subcategory of {main}",
            ))

        parsed_amount = coerce_amount(amount)
        if parsed_amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="not_a_number",
                message=f"Amount must be a finite number, got {amount!r}",
            ))
        elif parsed_amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))

        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(
            is_valid=True,
            amount=parsed_amount,
            sub=normalized_sub,
        )
