"""
Validation Models

Result types returned by ExpenseValidator. The mutation service turns a
failed result into a silent no-op; the issues only reach the audit log
and callers that ask for them.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_category', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating a new expense.

    On success `amount` and `sub` hold the normalized values that should
    be stored.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    amount: Optional[Decimal] = None
    sub: Optional[str] = None

    @property
    def issue_dicts(self) -> list[dict]:
        return [issue.model_dump() for issue in self.issues]
