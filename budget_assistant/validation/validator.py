"""
Transaction Validation

DESIGN DECISION: Validation happens at two points:

CANDIDATE VALIDATION (intake):
- Runs on what the extraction service proposed, before anything is
  registered or committed
- Stricter than the ledger: a zero amount is almost certainly a
  misread, so the user is asked again instead

TRANSACTION VALIDATION (ledger boundary):
- Non-negative amount
- Expense category belongs to the configured set
- Expenses carry an obligation tag, income never does

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can ask the user.
"""

from decimal import Decimal
from typing import Iterable

from budget_assistant.models.budget import (
    ParseCandidate,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """A transaction was rejected at the ledger boundary."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues) or "Invalid transaction")

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class TransactionValidator:
    """
    Validates transactions and candidates against the configured
    category set.
    """

    def __init__(self, categories: Iterable[str]):
        self._categories = frozenset(categories)

    @property
    def categories(self) -> frozenset[str]:
        return self._categories

    def _check_category(self, category: str) -> list[ValidationIssue]:
        if not category:
            return [ValidationIssue(
                field="category",
                issue_type="missing",
                message="Expense category is required",
            )]
        if category not in self._categories:
            return [ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Unknown category: {category}",
            )]
        return []

    def validate_transaction(self, transaction: Transaction) -> ValidationResult:
        """Rules every committed transaction must satisfy."""
        issues = []

        if transaction.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative",
                message=f"Amount cannot be negative ({transaction.amount})",
            ))

        if transaction.type == TransactionType.EXPENSE:
            issues.extend(self._check_category(transaction.category))
            if transaction.obligation is None:
                issues.append(ValidationIssue(
                    field="obligation",
                    issue_type="missing",
                    message="Expense needs an obligation tag before it can be saved",
                ))
        elif transaction.obligation is not None:
            issues.append(ValidationIssue(
                field="obligation",
                issue_type="not_allowed",
                message="Income cannot carry an obligation tag",
            ))

        return ValidationResult(issues=issues)

    def validate_candidate(self, candidate: ParseCandidate) -> ValidationResult:
        """
        Rules a complete candidate must satisfy before intake acts on it.

        The obligation tag is not checked here; expenses get it later.
        """
        issues = []

        if candidate.amount <= Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="not_positive",
                message=f"Amount must be greater than zero ({candidate.amount})",
            ))

        if candidate.type == TransactionType.EXPENSE:
            issues.extend(self._check_category(candidate.category))

        return ValidationResult(issues=issues)

    def ensure_valid(self, transaction: Transaction) -> None:
        """Raise ValidationError unless the transaction may be committed."""
        result = self.validate_transaction(transaction)
        if result.has_errors:
            raise ValidationError(result.issues)
