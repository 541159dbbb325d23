"""
Tests for transaction and candidate validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from budget_assistant.models.budget import (
    BASE_CATEGORIES,
    ObligationType,
    ParseCandidate,
    Transaction,
    TransactionType,
)
from budget_assistant.validation import TransactionValidator, ValidationError


def _expense(**overrides):
    data = dict(
        date=date(2024, 5, 1),
        type=TransactionType.EXPENSE,
        category="Продукты",
        amount=Decimal("1500"),
        obligation=ObligationType.ESSENTIAL,
    )
    data.update(overrides)
    return Transaction(**data)


@pytest.fixture
def validator():
    return TransactionValidator(BASE_CATEGORIES)


class TestTransactionValidation:
    """Rules applied at the ledger boundary."""

    def test_valid_expense(self, validator):
        """Test that a complete expense passes."""
        assert validator.validate_transaction(_expense()).is_valid

    def test_zero_amount_is_allowed(self, validator):
        """Test that the ledger only rejects negative amounts."""
        assert validator.validate_transaction(_expense(amount=Decimal("0"))).is_valid

    def test_negative_amount(self, validator):
        """Test that negative amounts are rejected."""
        result = validator.validate_transaction(_expense(amount=Decimal("-1")))
        assert result.error_fields == ["amount"]
        assert result.issues[0].issue_type == "negative"

    def test_unknown_category(self, validator):
        """Test that expense categories must come from the configured set."""
        result = validator.validate_transaction(_expense(category="Космос"))
        assert result.error_fields == ["category"]
        assert result.issues[0].issue_type == "unknown_category"

    def test_missing_category(self, validator):
        """Test that an expense without category is rejected."""
        result = validator.validate_transaction(_expense(category=""))
        assert result.issues[0].issue_type == "missing"

    def test_expense_needs_obligation(self, validator):
        """Test that an untagged expense cannot be committed."""
        result = validator.validate_transaction(_expense(obligation=None))
        assert result.error_fields == ["obligation"]

    def test_income_without_category_is_valid(self, validator):
        """Test that income does not need a category."""
        income = Transaction(
            date=date(2024, 5, 1),
            type=TransactionType.INCOME,
            amount=Decimal("100000"),
        )
        assert validator.validate_transaction(income).is_valid

    def test_income_cannot_carry_obligation(self, validator):
        """Test that income never has an obligation tag."""
        income = Transaction(
            date=date(2024, 5, 1),
            type=TransactionType.INCOME,
            amount=Decimal("100000"),
            obligation=ObligationType.OPTIONAL,
        )
        result = validator.validate_transaction(income)
        assert result.issues[0].issue_type == "not_allowed"

    def test_ensure_valid_raises(self, validator):
        """Test that ensure_valid raises with every failing field."""
        with pytest.raises(ValidationError) as exc_info:
            validator.ensure_valid(_expense(amount=Decimal("-5"), category="Космос"))
        assert exc_info.value.fields == ["amount", "category"]


class TestCandidateValidation:
    """Rules applied to extraction output before intake acts on it."""

    def test_zero_amount_candidate_rejected(self, validator):
        """Test that a zero amount is treated as a misread."""
        candidate = ParseCandidate(
            date=date(2024, 5, 1),
            type="expense",
            amount=0,
            category="Продукты",
        )
        result = validator.validate_candidate(candidate)
        assert result.issues[0].issue_type == "not_positive"

    def test_expense_candidate_unknown_category(self, validator):
        """Test that an expense candidate needs a known category."""
        candidate = ParseCandidate(
            date=date(2024, 5, 1),
            type="expense",
            amount=100,
            category="Космос",
        )
        assert validator.validate_candidate(candidate).error_fields == ["category"]

    def test_untagged_expense_candidate_is_valid(self, validator):
        """Test that the obligation tag is not required yet."""
        candidate = ParseCandidate(
            date=date(2024, 5, 1),
            type="expense",
            amount=100,
            category="Продукты",
        )
        assert validator.validate_candidate(candidate).is_valid

    def test_income_candidate(self, validator):
        """Test that income candidates skip the category check."""
        candidate = ParseCandidate(date=date(2024, 5, 1), type="income", amount=5000)
        assert validator.validate_candidate(candidate).is_valid


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
