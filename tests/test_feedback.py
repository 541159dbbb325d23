"""
Tests for the Feedback Policy.

The decision (red zone, strictness, safe daily limit) is tested as a
pure function; phrasing is tested with fake services that succeed,
fail, return nothing or hang.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from budget_assistant.feedback import (
    FALLBACK_NORMAL,
    FALLBACK_RED_ZONE,
    FeedbackPolicy,
    compute_stats,
    days_remaining_in_month,
)
from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import (
    Currency,
    ObligationType,
    ToneType,
    Transaction,
    TransactionType,
)
from budget_assistant.services.storage import InMemoryTransactionStorage

from fakes import FakePhraser


TODAY = date(2024, 5, 15)


def expense(amount, category="Продукты", obligation=ObligationType.ESSENTIAL, day=TODAY):
    return Transaction(
        date=day,
        type=TransactionType.EXPENSE,
        category=category,
        amount=Decimal(amount),
        obligation=obligation,
    )


def income(amount):
    return Transaction(date=TODAY, type=TransactionType.INCOME, amount=Decimal(amount))


def commit(ledger, transaction):
    return ledger.append(transaction)


class TestDaysRemaining:
    """Tests for the days-left calculation."""

    def test_last_day_counts(self):
        """Test that the last day of the month leaves one day."""
        assert days_remaining_in_month(date(2024, 2, 29)) == 1
        assert days_remaining_in_month(date(2023, 2, 28)) == 1

    def test_first_day(self):
        """Test that the first day leaves the whole month."""
        assert days_remaining_in_month(date(2024, 2, 1)) == 29
        assert days_remaining_in_month(date(2024, 5, 15)) == 17


class TestComputeStats:
    """Tests for the pure feedback decision."""

    def test_first_purchase_is_calm(self, ledger, settings):
        """Test income 100000 and "продукты 1500" Essential."""
        commit(ledger, income("100000"))
        trigger = commit(ledger, expense("1500"))

        stats = compute_stats(ledger, settings, trigger, TODAY)

        assert stats.month_total == Decimal("1500")
        assert stats.remaining_budget == Decimal("98500")
        assert stats.days_left == 17
        assert stats.safe_daily_limit == Decimal("98500") / 17
        assert stats.spent_today == Decimal("1500")
        assert stats.is_red_zone is False
        assert stats.is_strict is False

    def test_category_over_limit_turns_red(self, ledger, settings):
        """Test Одежда limit 5000 with two Impulse purchases of 3000."""
        first = commit(ledger, expense("3000", category="Одежда", obligation=ObligationType.IMPULSE))
        first_stats = compute_stats(ledger, settings, first, TODAY)

        second = commit(ledger, expense("3000", category="Одежда", obligation=ObligationType.IMPULSE))
        second_stats = compute_stats(ledger, settings, second, TODAY)

        assert first_stats.category_over_limit is False
        assert first_stats.is_red_zone is False
        assert second_stats.category_spent == Decimal("6000")
        assert second_stats.category_limit == Decimal("5000")
        assert second_stats.category_over_limit is True
        assert second_stats.is_red_zone is True
        assert second_stats.is_strict is True

    def test_zero_limit_is_never_over(self, ledger, settings):
        """Test that categories without a limit never trip the red zone."""
        trigger = commit(ledger, expense("3000", category="Здоровье"))
        stats = compute_stats(ledger, settings, trigger, TODAY)
        assert stats.category_limit == Decimal("0")
        assert stats.category_over_limit is False

    def test_month_over_budget_turns_red(self, make_settings):
        """Test red zone when the month total exceeds the free budget."""
        settings = make_settings(income="10000")
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        trigger = commit(ledger, expense("12000", category="Другое"))

        stats = compute_stats(ledger, settings, trigger, TODAY)

        assert stats.month_over_budget is True
        assert stats.is_red_zone is True
        assert stats.remaining_budget == Decimal("-2000")
        assert stats.safe_daily_limit == Decimal("0")

    def test_red_zone_without_trigger(self, make_settings):
        """Test that the month rule alone is enough for the red zone."""
        settings = make_settings(income="10000")
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        commit(ledger, expense("10001", category="Другое"))

        stats = compute_stats(ledger, settings, None, TODAY)

        assert stats.is_red_zone is True
        assert stats.category is None

    def test_strict_by_amount(self, ledger, settings):
        """Test that a single large expense is strict outside the red zone."""
        trigger = commit(ledger, expense("6000", category="Другое"))
        stats = compute_stats(ledger, settings, trigger, TODAY)
        assert stats.is_red_zone is False
        assert stats.is_strict is True

    def test_threshold_is_exclusive(self, ledger, settings):
        """Test that an expense equal to the threshold is not strict."""
        trigger = commit(ledger, expense("5000", category="Другое"))
        assert compute_stats(ledger, settings, trigger, TODAY).is_strict is False

    def test_zero_threshold_never_strict_by_amount(self, make_settings):
        """Test that BYN has no amount-based strictness."""
        settings = make_settings(income="1000000", currency=Currency.BYN)
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        trigger = commit(ledger, expense("50000", category="Другое"))

        stats = compute_stats(ledger, settings, trigger, TODAY)

        assert stats.is_red_zone is False
        assert stats.is_strict is False

    def test_large_income_is_strict(self, ledger, settings):
        """Test that an income above the threshold is strict but never over a limit."""
        trigger = commit(ledger, income("100000"))
        stats = compute_stats(ledger, settings, trigger, TODAY)
        assert stats.category is None
        assert stats.category_over_limit is False
        assert stats.is_red_zone is False
        assert stats.trigger_amount == Decimal("100000")
        assert stats.is_strict is True

    def test_small_income_is_not_strict(self, ledger, settings):
        """Test that an income at the threshold stays calm."""
        trigger = commit(ledger, income("5000"))
        assert compute_stats(ledger, settings, trigger, TODAY).is_strict is False

    def test_safe_daily_limit_never_negative(self, make_settings):
        """Test the safe daily limit across growing overspend."""
        settings = make_settings(income="1000")
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        for _ in range(5):
            trigger = commit(ledger, expense("700", category="Другое"))
            assert compute_stats(ledger, settings, trigger, TODAY).safe_daily_limit >= 0

    def test_other_months_do_not_count(self, ledger, settings):
        """Test that only the current month feeds the decision."""
        commit(ledger, expense("200000", category="Другое", day=date(2024, 4, 30)))
        trigger = commit(ledger, expense("100"))
        stats = compute_stats(ledger, settings, trigger, TODAY)
        assert stats.month_total == Decimal("100")
        assert stats.is_red_zone is False


class TestFeedbackPolicy:
    """Tests for phrasing and its fallbacks."""

    def test_phrased_feedback(self, ledger, settings):
        """Test that the phraser gets the stats and the user's tone."""
        phraser = FakePhraser(text="  Отличный старт!  ")
        policy = FeedbackPolicy(phraser, timeout_seconds=1.0)
        trigger = commit(ledger, expense("1500"))

        result = asyncio.run(policy.give_feedback(ledger, settings, trigger, TODAY))

        assert result.text == "Отличный старт!"
        assert result.used_fallback is False
        stats, tone = phraser.calls[0]
        assert stats.month_total == Decimal("1500")
        assert tone == ToneType.SOFT

    def test_failure_falls_back_normal(self, ledger, settings):
        """Test the canned sentence outside the red zone."""
        policy = FeedbackPolicy(FakePhraser(fail=True), timeout_seconds=1.0)
        trigger = commit(ledger, expense("1500"))

        result = asyncio.run(policy.give_feedback(ledger, settings, trigger, TODAY))

        assert result.text == FALLBACK_NORMAL
        assert result.used_fallback is True
        assert result.is_red_zone is False
        assert "service unavailable" in result.error_message

    def test_failure_falls_back_red_zone(self, ledger, settings):
        """Test the canned sentence inside the red zone."""
        policy = FeedbackPolicy(FakePhraser(fail=True), timeout_seconds=1.0)
        trigger = commit(ledger, expense("6000", category="Одежда"))

        result = asyncio.run(policy.give_feedback(ledger, settings, trigger, TODAY))

        assert result.text == FALLBACK_RED_ZONE
        assert result.is_red_zone is True

    def test_empty_text_falls_back(self, ledger, settings):
        """Test that blank phrasing counts as a failure."""
        policy = FeedbackPolicy(FakePhraser(text="   "), timeout_seconds=1.0)
        trigger = commit(ledger, expense("100"))

        result = asyncio.run(policy.give_feedback(ledger, settings, trigger, TODAY))

        assert result.used_fallback is True
        assert result.text == FALLBACK_NORMAL

    def test_timeout_falls_back(self, ledger, settings):
        """Test that a hanging phraser is cut off."""
        policy = FeedbackPolicy(FakePhraser(delay=1.0), timeout_seconds=0.01)
        trigger = commit(ledger, expense("100"))

        result = asyncio.run(policy.give_feedback(ledger, settings, trigger, TODAY))

        assert result.used_fallback is True
        assert "timed out" in result.error_message

    def test_fallback_text(self):
        """Test the two canned sentences."""
        assert FeedbackPolicy.fallback_text(True) == FALLBACK_RED_ZONE
        assert FeedbackPolicy.fallback_text(False) == FALLBACK_NORMAL


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
