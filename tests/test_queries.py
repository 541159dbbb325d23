"""
Tests for the budget reports (month overview, analytics, history).
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import MonthKey, ObligationType, Transaction, TransactionType
from budget_assistant.queries import BudgetReportBuilder, ReportError, week_label
from budget_assistant.services.storage import InMemoryTransactionStorage


def expense(amount, category="Продукты", day=date(2024, 5, 15), obligation=ObligationType.ESSENTIAL, **extra):
    return Transaction(
        date=day,
        type=TransactionType.EXPENSE,
        category=category,
        amount=Decimal(amount),
        obligation=obligation,
        **extra,
    )


@pytest.fixture
def reports(ledger, settings):
    return BudgetReportBuilder(ledger, settings)


class TestMonthOverview:
    """Tests for the month overview."""

    def test_empty_month(self, reports, settings):
        """Test that an empty month is all zeros."""
        overview = reports.month_overview(date(2024, 5, 15))

        assert overview.month == MonthKey(year=2024, month=5)
        assert overview.total_spent == Decimal("0")
        assert overview.remaining == settings.free_budget
        assert overview.percent_used == 0
        assert overview.spent_by_category == {}
        assert [p.category for p in overview.limits] == ["Продукты", "Одежда"]
        assert all(p.spent == 0 for p in overview.limits)

    def test_overview_figures(self, reports, ledger):
        """Test totals, percentages and the per-limit progress."""
        ledger.append(Transaction(date=date(2024, 5, 1), type=TransactionType.INCOME, amount=Decimal("100000")))
        ledger.append(expense("6000", category="Одежда", obligation=ObligationType.IMPULSE))
        ledger.append(expense("1500", category="Продукты"))

        overview = reports.month_overview(date(2024, 5, 15))

        assert overview.total_spent == Decimal("7500")
        assert overview.remaining == Decimal("92500")
        assert overview.is_red_zone is False
        assert overview.percent_used == 8
        assert overview.spent_by_category == {
            "Продукты": Decimal("1500"),
            "Одежда": Decimal("6000"),
        }

        progress = {p.category: p for p in overview.limits}
        assert progress["Одежда"].is_over is True
        assert progress["Одежда"].percent == 100
        assert progress["Продукты"].is_over is False
        assert progress["Продукты"].percent == 8

    def test_over_budget_month(self, make_settings):
        """Test the red zone and an uncapped percentage."""
        settings = make_settings(income="1000")
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        ledger.append(expense("1500", category="Другое"))

        overview = BudgetReportBuilder(ledger, settings).month_overview(date(2024, 5, 15))

        assert overview.is_red_zone is True
        assert overview.remaining == Decimal("-500")
        assert overview.percent_used == 150
        assert overview.limits == []

    def test_explicit_month(self, reports, ledger):
        """Test an overview for a past month."""
        ledger.append(expense("400", day=date(2024, 4, 10)))
        overview = reports.month_overview(date(2024, 5, 15), month=MonthKey(year=2024, month=4))
        assert overview.total_spent == Decimal("400")


class TestAnalytics:
    """Tests for the analytics report."""

    def test_week_labels(self):
        """Test the chart labels."""
        assert week_label(0) == "Тек."
        assert week_label(1) == "2н. назад"
        assert week_label(3) == "4н. назад"

    def test_weekly_bars_and_share(self, reports, ledger):
        """Test four weekly bars, the average and the discretionary flag."""
        for amount, day, obligation in [
            ("999", date(2024, 4, 30), ObligationType.IMPULSE),
            ("100", date(2024, 5, 1), ObligationType.ESSENTIAL),
            ("200", date(2024, 5, 7), ObligationType.ESSENTIAL),
            ("300", date(2024, 5, 14), ObligationType.ESSENTIAL),
            ("400", date(2024, 5, 22), ObligationType.ESSENTIAL),
            ("500", date(2024, 5, 28), ObligationType.IMPULSE),
        ]:
            ledger.append(expense(amount, day=day, obligation=obligation))

        report = reports.analytics(date(2024, 5, 28))

        assert [bar.label for bar in report.weeks] == ["4н. назад", "3н. назад", "2н. назад", "Тек."]
        assert [bar.amount for bar in report.weeks] == [
            Decimal("300"), Decimal("300"), Decimal("0"), Decimal("900"),
        ]
        assert report.average_weekly == Decimal("375")
        assert report.discretionary_share == 33
        assert report.is_discretionary_high is True

    def test_low_discretionary_share(self, reports, ledger):
        """Test that an all-essential month is not flagged."""
        ledger.append(expense("1000"))
        report = reports.analytics(date(2024, 5, 15))
        assert report.discretionary_share == 0
        assert report.is_discretionary_high is False

    def test_at_least_one_week(self, reports):
        """Test that an empty window is refused."""
        with pytest.raises(ReportError):
            reports.analytics(date(2024, 5, 15), weeks=0)


class TestHistory:
    """Tests for the history view."""

    def test_newest_first(self, reports, ledger):
        """Test ordering by creation timestamp, newest first."""
        base = datetime(2024, 5, 15, 9, 0, tzinfo=timezone.utc)
        older = ledger.append(expense("1", created_at=base))
        newer = ledger.append(expense("2", created_at=base + timedelta(hours=1)))

        assert [t.id for t in reports.history()] == [newer.id, older.id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
