"""
Budget Reports

DESIGN DECISION: Reports are DETERMINISTIC.
Every figure here is computed from the ledger at the moment of the call.
No language service is involved, and nothing is cached between calls,
so an edit or delete in the history shows up in the next report.

Three read-only views:
1. Month overview - spent, remaining, red zone, per-category progress
2. Analytics - weekly totals, average week, discretionary share
3. History - every transaction, newest first
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, Field

from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import (
    Currency,
    MonthKey,
    Transaction,
    UserSettings,
)


ANALYTICS_WEEKS = 4

# Discretionary share above this percentage is highlighted.
HIGH_DISCRETIONARY_SHARE = 30


class ReportError(Exception):
    """A report could not be built from the current data."""
    pass


# =============================================================================
# REPORT MODELS
# =============================================================================

class CategoryProgress(BaseModel):
    """Spending against one enforced category limit."""

    category: str
    spent: Decimal
    limit: Decimal
    is_over: bool
    percent: int = Field(
        ...,
        ge=0,
        le=100,
        description="Share of the limit used, capped at 100"
    )


class MonthOverview(BaseModel):
    """Where the month stands right now."""

    month: MonthKey
    currency: Currency
    total_spent: Decimal
    free_budget: Decimal
    remaining: Decimal = Field(
        ...,
        description="free_budget - total_spent, negative once over budget"
    )
    is_red_zone: bool
    percent_used: int = Field(
        ...,
        ge=0,
        description="Share of the free budget spent, not capped"
    )
    spent_by_category: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Only categories with spending, in settings order"
    )
    limits: list[CategoryProgress] = Field(default_factory=list)


class WeeklyBar(BaseModel):
    label: str
    start: date
    end: date
    amount: Decimal


class AnalyticsReport(BaseModel):
    """Spending habits over the last weeks and the current month."""

    month: MonthKey
    currency: Currency
    weeks: list[WeeklyBar]
    average_weekly: Decimal
    discretionary_share: int = Field(..., ge=0, le=100)
    is_discretionary_high: bool


# =============================================================================
# BUILDER
# =============================================================================

def _percent(part: Decimal, whole: Decimal) -> int:
    if whole <= 0:
        return 0
    return int((part / whole * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def week_label(weeks_ago: int) -> str:
    """Chart label: the current week, then "2н. назад", "3н. назад"..."""
    if weeks_ago == 0:
        return "Тек."
    return f"{weeks_ago + 1}н. назад"


class BudgetReportBuilder:
    """
    Builds the read-only budget views from the ledger.

    GUARANTEES:
    - Only returns figures derived from committed transactions
    - Pending expenses (not yet tagged) are never counted
    - An empty month yields zeros, never an error
    """

    def __init__(self, ledger: BudgetLedger, settings: UserSettings):
        self._ledger = ledger
        self._settings = settings

    def month_overview(
        self,
        today: date,
        month: Optional[MonthKey] = None,
    ) -> MonthOverview:
        """Overview for `month`, defaulting to the month containing `today`."""
        month = month or MonthKey.from_date(today)
        settings = self._settings

        total_spent = self._ledger.monthly_expense_total(month)

        spent_by_category = {}
        progress = []
        for limit in settings.limits:
            spent = self._ledger.category_spent(limit.category, month)
            if spent > 0:
                spent_by_category[limit.category] = spent
            if limit.is_enforced:
                progress.append(CategoryProgress(
                    category=limit.category,
                    spent=spent,
                    limit=limit.limit,
                    is_over=spent > limit.limit,
                    percent=min(100, _percent(spent, limit.limit)),
                ))

        return MonthOverview(
            month=month,
            currency=settings.currency,
            total_spent=total_spent,
            free_budget=settings.free_budget,
            remaining=settings.free_budget - total_spent,
            is_red_zone=total_spent > settings.free_budget,
            percent_used=_percent(total_spent, settings.free_budget),
            spent_by_category=spent_by_category,
            limits=progress,
        )

    def analytics(self, today: date, weeks: int = ANALYTICS_WEEKS) -> AnalyticsReport:
        """Weekly bars ending today plus the month's discretionary share."""
        if weeks < 1:
            raise ReportError(f"At least one week is required, got {weeks}")

        totals = self._ledger.weekly_totals(weeks, today)
        bars = [
            WeeklyBar(
                label=week_label(total.weeks_ago),
                start=total.start,
                end=total.end,
                amount=total.total,
            )
            for total in totals
        ]
        average = sum((bar.amount for bar in bars), Decimal("0")) / weeks

        month = MonthKey.from_date(today)
        share = self._ledger.discretionary_share(month)

        return AnalyticsReport(
            month=month,
            currency=self._settings.currency,
            weeks=bars,
            average_weekly=average,
            discretionary_share=share,
            is_discretionary_high=share > HIGH_DISCRETIONARY_SHARE,
        )

    def history(self) -> list[Transaction]:
        """All transactions, newest first by creation timestamp."""
        return sorted(
            self._ledger.transactions(),
            key=lambda t: t.created_at,
            reverse=True,
        )
