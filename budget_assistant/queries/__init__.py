"""Budget reports package."""

from budget_assistant.queries.reports import (
    ANALYTICS_WEEKS,
    HIGH_DISCRETIONARY_SHARE,
    AnalyticsReport,
    BudgetReportBuilder,
    CategoryProgress,
    MonthOverview,
    ReportError,
    WeeklyBar,
    week_label,
)

__all__ = [
    "ANALYTICS_WEEKS",
    "HIGH_DISCRETIONARY_SHARE",
    "AnalyticsReport",
    "BudgetReportBuilder",
    "CategoryProgress",
    "MonthOverview",
    "ReportError",
    "WeeklyBar",
    "week_label",
]
