"""Feedback policy package."""

from budget_assistant.feedback.policy import (
    FALLBACK_NORMAL,
    FALLBACK_RED_ZONE,
    FeedbackPolicy,
    FeedbackResult,
    compute_stats,
    days_remaining_in_month,
)

__all__ = [
    "FALLBACK_NORMAL",
    "FALLBACK_RED_ZONE",
    "FeedbackPolicy",
    "FeedbackResult",
    "compute_stats",
    "days_remaining_in_month",
]
