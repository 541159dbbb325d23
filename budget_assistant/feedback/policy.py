"""
Feedback Policy

DESIGN DECISION: Deciding and phrasing are separate.

DECIDING (pure, synchronous):
- remaining budget, days left, safe daily limit
- red zone: category over its limit OR month total over free budget
- strict: red zone OR a single expense above the currency threshold

PHRASING (external, may fail):
- the phrasing service words the decision in the user's tone
- any failure or timeout falls back to one of two canned sentences,
  so every commit gets a reply
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel

from budget_assistant.agents.interface import FeedbackPhraser
from budget_assistant.config import get_settings
from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import (
    BudgetStats,
    MonthKey,
    Transaction,
    UserSettings,
)


logger = structlog.get_logger(__name__)


FALLBACK_NORMAL = "Операция записана. Следите за лимитами."
FALLBACK_RED_ZONE = "Операция записана. Бюджет в красной зоне: стоит притормозить с тратами."


class FeedbackResult(BaseModel):
    """What the conversation log receives after a commit."""

    text: str
    is_red_zone: bool
    is_strict: bool
    stats: BudgetStats
    used_fallback: bool = False
    error_message: Optional[str] = None


def days_remaining_in_month(today: date) -> int:
    """Days left in the current calendar month, today included."""
    return MonthKey.from_date(today).days_remaining(today)


def compute_stats(
    ledger: BudgetLedger,
    settings: UserSettings,
    trigger: Optional[Transaction],
    today: date,
) -> BudgetStats:
    """
    Derive the budget figures for the current month.

    `trigger` is the transaction that was just committed. Its amount is
    checked against the strict threshold whatever its type; an expense
    trigger also has its category checked against its limit. A limit
    of 0 is never exceeded.
    """
    month = MonthKey.from_date(today)
    month_total = ledger.monthly_expense_total(month)
    remaining = settings.free_budget - month_total
    days_left = days_remaining_in_month(today)
    safe_daily_limit = max(Decimal("0"), remaining / days_left)

    category = None
    category_spent = Decimal("0")
    category_limit = Decimal("0")
    category_over_limit = False
    trigger_amount = Decimal("0")

    if trigger is not None:
        trigger_amount = trigger.amount

    if trigger is not None and trigger.is_expense:
        category = trigger.category
        category_spent = ledger.category_spent(category, month)
        category_limit = settings.limit_for(category)
        category_over_limit = category_limit > 0 and category_spent > category_limit

    month_over_budget = month_total > settings.free_budget
    is_red_zone = category_over_limit or month_over_budget

    threshold = settings.strict_threshold
    is_strict = is_red_zone or (threshold > 0 and trigger_amount > threshold)

    return BudgetStats(
        currency=settings.currency,
        spent_today=ledger.spent_on(today),
        month_total=month_total,
        free_budget=settings.free_budget,
        remaining_budget=remaining,
        days_left=days_left,
        safe_daily_limit=safe_daily_limit,
        category=category,
        category_spent=category_spent,
        category_limit=category_limit,
        category_over_limit=category_over_limit,
        month_over_budget=month_over_budget,
        trigger_amount=trigger_amount,
        is_red_zone=is_red_zone,
        is_strict=is_strict,
    )


class FeedbackPolicy:
    """
    Decides the zone and strictness after a commit and asks the
    phrasing service for the wording.
    """

    def __init__(
        self,
        phraser: FeedbackPhraser,
        timeout_seconds: Optional[float] = None,
    ):
        self._phraser = phraser
        self._timeout = timeout_seconds or get_settings().app.feedback_timeout_seconds

    def evaluate(
        self,
        ledger: BudgetLedger,
        settings: UserSettings,
        trigger: Optional[Transaction],
        today: date,
    ) -> BudgetStats:
        """The decision alone, without phrasing."""
        return compute_stats(ledger, settings, trigger, today)

    @staticmethod
    def fallback_text(is_red_zone: bool) -> str:
        return FALLBACK_RED_ZONE if is_red_zone else FALLBACK_NORMAL

    async def give_feedback(
        self,
        ledger: BudgetLedger,
        settings: UserSettings,
        trigger: Optional[Transaction],
        today: date,
    ) -> FeedbackResult:
        """
        Evaluate the budget and phrase the result.

        Never raises: any phrasing failure produces the canned sentence
        for the zone.
        """
        stats = self.evaluate(ledger, settings, trigger, today)

        try:
            text = await asyncio.wait_for(
                self._phraser.phrase(stats, settings.tone),
                timeout=self._timeout,
            )
            if not text or not text.strip():
                raise ValueError("empty feedback text")
        except asyncio.TimeoutError:
            logger.warning("feedback_timeout", timeout_seconds=self._timeout)
            return self._fallback(stats, f"timed out after {self._timeout}s")
        except Exception as e:
            logger.warning("feedback_failed", error=str(e))
            return self._fallback(stats, str(e))

        return FeedbackResult(
            text=text.strip(),
            is_red_zone=stats.is_red_zone,
            is_strict=stats.is_strict,
            stats=stats,
        )

    def _fallback(self, stats: BudgetStats, error_message: str) -> FeedbackResult:
        return FeedbackResult(
            text=self.fallback_text(stats.is_red_zone),
            is_red_zone=stats.is_red_zone,
            is_strict=stats.is_strict,
            stats=stats,
            used_fallback=True,
            error_message=error_message,
        )
