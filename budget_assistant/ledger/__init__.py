"""Budget ledger package."""

from budget_assistant.ledger.budget_ledger import BudgetLedger, WeeklyTotal

__all__ = ["BudgetLedger", "WeeklyTotal"]
