"""
Budget Ledger

DESIGN DECISION: The ledger exclusively owns the transaction collection
and is its only writer. Every aggregate is a pure function of
(transactions, month/reference date) and is recomputed on each call -
nothing is cached, so nothing can go stale after an edit or delete.

Month membership uses parsed calendar dates (MonthKey), never string
prefixes of the ISO date.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from budget_assistant.models.budget import (
    MonthKey,
    Transaction,
    TransactionType,
    ValidationIssue,
)
from budget_assistant.services.storage import (
    NotFoundError,
    TransactionStorageInterface,
)
from budget_assistant.validation import TransactionValidator, ValidationError


logger = structlog.get_logger(__name__)

MonthLike = Union[MonthKey, date, str]


class WeeklyTotal(BaseModel):
    """Expense total for one inclusive 7-day window."""

    weeks_ago: int
    start: date
    end: date
    total: Decimal


class BudgetLedger:
    """
    The set of finalized transactions plus the aggregates derived from it.

    Writes go through the storage backend first; the in-memory view is
    only updated once the store accepted the change.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        categories: Iterable[str],
    ):
        self._storage = storage
        self._validator = TransactionValidator(categories)
        self._transactions: list[Transaction] = storage.list_transactions()

    @property
    def categories(self) -> frozenset[str]:
        return self._validator.categories

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def append(self, transaction: Transaction) -> Transaction:
        """
        Add one finalized transaction.

        Raises:
            ValidationError: negative amount, unknown expense category,
                missing obligation on an expense, or obligation on income
        """
        self._validator.ensure_valid(transaction)
        self._storage.append_transaction(transaction)
        self._transactions.append(transaction)

        logger.info(
            "transaction_appended",
            transaction_id=str(transaction.id),
            type=transaction.type.value,
            category=transaction.category,
            amount=str(transaction.amount),
        )
        return transaction

    def replace(self, transaction_id: UUID, transaction: Transaction) -> Transaction:
        """
        Swap one transaction. The replacement keeps the original id.

        Raises:
            NotFoundError: If no transaction has this id
            ValidationError: If the replacement is malformed
        """
        index = self._index_of(transaction_id)
        if transaction.id != transaction_id:
            transaction = transaction.model_copy(update={"id": transaction_id})

        self._validator.ensure_valid(transaction)
        self._storage.replace_transaction(transaction_id, transaction)
        self._transactions[index] = transaction

        logger.info("transaction_replaced", transaction_id=str(transaction_id))
        return transaction

    def edit(self, transaction_id: UUID, **changes: Any) -> Transaction:
        """
        Replace selected fields of one transaction.

        The id and creation timestamp never change.

        Raises:
            NotFoundError: If no transaction has this id
            ValidationError: If a changed field is malformed
        """
        current = self.get(transaction_id)
        changes.pop("id", None)
        changes.pop("created_at", None)

        data = current.model_dump()
        data.update(changes)
        try:
            updated = Transaction.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError([
                ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or "transaction",
                    issue_type=error["type"],
                    message=error["msg"],
                )
                for error in e.errors()
            ]) from e

        return self.replace(transaction_id, updated)

    def remove(self, transaction_id: UUID) -> Transaction:
        """
        Delete one transaction and return it.

        Raises:
            NotFoundError: If no transaction has this id. Callers may
                treat this as an idempotent success.
        """
        index = self._index_of(transaction_id)
        self._storage.remove_transaction(transaction_id)
        removed = self._transactions.pop(index)

        logger.info("transaction_removed", transaction_id=str(transaction_id))
        return removed

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def transactions(self) -> list[Transaction]:
        """All transactions ordered by creation timestamp."""
        return sorted(self._transactions, key=lambda t: t.created_at)

    def get(self, transaction_id: UUID) -> Transaction:
        return self._transactions[self._index_of(transaction_id)]

    def month_transactions(self, month: MonthLike) -> list[Transaction]:
        key = MonthKey.parse(month)
        return [t for t in self.transactions() if key.contains(t.date)]

    def _expenses(
        self,
        month: Optional[MonthLike] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        key = MonthKey.parse(month) if month is not None else None
        return [
            t for t in self._transactions
            if t.type == TransactionType.EXPENSE
            and (key is None or key.contains(t.date))
            and (category is None or t.category == category)
        ]

    def monthly_expense_total(self, month: MonthLike) -> Decimal:
        """Sum of expense amounts in the calendar month."""
        return _sum(self._expenses(month))

    def category_spent(self, category: str, month: MonthLike) -> Decimal:
        """Sum of expense amounts for one category within a month."""
        return _sum(self._expenses(month, category=category))

    def spent_on(self, day: date) -> Decimal:
        """Sum of expense amounts dated on one calendar day."""
        return _sum(t for t in self._expenses() if t.date == day)

    def weekly_totals(self, weeks_back: int, reference_date: date) -> list[WeeklyTotal]:
        """
        Expense totals for the last `weeks_back` non-overlapping weeks.

        Window i (0 = current) covers
        [reference - 7*i - 6, reference - 7*i], both ends inclusive.
        Results are ordered oldest first.
        """
        if weeks_back < 0:
            raise ValueError("weeks_back cannot be negative")

        expenses = self._expenses()
        totals = []
        for weeks_ago in range(weeks_back - 1, -1, -1):
            end = reference_date - timedelta(days=7 * weeks_ago)
            start = end - timedelta(days=6)
            totals.append(WeeklyTotal(
                weeks_ago=weeks_ago,
                start=start,
                end=end,
                total=_sum(t for t in expenses if start <= t.date <= end),
            ))
        return totals

    def discretionary_share(self, month: MonthLike) -> int:
        """
        Percentage (0-100, rounded half up) of the month's expenses
        tagged Optional or Impulse. Zero for a month without expenses.
        """
        expenses = self._expenses(month)
        total = _sum(expenses)
        if total <= 0:
            return 0

        discretionary = _sum(
            t for t in expenses
            if t.obligation is not None and t.obligation.is_discretionary
        )
        share = (discretionary / total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(share)

    def _index_of(self, transaction_id: UUID) -> int:
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                return index
        raise NotFoundError(f"Transaction not found: {transaction_id}")


def _sum(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions), Decimal("0"))
