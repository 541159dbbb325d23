"""
Obligation Resolution

An expense candidate is not written to the ledger until the user says
what kind of spending it was (Essential / Optional / Impulse). This
module holds those candidates in between.

GUARANTEES:
- A pending handle resolves at most once; a second attempt (double
  click) raises UnknownPendingError and never touches the ledger
- Pending candidates are independent; resolving one never changes
  another, whatever the order
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field

from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import (
    ObligationType,
    ParseCandidate,
    Transaction,
    TransactionType,
    utcnow,
)
from budget_assistant.validation import ValidationError


logger = structlog.get_logger(__name__)


class UnknownPendingError(Exception):
    """The pending handle was already resolved or never existed."""

    def __init__(self, pending_id: UUID):
        self.pending_id = pending_id
        super().__init__(f"No pending expense with handle {pending_id}")


class PendingCandidate(BaseModel):
    """An expense waiting for its obligation tag."""
    model_config = ConfigDict(frozen=True)

    pending_id: UUID = Field(default_factory=uuid4)
    candidate: ParseCandidate
    created_at: datetime = Field(default_factory=utcnow)


class ObligationResolver:
    """
    Two-step commit for expenses.

    begin_pending() registers a candidate and returns its handle;
    resolve() materializes the transaction and hands it to the ledger.
    """

    def __init__(self, ledger: BudgetLedger):
        self._ledger = ledger
        self._pending: dict[UUID, PendingCandidate] = {}

    def begin_pending(self, candidate: ParseCandidate) -> UUID:
        """Register an expense candidate and return its pending handle."""
        if candidate.type != TransactionType.EXPENSE:
            raise ValueError("Only expenses wait for an obligation tag")

        pending = PendingCandidate(candidate=candidate)
        self._pending[pending.pending_id] = pending

        logger.info(
            "pending_registered",
            pending_id=str(pending.pending_id),
            category=candidate.category,
            amount=str(candidate.amount),
        )
        return pending.pending_id

    def get(self, pending_id: UUID) -> PendingCandidate:
        try:
            return self._pending[pending_id]
        except KeyError:
            raise UnknownPendingError(pending_id) from None

    def pending_ids(self) -> list[UUID]:
        """Open handles in registration order."""
        return list(self._pending)

    def is_pending(self, pending_id: UUID) -> bool:
        return pending_id in self._pending

    def discard(self, pending_id: UUID) -> Optional[PendingCandidate]:
        """Drop a pending candidate without committing anything."""
        return self._pending.pop(pending_id, None)

    def resolve(self, pending_id: UUID, obligation: ObligationType) -> Transaction:
        """
        Attach the obligation tag and commit the expense.

        Raises:
            UnknownPendingError: Already resolved or never registered
            ValidationError: The ledger rejected the transaction. The
                pending entry is dropped since its candidate cannot
                become valid.
        """
        pending = self.get(pending_id)
        transaction = pending.candidate.to_transaction(obligation=ObligationType(obligation))

        try:
            self._ledger.append(transaction)
        except ValidationError:
            self._pending.pop(pending_id, None)
            logger.warning("pending_rejected_by_ledger", pending_id=str(pending_id))
            raise

        del self._pending[pending_id]
        logger.info(
            "pending_resolved",
            pending_id=str(pending_id),
            transaction_id=str(transaction.id),
            obligation=transaction.obligation.value,
        )
        return transaction
