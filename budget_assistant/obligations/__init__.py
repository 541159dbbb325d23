"""Obligation resolution package."""

from budget_assistant.obligations.resolver import (
    ObligationResolver,
    PendingCandidate,
    UnknownPendingError,
)

__all__ = ["ObligationResolver", "PendingCandidate", "UnknownPendingError"]
