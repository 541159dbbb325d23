"""
Collaborator Interfaces

The intake pipeline talks to two language services. Only their
contracts matter to the core:

1. EXTRACTION: free text → list of ParseCandidate.
   Must return [] on any internal failure.

2. PHRASING: budget stats + tone → one or two sentences of feedback.
   Must return non-empty text or raise ExternalServiceError, so the
   feedback policy can fall back to a canned sentence.
"""

from abc import ABC, abstractmethod
from datetime import date

from budget_assistant.models.budget import BudgetStats, ParseCandidate, ToneType


class ExternalServiceError(Exception):
    """A language service failed (network, quota, malformed response)."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class TransactionExtractor(ABC):

    @abstractmethod
    async def extract(
        self,
        text: str,
        categories: list[str],
        today: date,
    ) -> list[ParseCandidate]:
        """
        Turn a chat message into transaction candidates.

        Candidate dates default to `today` unless the text implies
        another day ("вчера").
        """
        pass


class FeedbackPhraser(ABC):

    @abstractmethod
    async def phrase(self, stats: BudgetStats, tone: ToneType) -> str:
        """
        Phrase feedback for the given stats.

        Raises:
            ExternalServiceError: If no usable text could be produced
        """
        pass
