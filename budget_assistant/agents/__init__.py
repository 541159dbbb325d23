"""AI Agents package."""

from budget_assistant.agents.ai_agents import (
    GeminiExtractionAgent,
    GeminiFeedbackAgent,
)
from budget_assistant.agents.interface import (
    ExternalServiceError,
    FeedbackPhraser,
    TransactionExtractor,
)

__all__ = [
    "ExternalServiceError",
    "FeedbackPhraser",
    "GeminiExtractionAgent",
    "GeminiFeedbackAgent",
    "TransactionExtractor",
]
