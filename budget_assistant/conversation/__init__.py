"""Conversation package."""

from budget_assistant.conversation.session import GREETING, Session

__all__ = ["GREETING", "Session"]
