"""
Conversation Session

The chat log is an explicit append-only sequence owned by one Session.
Entries are never edited in place: a pending expense prompt is removed
once the user picks an obligation tag, and the acknowledgment is
appended as a new entry.
"""

from typing import Optional
from uuid import UUID

from budget_assistant.models.budget import ConversationEntry, MessageRole
from budget_assistant.services.storage import NotFoundError


GREETING = "Привет! Расскажи, на что сегодня ушли деньги или сколько заработал?"


class Session:
    """One user's chat with the assistant."""

    def __init__(self, greet: bool = True):
        self._entries: list[ConversationEntry] = []
        if greet:
            self.add_agent_message(GREETING)

    @property
    def entries(self) -> list[ConversationEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: ConversationEntry) -> ConversationEntry:
        self._entries.append(entry)
        return entry

    def add_user_message(self, text: str) -> ConversationEntry:
        return self.append(ConversationEntry(role=MessageRole.USER, content=text))

    def add_agent_message(
        self,
        text: str,
        pending_id: Optional[UUID] = None,
        is_red_zone: bool = False,
    ) -> ConversationEntry:
        return self.append(ConversationEntry(
            role=MessageRole.AGENT,
            content=text,
            pending_id=pending_id,
            is_red_zone=is_red_zone,
        ))

    def get(self, entry_id: UUID) -> ConversationEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise NotFoundError(f"Conversation entry not found: {entry_id}")

    def remove_by_id(self, entry_id: UUID) -> ConversationEntry:
        entry = self.get(entry_id)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return entry

    def replace(self, entry_id: UUID, entry: ConversationEntry) -> ConversationEntry:
        """Swap an entry for a new one at the same position."""
        for index, existing in enumerate(self._entries):
            if existing.id == entry_id:
                self._entries[index] = entry
                return entry
        raise NotFoundError(f"Conversation entry not found: {entry_id}")

    def find_by_pending(self, pending_id: UUID) -> Optional[ConversationEntry]:
        for entry in self._entries:
            if entry.pending_id == pending_id:
                return entry
        return None

    def pending_entries(self) -> list[ConversationEntry]:
        return [e for e in self._entries if e.is_pending]
