"""
In-Memory Storage

Used by the tests and for sessions that should not touch the disk.
Nothing survives the process.
"""

from typing import Optional
from uuid import UUID

from budget_assistant.models.audit import AuditEvent
from budget_assistant.models.budget import Transaction, UserSettings
from budget_assistant.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: list[Transaction] = list(transactions or [])

    def list_transactions(self) -> list[Transaction]:
        return list(self._transactions)

    def append_transaction(self, transaction: Transaction) -> None:
        self._transactions.append(transaction)

    def replace_transaction(self, transaction_id: UUID, transaction: Transaction) -> None:
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                self._transactions[index] = transaction
                return
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    def remove_transaction(self, transaction_id: UUID) -> None:
        remaining = [t for t in self._transactions if t.id != transaction_id]
        if len(remaining) == len(self._transactions):
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        self._transactions = remaining


class InMemorySettingsStorage(SettingsStorageInterface):

    def __init__(self, settings: Optional[UserSettings] = None):
        self._settings = settings

    def get_settings(self) -> Optional[UserSettings]:
        return self._settings

    def put_settings(self, settings: UserSettings) -> None:
        self._settings = settings


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps at most `retention` events, dropping the oldest."""

    def __init__(self, retention: int = 50):
        self._retention = retention
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        self._events = self._events[-self._retention:]
        return True

    def get_recent_events(self, limit: int = 50) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
