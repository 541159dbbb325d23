"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger independent of where transactions live
2. Use in-memory storage for testing
3. Swap the local JSON files for something else later

The interface is intentionally simple - a key-value store per entity
kind. All operations are synchronous from the core's point of view.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from budget_assistant.models.audit import AuditEvent
from budget_assistant.models.budget import Transaction, UserSettings


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage.

    The ledger is the only writer; it calls these after its own
    validation has passed.
    """

    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """
        Return every stored transaction in insertion order.
        """
        pass

    @abstractmethod
    def append_transaction(self, transaction: Transaction) -> None:
        """
        Append a finalized transaction.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def replace_transaction(self, transaction_id: UUID, transaction: Transaction) -> None:
        """
        Swap the stored transaction with the given id.

        Raises:
            NotFoundError: If no transaction has this id
        """
        pass

    @abstractmethod
    def remove_transaction(self, transaction_id: UUID) -> None:
        """
        Delete a transaction by id.

        Raises:
            NotFoundError: If no transaction has this id
        """
        pass


class SettingsStorageInterface(ABC):
    """Storage for the singleton settings record."""

    @abstractmethod
    def get_settings(self) -> Optional[UserSettings]:
        """Return the saved settings, None before onboarding."""
        pass

    @abstractmethod
    def put_settings(self, settings: UserSettings) -> None:
        """Replace the settings record wholesale."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
