"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Local JSON files back real sessions; the in-memory stores back tests.
"""

from budget_assistant.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from budget_assistant.services.storage.json_file import (
    JsonFileAuditStorage,
    JsonFileClient,
    JsonFileSettingsStorage,
    JsonFileTransactionStorage,
)
from budget_assistant.services.storage.memory import (
    InMemoryAuditStorage,
    InMemorySettingsStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "SettingsStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # JSON file implementation
    "JsonFileAuditStorage",
    "JsonFileClient",
    "JsonFileSettingsStorage",
    "JsonFileTransactionStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemorySettingsStorage",
    "InMemoryTransactionStorage",
]
