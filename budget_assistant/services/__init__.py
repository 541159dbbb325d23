"""Services package."""

from budget_assistant.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemorySettingsStorage,
    InMemoryTransactionStorage,
    JsonFileAuditStorage,
    JsonFileClient,
    JsonFileSettingsStorage,
    JsonFileTransactionStorage,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemorySettingsStorage",
    "InMemoryTransactionStorage",
    "JsonFileAuditStorage",
    "JsonFileClient",
    "JsonFileSettingsStorage",
    "JsonFileTransactionStorage",
    "NotFoundError",
    "SettingsStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
]
