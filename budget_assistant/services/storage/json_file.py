"""
Local JSON File Storage Implementation

DESIGN DECISION: Budget data lives in plain JSON files on the user's
machine, one document per entity kind:
1. transactions.json - list of finalized transactions
2. settings.json - the singleton settings record
3. audit_log.json - the most recent audit events

TRADEOFFS:
- Every mutation is a full read-modify-write of one document
- No isolation between processes (single active session assumed)
- Files are human-readable and trivial to back up

The implementation follows the abstract interface, so the ledger does
not know which backend it writes to.
"""

import json
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import TypeAdapter, ValidationError

from budget_assistant.config import get_settings
from budget_assistant.models.audit import AuditEvent
from budget_assistant.models.budget import Transaction, UserSettings
from budget_assistant.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

TRANSACTIONS_FILE = "transactions.json"
SETTINGS_FILE = "settings.json"
AUDIT_FILE = "audit_log.json"

_transaction_adapter = TypeAdapter(Transaction)
_event_adapter = TypeAdapter(AuditEvent)


class JsonFileClient:
    """
    Low-level file access for the JSON documents.

    Writes go to a temporary sibling first and are then moved into
    place, so a crash never leaves a half-written document.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir or get_settings().app.data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def read(self, name: str, default: Any) -> Any:
        path = self._data_dir / name
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def write(self, name: str, data: Any) -> None:
        path = self._data_dir / name
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")


class JsonFileTransactionStorage(TransactionStorageInterface):
    """
    Transactions stored as a JSON array, one object per transaction.

    Malformed entries are skipped on read (and logged) rather than
    making the whole history unreadable. Writes work on the raw rows,
    so an entry that cannot be parsed is kept as it is.
    """

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    def _rows(self) -> list[Any]:
        rows = self._client.read(TRANSACTIONS_FILE, default=[])
        if not isinstance(rows, list):
            raise StorageError(f"{TRANSACTIONS_FILE} must hold a JSON array")
        return rows

    @staticmethod
    def _dump(transaction: Transaction) -> dict:
        return _transaction_adapter.dump_python(transaction, mode="json")

    @staticmethod
    def _index_of(rows: list[Any], transaction_id: UUID) -> int:
        for index, raw in enumerate(rows):
            if not isinstance(raw, dict):
                continue
            try:
                row_id = UUID(str(raw.get("id")))
            except ValueError:
                continue
            if row_id == transaction_id:
                return index
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    def list_transactions(self) -> list[Transaction]:
        transactions = []
        for raw in self._rows():
            try:
                transactions.append(_transaction_adapter.validate_python(raw))
            except ValidationError as e:
                logger.warning("malformed_transaction_skipped", error=str(e))
        return transactions

    def append_transaction(self, transaction: Transaction) -> None:
        rows = self._rows()
        rows.append(self._dump(transaction))
        self._client.write(TRANSACTIONS_FILE, rows)

    def replace_transaction(self, transaction_id: UUID, transaction: Transaction) -> None:
        rows = self._rows()
        rows[self._index_of(rows, transaction_id)] = self._dump(transaction)
        self._client.write(TRANSACTIONS_FILE, rows)

    def remove_transaction(self, transaction_id: UUID) -> None:
        rows = self._rows()
        del rows[self._index_of(rows, transaction_id)]
        self._client.write(TRANSACTIONS_FILE, rows)


class JsonFileSettingsStorage(SettingsStorageInterface):

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    def get_settings(self) -> Optional[UserSettings]:
        raw = self._client.read(SETTINGS_FILE, default=None)
        if raw is None:
            return None
        try:
            return UserSettings.model_validate(raw)
        except ValidationError as e:
            raise StorageError(f"Stored settings are invalid: {e}")

    def put_settings(self, settings: UserSettings) -> None:
        self._client.write(SETTINGS_FILE, settings.model_dump(mode="json"))


class JsonFileAuditStorage(AuditStorageInterface):
    """
    Append-only audit log capped at `retention` entries.

    Older events are dropped when the cap is reached.
    """

    def __init__(
        self,
        client: Optional[JsonFileClient] = None,
        retention: Optional[int] = None,
    ):
        self._client = client or JsonFileClient()
        self._retention = retention or get_settings().app.audit_log_retention

    def append_event(self, event: AuditEvent) -> bool:
        events = self._client.read(AUDIT_FILE, default=[])
        events.append(_event_adapter.dump_python(event, mode="json"))
        self._client.write(AUDIT_FILE, events[-self._retention:])
        return True

    def get_recent_events(self, limit: int = 50) -> list[AuditEvent]:
        events = []
        for raw in reversed(self._client.read(AUDIT_FILE, default=[])):
            try:
                events.append(_event_adapter.validate_python(raw))
            except ValidationError:
                continue
            if len(events) >= limit:
                break
        return events
