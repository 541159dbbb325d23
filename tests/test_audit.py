"""
Tests for the audit logger.
"""

import asyncio
import pytest
from uuid import uuid4

from budget_assistant.audit import AuditLogger, create_correlation_id
from budget_assistant.models.audit import AuditEvent, AuditEventType
from budget_assistant.services.storage import AuditStorageInterface, InMemoryAuditStorage


class BrokenAuditStorage(AuditStorageInterface):
    """Audit store whose writes always fail."""

    def append_event(self, event: AuditEvent) -> bool:
        raise OSError("disk full")

    def get_recent_events(self, limit: int = 50) -> list[AuditEvent]:
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_events_are_persisted(self):
        """Test that events reach the audit store."""
        storage = InMemoryAuditStorage()
        audit = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(audit.log_message_received("продукты 1500", correlation_id))

        [event] = storage.get_recent_events()
        assert event.event_type == AuditEventType.MESSAGE_RECEIVED
        assert event.correlation_id == correlation_id

    def test_storage_failure_is_swallowed(self):
        """Test that a failing audit store never raises."""
        audit = AuditLogger(BrokenAuditStorage())
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="boom")

        assert asyncio.run(audit.log(event)) is False

    def test_local_only(self):
        """Test that logging without a store succeeds."""
        event = AuditEvent(event_type=AuditEventType.MESSAGE_RECEIVED, description="hi")
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_feedback_outcomes(self):
        """Test that phrased and canned feedback are told apart."""
        storage = InMemoryAuditStorage()
        audit = AuditLogger(storage)

        asyncio.run(audit.log_feedback(False, False, False, None, uuid4()))
        asyncio.run(audit.log_feedback(True, True, True, "timeout", uuid4()))

        newest, oldest = storage.get_recent_events()
        assert oldest.event_type == AuditEventType.FEEDBACK_GENERATED
        assert newest.event_type == AuditEventType.FEEDBACK_FALLBACK
        assert newest.error_message == "timeout"

    def test_transaction_deleted(self):
        """Test that deletes record whether anything was removed."""
        storage = InMemoryAuditStorage()
        transaction_id = uuid4()

        asyncio.run(AuditLogger(storage).log_transaction_deleted(transaction_id, False, uuid4()))

        [event] = storage.get_recent_events()
        assert event.entity_id == transaction_id
        assert event.details == {"existed": False}

    def test_correlation_ids_are_unique(self):
        """Test that each user action gets its own id."""
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
