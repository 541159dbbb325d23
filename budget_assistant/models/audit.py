"""
Audit Models for Budget Assistant

Every significant step of the intake pipeline is logged for audit purposes.
This provides:
1. Complete traceability from a chat message to a ledger write
2. Debugging information when an external service misbehaves
3. The error log the user can inspect

DESIGN DECISION: Audit logs are append-only. We never modify them;
the local store only trims the oldest entries.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budget_assistant.models.budget import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the intake pipeline has its own event type.
    """
    # Intake
    MESSAGE_RECEIVED = "message_received"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    CLARIFICATION_REQUESTED = "clarification_requested"
    CANDIDATE_REJECTED = "candidate_rejected"

    # Obligation resolution
    PENDING_CREATED = "pending_created"
    PENDING_RESOLVED = "pending_resolved"
    DUPLICATE_RESOLUTION_IGNORED = "duplicate_resolution_ignored"

    # Ledger
    TRANSACTION_COMMITTED = "transaction_committed"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Feedback
    FEEDBACK_GENERATED = "feedback_generated"
    FEEDBACK_FALLBACK = "feedback_fallback"

    # Settings
    SETTINGS_SAVED = "settings_saved"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'pending', 'message')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one chat message)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(text, correlation_id)
        event = AuditEventBuilder.pending_resolved(pending_id, txn_id, "Impulse", correlation_id)
    """

    @staticmethod
    def message_received(
        text: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            entity_type="message",
            correlation_id=correlation_id,
            description="User message received",
            details={"length": len(text)},
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"Extraction returned {candidate_count} candidates",
            details={"candidate_count": candidate_count},
        )

    @staticmethod
    def extraction_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="message",
            correlation_id=correlation_id,
            description="Extraction failed, asked the user to rephrase",
            error_message=error_message,
        )

    @staticmethod
    def clarification_requested(
        reason: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLARIFICATION_REQUESTED,
            entity_type="candidate",
            correlation_id=correlation_id,
            description=f"Clarification requested ({reason or 'unspecified'})",
            details={"reason": reason},
        )

    @staticmethod
    def candidate_rejected(
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CANDIDATE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="candidate",
            correlation_id=correlation_id,
            description=f"Candidate rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def pending_created(
        pending_id: UUID,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_CREATED,
            entity_type="pending",
            entity_id=pending_id,
            correlation_id=correlation_id,
            description=f"Expense awaiting obligation tag: {category} {amount}",
            details={"amount": amount, "category": category},
        )

    @staticmethod
    def pending_resolved(
        pending_id: UUID,
        transaction_id: UUID,
        obligation: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_RESOLVED,
            entity_type="pending",
            entity_id=pending_id,
            correlation_id=correlation_id,
            description=f"User tagged expense as {obligation}",
            details={
                "transaction_id": str(transaction_id),
                "obligation": obligation,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicate_resolution_ignored(
        pending_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_RESOLUTION_IGNORED,
            severity=AuditSeverity.WARNING,
            entity_type="pending",
            entity_id=pending_id,
            correlation_id=correlation_id,
            description="Obligation choice for an unknown or resolved expense ignored",
            is_user_action=True,
        )

    @staticmethod
    def transaction_committed(
        transaction_id: UUID,
        transaction_type: str,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_COMMITTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} {category} - {amount}",
            details={
                "type": transaction_type,
                "category": category,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction edited: {', '.join(changed_fields) or 'no changes'}",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        existed: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted" if existed else "Delete of a missing transaction ignored",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def feedback_generated(
        is_red_zone: bool,
        is_strict: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEEDBACK_GENERATED,
            entity_type="feedback",
            correlation_id=correlation_id,
            description="Feedback phrased" + (" (red zone)" if is_red_zone else ""),
            details={"is_red_zone": is_red_zone, "is_strict": is_strict},
        )

    @staticmethod
    def feedback_fallback(
        is_red_zone: bool,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEEDBACK_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="feedback",
            correlation_id=correlation_id,
            description="Feedback phrasing failed, canned sentence used",
            details={"is_red_zone": is_red_zone},
            error_message=error_message,
        )

    @staticmethod
    def settings_saved(
        currency: str,
        monthly_income: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_SAVED,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Settings saved: income {monthly_income} {currency}",
            details={"currency": currency, "monthly_income": monthly_income},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
