"""
Audit Logger

DESIGN DECISION: Every significant step of the intake pipeline is logged.
This provides:
1. Traceability from a chat message to a ledger write
2. Debugging capability when a language service misbehaves
3. The error history the user can look at

The audit logger:
- Is async so it fits into the orchestrator flows
- Gracefully handles failures (doesn't crash the chat if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_assistant.models.audit import AuditEvent, AuditEventBuilder
from budget_assistant.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("budget_assistant.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_message_received(self, text: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.message_received(text, correlation_id))

    async def log_extraction_completed(self, candidate_count: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_completed(candidate_count, correlation_id))

    async def log_extraction_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_failed(error_message, correlation_id))

    async def log_clarification_requested(
        self,
        reason: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.clarification_requested(reason, correlation_id))

    async def log_candidate_rejected(self, issues: list[dict], correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.candidate_rejected(issues, correlation_id))

    async def log_pending_created(
        self,
        pending_id: UUID,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.pending_created(
            pending_id=pending_id,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_pending_resolved(
        self,
        pending_id: UUID,
        transaction_id: UUID,
        obligation: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.pending_resolved(
            pending_id=pending_id,
            transaction_id=transaction_id,
            obligation=obligation,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_resolution(self, pending_id: UUID, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.duplicate_resolution_ignored(pending_id, correlation_id))

    async def log_transaction_committed(
        self,
        transaction_id: UUID,
        transaction_type: str,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_committed(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id, changed_fields, correlation_id
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        existed: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id, existed, correlation_id
        ))

    async def log_feedback(
        self,
        is_red_zone: bool,
        is_strict: bool,
        used_fallback: bool,
        error_message: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log the outcome of one feedback request."""
        if used_fallback:
            event = AuditEventBuilder.feedback_fallback(
                is_red_zone=is_red_zone,
                error_message=error_message or "unknown error",
                correlation_id=correlation_id,
            )
        else:
            event = AuditEventBuilder.feedback_generated(
                is_red_zone=is_red_zone,
                is_strict=is_strict,
                correlation_id=correlation_id,
            )
        await self.log(event)

    async def log_settings_saved(
        self,
        currency: str,
        monthly_income: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settings_saved(currency, monthly_income, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one chat message).
    Pass it through all subsequent operations.
    """
    return uuid4()
