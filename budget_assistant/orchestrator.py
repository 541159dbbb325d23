"""
Main Orchestrator for Budget Assistant

This module ties together all the components and defines the
end-to-end flows for:
1. Intake (message → extract → clarify / commit income / hold expense)
2. Obligation choice (pending expense → tagged → committed → feedback)
3. History and settings edits

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense reaches the ledger without an obligation tag from the user
- A malformed candidate is never written, the user is asked instead
- Language-service failures never abort a flow, they degrade to fixed text
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from budget_assistant.agents import (
    FeedbackPhraser,
    GeminiExtractionAgent,
    GeminiFeedbackAgent,
    TransactionExtractor,
)
from budget_assistant.audit import AuditLogger, create_correlation_id
from budget_assistant.config import get_settings
from budget_assistant.conversation import Session
from budget_assistant.feedback import FeedbackPolicy, FeedbackResult
from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import (
    ClarificationReason,
    ConversationEntry,
    ObligationType,
    ParseCandidate,
    Transaction,
    TransactionType,
    UserSettings,
)
from budget_assistant.obligations import ObligationResolver, UnknownPendingError
from budget_assistant.queries import AnalyticsReport, BudgetReportBuilder, MonthOverview
from budget_assistant.services.storage import (
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
)
from budget_assistant.validation import TransactionValidator, ValidationError


logger = structlog.get_logger(__name__)


# =============================================================================
# FIXED REPLIES
# =============================================================================

NOT_UNDERSTOOD = (
    'Хм, я не совсем понял. Можешь перефразировать? '
    'Например: "продукты 1500" или "такси 800 вчера".'
)
CLARIFICATION_PREFIX = "Мне нужно уточнить детали: "
CATEGORY_QUESTION = "к какой категории это отнесем?"
DATE_QUESTION = "какая это была дата?"
AMOUNT_QUESTION = "какая была сумма?"
EXPENSE_PROMPT = "Записываю трату: {description} на сумму {amount} {currency}. К какому типу её отнесем?"
INCOME_ACK = "Записал доход: {amount} {currency} ({description}). Отлично!"
EXPENSE_ACK = "Записал трату: {amount} {currency} ({description}), {label}."
SAVE_FAILED = "Не получилось сохранить операцию. Попробуй ещё раз чуть позже."


class CategorySetChangedError(Exception):
    """Settings edits may change limits, never the category set."""
    pass


def format_amount(amount: Decimal) -> str:
    """1500 → "1500", 1500.50 → "1500.5"."""
    if amount == amount.to_integral_value():
        return f"{amount:.0f}"
    return f"{amount.normalize():f}"


def clarification_text(reason: Optional[ClarificationReason]) -> str:
    """Question for a candidate the extraction service flagged."""
    if reason == ClarificationReason.CATEGORY:
        return CLARIFICATION_PREFIX + CATEGORY_QUESTION
    return CLARIFICATION_PREFIX + DATE_QUESTION


def clarification_for_fields(fields: list[str]) -> str:
    """Question for a candidate that failed validation."""
    if "category" in fields:
        return CLARIFICATION_PREFIX + CATEGORY_QUESTION
    if "amount" in fields:
        return CLARIFICATION_PREFIX + AMOUNT_QUESTION
    return CLARIFICATION_PREFIX + DATE_QUESTION


def _describe(description: str, category: str) -> str:
    return description or category or "без описания"


class IntakeOrchestrator:
    """
    Orchestrates one user's chat with the budget assistant.

    Intake flow:
    1. Message → extraction service (bounded by a timeout)
    2. Nothing understood → one fixed reply, stop
    3. Each candidate independently:
       - flagged by extraction → clarification question
       - fails validation → clarification question, nothing stored
       - income → ledger → acknowledgment + feedback
       - expense → pending, prompt with the three obligation choices

    Obligation flow:
    4. Choice → resolve pending → ledger → prompt removed →
       acknowledgment + feedback

    The ledger, the pending set and the conversation log are only
    touched between awaits, so one action is never seen half-applied.
    """

    def __init__(
        self,
        extractor: TransactionExtractor,
        feedback_policy: FeedbackPolicy,
        ledger: BudgetLedger,
        settings: UserSettings,
        resolver: Optional[ObligationResolver] = None,
        session: Optional[Session] = None,
        settings_storage: Optional[SettingsStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        extraction_timeout_seconds: Optional[float] = None,
        today_provider: Optional[Callable[[], date]] = None,
    ):
        self._extractor = extractor
        self._feedback = feedback_policy
        self._ledger = ledger
        self._settings = settings
        self._resolver = resolver or ObligationResolver(ledger)
        self._session = session or Session()
        self._settings_storage = settings_storage
        self._audit_logger = audit_logger
        self._extraction_timeout = (
            extraction_timeout_seconds or get_settings().app.extraction_timeout_seconds
        )
        self._today = today_provider or date.today
        self._validator = TransactionValidator(ledger.categories)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def ledger(self) -> BudgetLedger:
        return self._ledger

    @property
    def resolver(self) -> ObligationResolver:
        return self._resolver

    @property
    def settings(self) -> UserSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Intake
    # -------------------------------------------------------------------------

    async def handle_message(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[ConversationEntry]:
        """
        Process one chat message.

        Returns:
            The agent entries appended to the conversation, in order.
            Blank messages are ignored and return [].
        """
        if not text or not text.strip():
            return []

        correlation_id = correlation_id or create_correlation_id()
        self._session.add_user_message(text)

        if self._audit_logger:
            await self._audit_logger.log_message_received(text, correlation_id)

        candidates = await self._extract(text, correlation_id)
        if not candidates:
            return [self._session.add_agent_message(NOT_UNDERSTOOD)]

        replies = []
        for candidate in candidates:
            replies.extend(await self._process_candidate(candidate, correlation_id))
        return replies

    async def _extract(self, text: str, correlation_id: UUID) -> list[ParseCandidate]:
        today = self._today()
        try:
            candidates = await asyncio.wait_for(
                self._extractor.extract(text, list(self._settings.categories), today),
                timeout=self._extraction_timeout,
            )
        except asyncio.TimeoutError:
            message = f"extraction timed out after {self._extraction_timeout}s"
            logger.warning("extraction_timeout", timeout_seconds=self._extraction_timeout)
            if self._audit_logger:
                await self._audit_logger.log_extraction_failed(message, correlation_id)
            return []
        except Exception as e:
            logger.warning("extraction_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_extraction_failed(str(e), correlation_id)
            return []

        candidates = list(candidates or [])
        if self._audit_logger:
            await self._audit_logger.log_extraction_completed(len(candidates), correlation_id)
        return candidates

    async def _process_candidate(
        self,
        candidate: ParseCandidate,
        correlation_id: UUID,
    ) -> list[ConversationEntry]:
        if candidate.needs_clarification:
            reason = candidate.clarification_reason
            if self._audit_logger:
                await self._audit_logger.log_clarification_requested(
                    reason.value if reason else None, correlation_id
                )
            return [self._session.add_agent_message(clarification_text(reason))]

        result = self._validator.validate_candidate(candidate)
        if result.has_errors:
            return [await self._reject_candidate(result.issues, correlation_id)]

        if candidate.type == TransactionType.INCOME:
            return await self._commit_income(candidate, correlation_id)

        return [await self._hold_expense(candidate, correlation_id)]

    async def _reject_candidate(self, issues: list, correlation_id: UUID) -> ConversationEntry:
        if self._audit_logger:
            await self._audit_logger.log_candidate_rejected(
                [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in issues
                ],
                correlation_id,
            )
        fields = [issue.field for issue in issues]
        return self._session.add_agent_message(clarification_for_fields(fields))

    async def _commit_income(
        self,
        candidate: ParseCandidate,
        correlation_id: UUID,
    ) -> list[ConversationEntry]:
        transaction = candidate.to_transaction()
        try:
            self._ledger.append(transaction)
        except ValidationError as e:
            return [await self._reject_candidate(e.issues, correlation_id)]
        except StorageError as e:
            return [await self._save_failed(e, correlation_id)]

        ack = self._session.add_agent_message(INCOME_ACK.format(
            amount=format_amount(transaction.amount),
            currency=self._settings.currency.value,
            description=_describe(transaction.description, transaction.category),
        ))
        await self._log_committed(transaction, correlation_id)

        feedback = await self._give_feedback(transaction, correlation_id)
        return [ack, feedback]

    async def _hold_expense(
        self,
        candidate: ParseCandidate,
        correlation_id: UUID,
    ) -> ConversationEntry:
        pending_id = self._resolver.begin_pending(candidate)
        entry = self._session.add_agent_message(
            EXPENSE_PROMPT.format(
                description=_describe(candidate.description, candidate.category),
                amount=format_amount(candidate.amount),
                currency=self._settings.currency.value,
            ),
            pending_id=pending_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_pending_created(
                pending_id=pending_id,
                amount=str(candidate.amount),
                category=candidate.category,
                correlation_id=correlation_id,
            )
        return entry

    # -------------------------------------------------------------------------
    # Obligation choice
    # -------------------------------------------------------------------------

    async def choose_obligation(
        self,
        pending_id: UUID,
        obligation: ObligationType,
        correlation_id: Optional[UUID] = None,
    ) -> list[ConversationEntry]:
        """
        Commit a pending expense with the tag the user picked.

        A second click on an already resolved prompt is ignored: it is
        logged and returns [] without touching the ledger.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            transaction = self._resolver.resolve(pending_id, obligation)
        except UnknownPendingError:
            logger.warning("duplicate_resolution_ignored", pending_id=str(pending_id))
            if self._audit_logger:
                await self._audit_logger.log_duplicate_resolution(pending_id, correlation_id)
            return []
        except ValidationError as e:
            self._drop_pending_entry(pending_id)
            return [await self._reject_candidate(e.issues, correlation_id)]
        except StorageError as e:
            return [await self._save_failed(e, correlation_id)]

        # Same synchronous step as the ledger write.
        self._drop_pending_entry(pending_id)

        ack = self._session.add_agent_message(EXPENSE_ACK.format(
            amount=format_amount(transaction.amount),
            currency=self._settings.currency.value,
            description=_describe(transaction.description, transaction.category),
            label=transaction.obligation.label,
        ))

        if self._audit_logger:
            await self._audit_logger.log_pending_resolved(
                pending_id=pending_id,
                transaction_id=transaction.id,
                obligation=transaction.obligation.value,
                correlation_id=correlation_id,
            )
        await self._log_committed(transaction, correlation_id)

        feedback = await self._give_feedback(transaction, correlation_id)
        return [ack, feedback]

    def _drop_pending_entry(self, pending_id: UUID) -> None:
        entry = self._session.find_by_pending(pending_id)
        if entry is not None:
            self._session.remove_by_id(entry.id)

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------

    async def _give_feedback(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> ConversationEntry:
        result: FeedbackResult = await self._feedback.give_feedback(
            self._ledger,
            self._settings,
            transaction,
            self._today(),
        )

        if self._audit_logger:
            await self._audit_logger.log_feedback(
                is_red_zone=result.is_red_zone,
                is_strict=result.is_strict,
                used_fallback=result.used_fallback,
                error_message=result.error_message,
                correlation_id=correlation_id,
            )
            if result.used_fallback:
                await self._audit_logger.log_external_service_error(
                    service="feedback",
                    error_message=result.error_message or "unknown error",
                    correlation_id=correlation_id,
                )

        return self._session.add_agent_message(result.text, is_red_zone=result.is_red_zone)

    async def _log_committed(self, transaction: Transaction, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_transaction_committed(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                category=transaction.category,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )

    async def _save_failed(self, error: Exception, correlation_id: UUID) -> ConversationEntry:
        logger.error("transaction_save_failed", error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return self._session.add_agent_message(SAVE_FAILED)

    # -------------------------------------------------------------------------
    # History and settings
    # -------------------------------------------------------------------------

    async def edit_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> Transaction:
        """
        Edit one transaction from the history.

        Raises:
            NotFoundError: If no transaction has this id
            ValidationError: If the edited transaction is malformed
        """
        correlation_id = correlation_id or create_correlation_id()
        updated = self._ledger.edit(transaction_id, **changes)

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction_id, sorted(changes), correlation_id
            )
        return updated

    async def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete one transaction from the history.

        Deleting an id that is already gone is not an error.

        Returns:
            Whether a transaction was actually removed
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._ledger.remove(transaction_id)
            existed = True
        except NotFoundError:
            existed = False

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id, existed, correlation_id
            )
        return existed

    async def update_settings(
        self,
        new_settings: UserSettings,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """
        Replace the settings record wholesale.

        Raises:
            CategorySetChangedError: If the category set differs
        """
        correlation_id = correlation_id or create_correlation_id()

        if set(new_settings.categories) != set(self._ledger.categories):
            raise CategorySetChangedError(
                "The category set is fixed; only limits, income and tone can change"
            )

        if self._settings_storage:
            self._settings_storage.put_settings(new_settings)
        self._settings = new_settings

        if self._audit_logger:
            await self._audit_logger.log_settings_saved(
                currency=new_settings.currency.value,
                monthly_income=str(new_settings.monthly_income),
                correlation_id=correlation_id,
            )
        return new_settings

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def month_overview(self) -> MonthOverview:
        return BudgetReportBuilder(self._ledger, self._settings).month_overview(self._today())

    def analytics(self) -> AnalyticsReport:
        return BudgetReportBuilder(self._ledger, self._settings).analytics(self._today())

    def history(self) -> list[Transaction]:
        return BudgetReportBuilder(self._ledger, self._settings).history()


def create_app_components(
    settings: Optional[UserSettings] = None,
    data_dir: Optional[Path] = None,
    in_memory: bool = False,
    extractor: Optional[TransactionExtractor] = None,
    phraser: Optional[FeedbackPhraser] = None,
) -> IntakeOrchestrator:
    """
    Factory function to create all application components.

    Args:
        settings: Onboarding result. Saved to the store when given;
                 otherwise the stored settings are loaded.
        data_dir: Directory for the JSON files (default: APP_DATA_DIR)
        in_memory: Keep everything in memory. Use for tests and
                  sessions that should not touch the disk.
        extractor: Extraction service (default: Gemini)
        phraser: Feedback phrasing service (default: Gemini)

    Raises:
        ValueError: If no settings were given and none are stored
    """
    app_settings = get_settings().app

    if in_memory:
        transaction_storage = InMemoryTransactionStorage()
        settings_storage = InMemorySettingsStorage()
        audit_storage = InMemoryAuditStorage(retention=app_settings.audit_log_retention)
    else:
        client = JsonFileClient(data_dir)
        transaction_storage = JsonFileTransactionStorage(client)
        settings_storage = JsonFileSettingsStorage(client)
        audit_storage = JsonFileAuditStorage(client, retention=app_settings.audit_log_retention)

    if settings is not None:
        settings_storage.put_settings(settings)
    else:
        settings = settings_storage.get_settings()
        if settings is None:
            raise ValueError("No budget settings stored yet; onboarding is required")

    ledger = BudgetLedger(transaction_storage, settings.categories)

    return IntakeOrchestrator(
        extractor=extractor or GeminiExtractionAgent(),
        feedback_policy=FeedbackPolicy(
            phraser or GeminiFeedbackAgent(),
            timeout_seconds=app_settings.feedback_timeout_seconds,
        ),
        ledger=ledger,
        settings=settings,
        settings_storage=settings_storage,
        audit_logger=AuditLogger(audit_storage),
        extraction_timeout_seconds=app_settings.extraction_timeout_seconds,
    )
