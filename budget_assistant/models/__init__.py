"""
Data Models Package

This package contains all Pydantic models used in the Budget Assistant.
All data flowing through the intake pipeline must conform to these schemas.
"""

from budget_assistant.models.budget import (
    BASE_CATEGORIES,
    OBLIGATION_LABELS,
    STRICT_THRESHOLDS,
    BudgetStats,
    CategoryLimit,
    ClarificationReason,
    ConversationEntry,
    Currency,
    MessageRole,
    MonthKey,
    ObligationType,
    ParseCandidate,
    ToneType,
    Transaction,
    TransactionType,
    UserSettings,
    ValidationIssue,
    ValidationResult,
    build_initial_settings,
)
from budget_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Budget models
    "BASE_CATEGORIES",
    "OBLIGATION_LABELS",
    "STRICT_THRESHOLDS",
    "BudgetStats",
    "CategoryLimit",
    "ClarificationReason",
    "ConversationEntry",
    "Currency",
    "MessageRole",
    "MonthKey",
    "ObligationType",
    "ParseCandidate",
    "ToneType",
    "Transaction",
    "TransactionType",
    "UserSettings",
    "ValidationIssue",
    "ValidationResult",
    "build_initial_settings",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
