"""
Shared fixtures for the Budget Assistant tests.

Test strategy:
1. Unit tests for individual components (models, ledger, policy)
2. Integration tests for flows (with fake language services)
3. No real API calls in tests
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_assistant.audit import AuditLogger
from budget_assistant.feedback import FeedbackPolicy
from budget_assistant.ledger import BudgetLedger
from budget_assistant.models.budget import Currency, ToneType, build_initial_settings
from budget_assistant.orchestrator import IntakeOrchestrator
from budget_assistant.services.storage import (
    InMemoryAuditStorage,
    InMemorySettingsStorage,
    InMemoryTransactionStorage,
)

from fakes import FakeExtractor, FakePhraser


TODAY = date(2024, 5, 15)


@pytest.fixture
def make_settings():
    """Factory for onboarding settings, tenge by default."""

    def _make(income="100000", limits=None, currency=Currency.TENGE, tone=ToneType.SOFT):
        return build_initial_settings(
            currency=currency,
            monthly_income=Decimal(income),
            tone=tone,
            limits={name: Decimal(value) for name, value in (limits or {}).items()},
        )

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings(limits={"Одежда": "5000", "Продукты": "20000"})


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def ledger(settings, transaction_storage):
    return BudgetLedger(transaction_storage, settings.categories)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def make_orchestrator(audit_storage):
    """
    Factory for an orchestrator wired to in-memory stores and fakes.

    Today is pinned to TODAY.
    """

    def _make(
        settings,
        extractor=None,
        phraser=None,
        extraction_timeout=1.0,
        feedback_timeout=1.0,
    ):
        ledger = BudgetLedger(InMemoryTransactionStorage(), settings.categories)
        return IntakeOrchestrator(
            extractor=extractor or FakeExtractor(),
            feedback_policy=FeedbackPolicy(
                phraser or FakePhraser(),
                timeout_seconds=feedback_timeout,
            ),
            ledger=ledger,
            settings=settings,
            settings_storage=InMemorySettingsStorage(settings),
            audit_logger=AuditLogger(audit_storage),
            extraction_timeout_seconds=extraction_timeout,
            today_provider=lambda: TODAY,
        )

    return _make
