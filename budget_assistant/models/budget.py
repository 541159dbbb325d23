"""
Core Data Models for Budget Assistant

These models define the schemas for all data flowing through the
intake pipeline:
1. ParseCandidate - what the extraction service THINKS the user said
2. Transaction - a finalized ledger record
3. UserSettings - the budget the user configured at onboarding
4. ConversationEntry - one line of the chat log

DESIGN DECISION: Models enforce structure (types, closed sets, ranges
that are always wrong). Business rules that depend on the configured
category set (known category, obligation present on expenses) are
enforced at the ledger boundary by the validator, so the ledger stays
the single place where a transaction is accepted or rejected.
"""

import calendar
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current time, used for every creation timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class ObligationType(str, Enum):
    """
    Post-hoc classification of an expense.

    Used only for the discretionary-share analytics.
    Income never carries one.
    """
    ESSENTIAL = "Essential"
    OPTIONAL = "Optional"
    IMPULSE = "Impulse"

    @property
    def label(self) -> str:
        """Button label shown to the user."""
        return OBLIGATION_LABELS[self]

    @property
    def is_discretionary(self) -> bool:
        return self in (ObligationType.OPTIONAL, ObligationType.IMPULSE)


class ToneType(str, Enum):
    """Feedback tone the user picked at onboarding."""
    SOFT = "soft"
    STRICT = "strict"
    HARD = "hard"


class Currency(str, Enum):
    """
    Supported currencies.

    DESIGN DECISION: No conversion between them. The currency is a
    display unit and a key into the strict-threshold table.
    """
    TENGE = "₸"
    RUBLE = "₽"
    BYN = "BYN"


class ClarificationReason(str, Enum):
    """Why the extraction service could not produce a complete candidate."""
    DATE = "date"
    CATEGORY = "category"
    TYPE = "type"
    AMOUNT = "amount"


class MessageRole(str, Enum):
    USER = "user"
    AGENT = "agent"


OBLIGATION_LABELS: dict[ObligationType, str] = {
    ObligationType.ESSENTIAL: "Обязательное",
    ObligationType.OPTIONAL: "Опциональное",
    ObligationType.IMPULSE: "Импульс",
}


# The category set is fixed at onboarding and treated as a closed
# enumeration for the whole session.
BASE_CATEGORIES: tuple[str, ...] = (
    "Продукты",
    "Транспорт",
    "Подарки",
    "Образование",
    "Домашнее хозяйство",
    "Здоровье",
    "Красота и уход за собой",
    "Подписки",
    "Коммуналка",
    "Кредиты/рассрочки",
    "Дети (садик/кружки/школа)",
    "Одежда",
    "Другое",
)


# A single expense above this amount makes the feedback strict even
# outside the red zone. Zero disables the amount-based trigger.
STRICT_THRESHOLDS: dict[Currency, Decimal] = {
    Currency.TENGE: Decimal("5000"),
    Currency.RUBLE: Decimal("1000"),
    Currency.BYN: Decimal("0"),
}


def _to_decimal(v: Any) -> Any:
    """Floats from JSON would carry binary noise into sums."""
    if isinstance(v, float):
        return Decimal(str(v))
    return v


Money = Annotated[Decimal, BeforeValidator(_to_decimal)]

# Field names below shadow `date`; annotations use this alias instead.
Day = date


# =============================================================================
# CALENDAR MONTH
# =============================================================================

_MONTH_KEY_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


class MonthKey(BaseModel):
    """
    A calendar month with explicit year/month fields.

    Month membership is decided on parsed dates, so "2024-1" and
    "2024-01" name the same month.
    """
    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)

    @classmethod
    def from_date(cls, day: date) -> "MonthKey":
        return cls(year=day.year, month=day.month)

    @classmethod
    def parse(cls, value: Union["MonthKey", date, str]) -> "MonthKey":
        """Accept a MonthKey, any date inside the month, or "YYYY-MM"."""
        if isinstance(value, MonthKey):
            return value
        if isinstance(value, date):
            return cls.from_date(value)
        match = _MONTH_KEY_RE.match(value)
        if not match:
            raise ValueError(f"Invalid month key: {value!r} (expected YYYY-MM)")
        return cls(year=int(match.group(1)), month=int(match.group(2)))

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month

    def days_remaining(self, today: date) -> int:
        """Days left in the month, today included."""
        return (self.last_day - today).days + 1

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A finalized ledger record.

    Immutable: edits produce a new instance with the same id
    (see BudgetLedger.replace).

    Invariants (checked by the ledger validator):
    - income never carries an obligation tag
    - an expense is complete only once an obligation tag is attached
    - amount is never negative
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Opaque unique transaction id"
    )
    date: Day = Field(
        ...,
        description="Calendar day of the transaction"
    )
    type: TransactionType
    category: str = Field(
        default="",
        max_length=100,
        description="Category label, from the configured set for expenses"
    )
    amount: Money = Field(
        ...,
        description="Amount in the user's currency"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Short description of what it was"
    )
    obligation: Optional[ObligationType] = None
    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp, the ordering key"
    )

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class CategoryLimit(BaseModel):
    """Monthly limit for one category. A limit of 0 means not enforced."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    category: str = Field(..., min_length=1, max_length=100)
    limit: Money = Field(default=Decimal("0"), ge=0)

    @property
    def is_enforced(self) -> bool:
        return self.limit > 0


class UserSettings(BaseModel):
    """
    The budget the user configured at onboarding.

    Created once, replaced wholesale on edits, never partially mutated.

    NOTE: free_budget currently equals monthly_income. The
    essential_payments field is kept for forward compatibility and is
    always zero.
    """
    model_config = ConfigDict(frozen=True)

    currency: Currency
    monthly_income: Money = Field(..., gt=0)
    essential_payments: Money = Field(default=Decimal("0"), ge=0)
    free_budget: Money = Field(..., ge=0)
    month_start: int = Field(default=1, ge=1, le=31)
    month_end: int = Field(default=31, ge=1, le=31)
    tone: ToneType = ToneType.SOFT
    limits: tuple[CategoryLimit, ...] = Field(
        ...,
        min_length=1,
        description="One limit per category, in display order"
    )

    @model_validator(mode='before')
    @classmethod
    def derive_free_budget(cls, data: Any) -> Any:
        """free_budget defaults to income minus essential payments."""
        if isinstance(data, dict) and data.get("free_budget") is None:
            income = _to_decimal(data.get("monthly_income"))
            essential = _to_decimal(data.get("essential_payments")) or Decimal("0")
            if income is not None:
                data = {**data, "free_budget": Decimal(income) - Decimal(essential)}
        return data

    @model_validator(mode='after')
    def validate_limits(self) -> 'UserSettings':
        """
        Onboarding rules: one limit for every base category, limits fit
        into the income, free budget is income minus essential payments.
        """
        names = [limit.category for limit in self.limits]
        if len(names) != len(set(names)):
            raise ValueError("Each category must have exactly one limit")

        missing = [name for name in BASE_CATEGORIES if name not in names]
        if missing:
            raise ValueError(f"Missing limits for categories: {missing}")
        unknown = [name for name in names if name not in BASE_CATEGORIES]
        if unknown:
            raise ValueError(f"Limits given for unknown categories: {unknown}")

        if self.free_budget != self.monthly_income - self.essential_payments:
            raise ValueError("free_budget must equal monthly_income minus essential_payments")

        total = sum((limit.limit for limit in self.limits), Decimal("0"))
        if total > self.monthly_income:
            raise ValueError("Category limits exceed monthly income")

        return self

    @property
    def categories(self) -> list[str]:
        return [limit.category for limit in self.limits]

    @property
    def strict_threshold(self) -> Decimal:
        return STRICT_THRESHOLDS.get(self.currency, Decimal("0"))

    def limit_for(self, category: str) -> Decimal:
        """Configured limit for a category, 0 when unset or unknown."""
        for limit in self.limits:
            if limit.category == category:
                return limit.limit
        return Decimal("0")


def build_initial_settings(
    currency: Currency,
    monthly_income: Decimal,
    tone: ToneType = ToneType.SOFT,
    limits: Optional[dict[str, Decimal]] = None,
) -> UserSettings:
    """
    Build the settings record produced by onboarding.

    Every base category gets a limit entry; categories missing from
    `limits` get 0 (not enforced).
    """
    limits = limits or {}
    unknown = set(limits) - set(BASE_CATEGORIES)
    if unknown:
        raise ValueError(f"Limits given for unknown categories: {sorted(unknown)}")

    return UserSettings(
        currency=currency,
        monthly_income=monthly_income,
        essential_payments=Decimal("0"),
        free_budget=monthly_income,
        tone=tone,
        limits=tuple(
            CategoryLimit(category=name, limit=limits.get(name, Decimal("0")))
            for name in BASE_CATEGORIES
        ),
    )


# =============================================================================
# EXTRACTION OUTPUT
# =============================================================================

class ParseCandidate(BaseModel):
    """
    One transaction as understood by the extraction service.

    CRITICAL: This is PROPOSED data, NOT verified.
    Expenses additionally need an obligation tag from the user before
    they can be committed.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    date: Day
    type: TransactionType
    amount: Money
    category: str = Field(default="", max_length=100)
    description: str = Field(default="", max_length=500)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    needs_clarification: bool = False
    clarification_reason: Optional[ClarificationReason] = None

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('clarification_reason', mode='before')
    @classmethod
    def normalize_reason(cls, v: Any) -> Any:
        """Unknown reasons are dropped rather than failing the candidate."""
        if v is None or isinstance(v, ClarificationReason):
            return v
        value = str(v).strip().lower()
        if value in {reason.value for reason in ClarificationReason}:
            return value
        return None

    def to_transaction(
        self,
        obligation: Optional[ObligationType] = None,
    ) -> Transaction:
        """Materialize a transaction with a fresh id and timestamp."""
        return Transaction(
            date=self.date,
            type=self.type,
            category=self.category,
            amount=self.amount,
            description=self.description,
            obligation=obligation,
        )


# =============================================================================
# CONVERSATION
# =============================================================================

class ConversationEntry(BaseModel):
    """
    One message in the chat log.

    An agent entry with pending_id set is waiting for the user to pick
    an obligation tag; it is removed from the log once resolved.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    role: MessageRole
    content: str = Field(..., min_length=1)
    pending_id: Optional[UUID] = None
    is_red_zone: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        return self.pending_id is not None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'negative', 'unknown_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one transaction or candidate."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_fields(self) -> list[str]:
        return [issue.field for issue in self.issues if issue.severity == "error"]


# =============================================================================
# FEEDBACK MODELS
# =============================================================================

class BudgetStats(BaseModel):
    """
    Budget figures right after a commit, as handed to the phrasing
    service. Computed by the feedback policy, never stored.
    """
    model_config = ConfigDict(frozen=True)

    currency: Currency
    spent_today: Decimal
    month_total: Decimal
    free_budget: Decimal
    remaining_budget: Decimal = Field(description="free_budget - month_total, may be negative")
    days_left: int = Field(ge=1, description="Days left in the month, today included")
    safe_daily_limit: Decimal = Field(ge=0)
    category: Optional[str] = None
    category_spent: Decimal = Decimal("0")
    category_limit: Decimal = Decimal("0")
    category_over_limit: bool = False
    month_over_budget: bool = False
    trigger_amount: Decimal = Decimal("0")
    is_red_zone: bool = False
    is_strict: bool = False
