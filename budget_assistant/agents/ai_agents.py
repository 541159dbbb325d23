"""
AI Agents for Budget Assistant

CRITICAL BOUNDARIES:

1. EXTRACTION AGENT:
   - CAN: Turn free text into structured transaction candidates
   - CAN: Flag a candidate as needing clarification
   - CANNOT: Commit anything (the ledger and the user decide)
   - MUST: Return an empty list instead of raising

2. FEEDBACK AGENT:
   - CAN: Phrase 1-2 sentences FROM the computed budget stats
   - CANNOT: Decide the zone or strictness (the feedback policy does)
   - CANNOT: Invent figures that are not in the stats

The LLM is a TRANSLATOR, not an ACCOUNTANT.
Every number the user sees comes from the ledger.
"""

import json
from datetime import date
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from budget_assistant.agents.interface import (
    ExternalServiceError,
    FeedbackPhraser,
    TransactionExtractor,
)
from budget_assistant.config import get_settings
from budget_assistant.models.budget import (
    BudgetStats,
    ParseCandidate,
    ToneType,
)


logger = structlog.get_logger(__name__)


TONE_DESCRIPTIONS: dict[ToneType, str] = {
    ToneType.SOFT: "мягкий, поддерживающий",
    ToneType.STRICT: "строгий, деловой",
    ToneType.HARD: "жёсткий, прямой",
}


def _extract_json_array(text: str) -> list[Any]:
    """Find the JSON payload in a model response (object or array)."""
    text = text.strip()
    start = text.find("[")
    end = text.rfind("]") + 1
    if start >= 0 and end > start:
        data = json.loads(text[start:end])
    else:
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            return []
        data = json.loads(text[start:end])

    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data
    return []


class GeminiExtractionAgent(TransactionExtractor):
    """
    Extracts transactions from chat messages with Gemini.

    RESPONSIBILITIES:
    - Split multi-item messages ("такси 2500 и молоко 900")
    - Default to expense unless money was clearly received
    - Resolve relative dates against the given `today`

    BOUNDARIES:
    - NEVER raises; failures become an empty list
    - Candidates that do not fit the schema are dropped individually
    """

    def __init__(self):
        self._settings = get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def _build_prompt(self, text: str, categories: list[str], today: date) -> str:
        return f"""You are a financial parser. Extract transaction information from the user's text.
Current Date: {today.isoformat()}.
Categories: {', '.join(categories)}.

Rules for Classification (CRITICAL):
- DEFAULT TO 'expense' for any items, products, services, or mentions of buying something (e.g., "игрушка", "сыр", "такси", "бензин").
- Set type to 'income' ONLY if the text explicitly describes receiving money (e.g., "зарплата", "перевод мне", "бонус", "доход").
- If the user says 'вчера' (yesterday), calculate the correct date relative to {today.isoformat()}.
- Extract amount, category (one of the categories above), and a brief description strictly in Russian.
- For multi-item inputs like 'такси 2500 и молоко 900', return one object per item.
- Set needs_clarification to true if critical info (amount/category) is ambiguous, and
  clarification_reason to one of: date, category, type, amount.

Respond with ONLY a JSON array of objects with these fields:
date (YYYY-MM-DD), type (income|expense), amount (number), category, description,
confidence (0-1), needs_clarification (boolean), clarification_reason (optional).

User text:
{text}"""

    def _to_candidates(self, items: list[Any], today: date) -> list[ParseCandidate]:
        candidates = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if not item.get("date"):
                item = {**item, "date": today.isoformat()}
            try:
                candidates.append(ParseCandidate.model_validate(item))
            except ValidationError as e:
                logger.warning("candidate_dropped", error=str(e))
        return candidates

    async def extract(
        self,
        text: str,
        categories: list[str],
        today: date,
    ) -> list[ParseCandidate]:
        prompt = self._build_prompt(text, categories, today)

        try:
            response = await self._model.generate_content_async(prompt)
            items = _extract_json_array(response.text or "")
        except Exception as e:
            logger.error("extraction_failed", error=str(e))
            return []

        return self._to_candidates(items, today)


class GeminiFeedbackAgent(FeedbackPhraser):
    """
    Phrases budget feedback in Russian with Gemini.

    The zone and strictness arrive already decided in the stats;
    this agent only words them.
    """

    def __init__(self):
        self._settings = get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.feedback_temperature,
                "max_output_tokens": 256,
            }
        )

    def _build_prompt(self, stats: BudgetStats, tone: ToneType) -> str:
        if stats.is_strict:
            register = "Strict/Direct"
        else:
            register = "Soft/Neutral"

        category_line = ""
        if stats.category:
            category_line = (
                f"\n- Category '{stats.category}': spent {stats.category_spent}"
                f" of limit {stats.category_limit or 'not set'}"
            )

        return f"""You are a financial controller named 'Agent'.
Your response must be entirely in Russian.
Tone: {register}. The user prefers a {TONE_DESCRIPTIONS[tone]} tone.
Currency: {stats.currency.value}.

Status:
- Today spent: {stats.spent_today}
- Safe daily limit: {stats.safe_daily_limit:.0f}
- Remaining monthly budget: {stats.remaining_budget}
- Days left: {stats.days_left}
- Category exceeded: {stats.category_over_limit}
- Red Zone: {stats.is_red_zone}{category_line}

Task: Write 1-2 short sentences of feedback in Russian.
- Focus on facts and projections (will budget last?).
- Provide 1 actionable recommendation.
- NO shaming, NO insults.
- Praise ONLY if spending is well below safe limit."""

    async def phrase(self, stats: BudgetStats, tone: ToneType) -> str:
        prompt = self._build_prompt(stats, tone)

        try:
            response = await self._model.generate_content_async(prompt)
            text: Optional[str] = response.text
        except Exception as e:
            raise ExternalServiceError("gemini", str(e)) from e

        if not text or not text.strip():
            raise ExternalServiceError("gemini", "empty feedback text")
        return text.strip()
