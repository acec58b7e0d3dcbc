# crowdsafe/features/risk/llm_analyzer.py
"""
LLM-powered crowd safety analysis using Anthropic Claude.

Produces the same AnalysisResult as the rules engine. The response is
sanitized before use: the score is clamped, the tier is re-derived from the
score, and anything structurally wrong raises MalformedAnalysisError so the
caller falls back to the deterministic analysis.
"""

import json
import logging
import math
from datetime import datetime
from typing import Any, Optional

import anthropic
from anthropic import AsyncAnthropic

from crowdsafe.core.circuit_breaker import CircuitBreaker, get_anthropic_breaker
from crowdsafe.core.config import settings
from crowdsafe.core.exceptions import AnthropicAPIError, MalformedAnalysisError

from . import service
from .schemas import (
    MAX_EXPECTED_ATTENDANCE,
    AnalysisResult,
    AnalysisSource,
    CrowdPrediction,
    EventInput,
    RiskAssessment,
    RiskLevel,
)
from .strategies import AnalysisStrategy
from .tables import DEFAULT_TABLES, RiskTables

logger = logging.getLogger(__name__)

# The rules engine never predicts more than about six times the attendance
MAX_PREDICTED_CROWD = 10 * MAX_EXPECTED_ATTENDANCE

SYSTEM_PROMPT = (
    "You are an expert crowd safety analyst specializing in event risk assessment "
    "and crowd management. Provide detailed, actionable analysis based on the "
    "event data provided."
)


def build_prompt(event: EventInput, venue_capacity: int) -> str:
    end_time = f" - {event.end_time}" if event.end_time else ""
    return f"""Analyze this event for crowd safety and provide recommendations.

Event Details:
- Type: {event.event_type.value}
- Expected Attendance: {event.expected_attendance}
- Celebrity/VIP: {event.celebrity_name or 'None'}
- Location: {event.location or 'Unknown'}
- Venue Capacity: {venue_capacity}
- Date: {event.date.isoformat()} ({event.date.strftime('%A')})
- Time: {event.start_time}{end_time}
- Special Requirements: {event.special_requirements or 'None'}

Consider celebrity popularity and fanbase behavior, typical crowd patterns for
the event type, venue capacity, time of day and day of week, traffic impact and
emergency response requirements.

Return ONLY a JSON object (no markdown, no explanation) with this structure:
{{
  "predictedCrowdMin": 0,
  "predictedCrowdMax": 0,
  "riskScore": 0,
  "riskFactors": ["factor1", "factor2"],
  "trafficImpact": "low|medium|high",
  "recommendations": ["recommendation1", "recommendation2"]
}}

riskScore is an integer from 0 to 100."""


def extract_json(text: str) -> Any:
    json_str = text
    if "```json" in text:
        json_str = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        json_str = text.split("```")[1].split("```")[0]
    try:
        return json.loads(json_str.strip())
    except json.JSONDecodeError as e:
        raise MalformedAnalysisError(f"LLM response is not valid JSON: {e}") from e


def _as_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedAnalysisError(f"LLM response field {key!r} missing or not a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedAnalysisError(f"LLM response field {key!r} is not finite")
    return int(value)


def _as_strings(payload: dict, key: str) -> list[str]:
    value = payload.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def parse_analysis(
    payload: Any,
    event: EventInput,
    venue_capacity: int,
    now: datetime,
    tables: RiskTables = DEFAULT_TABLES,
) -> AnalysisResult:
    """Turns a decoded LLM payload into an AnalysisResult or raises MalformedAnalysisError."""
    if not isinstance(payload, dict):
        raise MalformedAnalysisError("LLM response is not a JSON object")

    predicted_min = _as_int(payload, "predictedCrowdMin")
    predicted_max = _as_int(payload, "predictedCrowdMax")
    if not 0 <= predicted_min <= predicted_max <= MAX_PREDICTED_CROWD:
        raise MalformedAnalysisError(
            f"LLM crowd range is invalid: {predicted_min}..{predicted_max}"
        )

    score = max(0, min(100, _as_int(payload, "riskScore")))
    assessment = RiskAssessment(
        score=score,
        level=service.risk_level_for(score, tables),
        factors=_as_strings(payload, "riskFactors"),
    )
    prediction = CrowdPrediction(
        min=predicted_min,
        max=predicted_max,
        confidence=service.calculate_confidence(event, now, tables),
    )

    recommendations = _as_strings(payload, "recommendations")
    if not recommendations:
        recommendations = service.recommend(assessment, prediction, venue_capacity, tables)

    try:
        traffic_impact = RiskLevel(str(payload.get("trafficImpact", "")).lower())
    except ValueError:
        traffic_impact = service.traffic_impact_for(score)

    return AnalysisResult(
        prediction=prediction,
        assessment=assessment,
        recommendations=recommendations,
        venue_capacity=venue_capacity,
        traffic_impact=traffic_impact,
        source=AnalysisSource.LLM,
    )


class LLMAnalysisStrategy(AnalysisStrategy):
    name = "llm"

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        breaker: Optional[CircuitBreaker] = None,
        model: Optional[str] = None,
        tables: RiskTables = DEFAULT_TABLES,
    ):
        self._client = client
        self._breaker = breaker
        self.model = model or settings.LLM_MODEL
        self.tables = tables

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not settings.ANTHROPIC_API_KEY:
                raise AnthropicAPIError(message="ANTHROPIC_API_KEY is not configured")
            self._client = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
        return self._client

    async def analyze(
        self, event: EventInput, venue_capacity: int, now: datetime
    ) -> AnalysisResult:
        client = self._get_client()
        breaker = self._breaker or get_anthropic_breaker()

        async with breaker:
            try:
                response = await client.messages.create(
                    model=self.model,
                    max_tokens=settings.LLM_MAX_TOKENS,
                    system=SYSTEM_PROMPT,
                    messages=[
                        {"role": "user", "content": build_prompt(event, venue_capacity)}
                    ],
                )
            except anthropic.APIStatusError as e:
                raise AnthropicAPIError(status_code=e.status_code, message=str(e)) from e
            except anthropic.APIError as e:
                raise AnthropicAPIError(message=str(e)) from e

            if not response.content:
                raise MalformedAnalysisError("LLM returned an empty response")

            payload = extract_json(response.content[0].text.strip())
            result = parse_analysis(payload, event, venue_capacity, now, self.tables)

        logger.info(
            f"LLM analysis scored {event.event_type.value} event at {result.assessment.score}"
        )
        return result
