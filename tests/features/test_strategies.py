# tests/features/test_strategies.py
import datetime
import json
from types import SimpleNamespace

import pytest

from crowdsafe.core.circuit_breaker import CircuitBreaker
from crowdsafe.core.exceptions import InvalidInputError, MalformedAnalysisError
from crowdsafe.features.risk.llm_analyzer import (
    LLMAnalysisStrategy,
    extract_json,
    parse_analysis,
)
from crowdsafe.features.risk.schemas import AnalysisSource, EventInput, RiskLevel
from crowdsafe.features.risk.strategies import (
    AnalysisStrategy,
    DeterministicAnalysisStrategy,
    analyze_with_fallback,
)

NOW = datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)

EVENT = EventInput(
    event_type="concert",
    expected_attendance=8000,
    date=datetime.date(2025, 1, 4),
    start_time="18:30",
    celebrity_name="Rajinikanth",
    location="Palace Grounds, Bengaluru",
)

LLM_PAYLOAD = {
    "predictedCrowdMin": 15000,
    "predictedCrowdMax": 22000,
    "riskScore": 130,
    "riskFactors": ["Star appearance", "Saturday evening"],
    "trafficImpact": "HIGH",
    "recommendations": ["Stagger gate opening"],
}


class ExplodingStrategy(AnalysisStrategy):
    name = "exploding"

    async def analyze(self, event, venue_capacity, now):
        raise RuntimeError("upstream timed out")


def make_client(mocker, text: str):
    client = mocker.MagicMock()
    client.messages.create = mocker.AsyncMock(
        return_value=SimpleNamespace(content=[SimpleNamespace(text=text)])
    )
    return client


@pytest.mark.asyncio
async def test_fallback_runs_deterministic_analysis_when_strategy_fails(mocker):
    audit = mocker.patch("crowdsafe.features.risk.strategies.audit_logger")

    result = await analyze_with_fallback(EVENT, 50000, NOW, strategy=ExplodingStrategy())
    expected = await DeterministicAnalysisStrategy().analyze(EVENT, 50000, NOW)

    assert result == expected
    assert result.source == AnalysisSource.DETERMINISTIC
    audit.log_analysis_fallback.assert_called_once()


@pytest.mark.asyncio
async def test_invalid_input_is_not_masked_by_fallback():
    bad_event = EVENT.model_copy(update={"expected_attendance": -5})

    with pytest.raises(InvalidInputError):
        await analyze_with_fallback(bad_event, 50000, NOW, strategy=ExplodingStrategy())


@pytest.mark.asyncio
async def test_llm_strategy_sanitizes_response(mocker):
    client = make_client(mocker, f"```json\n{json.dumps(LLM_PAYLOAD)}\n```")
    strategy = LLMAnalysisStrategy(client=client, breaker=CircuitBreaker("test-llm"))

    result = await strategy.analyze(EVENT, 50000, NOW)

    assert result.source == AnalysisSource.LLM
    assert result.assessment.score == 100
    assert result.assessment.level == RiskLevel.HIGH
    assert result.traffic_impact == RiskLevel.HIGH
    assert result.prediction.min == 15000
    assert result.recommendations == ["Stagger gate opening"]
    client.messages.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_garbage_llm_output_falls_back(mocker):
    mocker.patch("crowdsafe.features.risk.strategies.audit_logger")
    client = make_client(mocker, "I cannot help with that.")
    strategy = LLMAnalysisStrategy(client=client, breaker=CircuitBreaker("test-garbage"))

    result = await analyze_with_fallback(EVENT, 50000, NOW, strategy=strategy)

    assert result.source == AnalysisSource.DETERMINISTIC


@pytest.mark.asyncio
async def test_open_breaker_skips_llm_call(mocker):
    mocker.patch("crowdsafe.features.risk.strategies.audit_logger")
    client = make_client(mocker, "not json")
    breaker = CircuitBreaker("test-open", fail_max=1, reset_timeout=600)
    strategy = LLMAnalysisStrategy(client=client, breaker=breaker)

    await analyze_with_fallback(EVENT, 50000, NOW, strategy=strategy)
    assert breaker.is_open

    result = await analyze_with_fallback(EVENT, 50000, NOW, strategy=strategy)

    assert result.source == AnalysisSource.DETERMINISTIC
    assert client.messages.create.await_count == 1


def test_extract_json_rejects_prose():
    with pytest.raises(MalformedAnalysisError):
        extract_json("Here is my analysis: high risk")


def test_parse_analysis_rejects_inverted_range():
    payload = dict(LLM_PAYLOAD, predictedCrowdMin=30000)

    with pytest.raises(MalformedAnalysisError):
        parse_analysis(payload, EVENT, 50000, NOW)


def test_parse_analysis_derives_missing_pieces():
    payload = dict(LLM_PAYLOAD, riskScore=45, trafficImpact="gridlock", recommendations=[])

    result = parse_analysis(payload, EVENT, 50000, NOW)

    assert result.assessment.level == RiskLevel.MEDIUM
    assert result.traffic_impact == RiskLevel.MEDIUM
    assert result.recommendations[0] == "Deploy additional 15+ officers for crowd control"


@pytest.mark.asyncio
async def test_failing_rules_engine_is_not_run_twice(mocker):
    audit = mocker.patch("crowdsafe.features.risk.strategies.audit_logger")
    analyze = mocker.patch.object(
        DeterministicAnalysisStrategy,
        "analyze",
        new_callable=mocker.AsyncMock,
        side_effect=RuntimeError("table lookup failed"),
    )

    with pytest.raises(RuntimeError):
        await analyze_with_fallback(
            EVENT, 50000, NOW, strategy=DeterministicAnalysisStrategy()
        )

    assert analyze.await_count == 1
    audit.log_analysis_fallback.assert_not_called()


@pytest.mark.parametrize(
    "overrides",
    [
        {"predictedCrowdMax": 10**12},
        {"predictedCrowdMin": -1},
        {"predictedCrowdMax": float("inf")},
    ],
)
def test_parse_analysis_rejects_out_of_range_crowds(overrides):
    payload = dict(LLM_PAYLOAD, **overrides)

    with pytest.raises(MalformedAnalysisError):
        parse_analysis(payload, EVENT, 50000, NOW)
