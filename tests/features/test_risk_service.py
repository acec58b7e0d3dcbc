# tests/features/test_risk_service.py
import datetime
from dataclasses import replace

import pytest

from crowdsafe.core.exceptions import InvalidInputError
from crowdsafe.features.risk.schemas import (
    MAX_EXPECTED_ATTENDANCE,
    CrowdPrediction,
    EventInput,
    RiskAssessment,
    RiskLevel,
    VenueCapacity,
)
from crowdsafe.features.risk.service import (
    analyze,
    assess,
    calculate_confidence,
    check_venue_capacity,
    plan_deployment,
    predict,
    recommend,
    risk_level_for,
    start_hour,
    traffic_impact_for,
)
from crowdsafe.features.risk.tables import CAPACITY_ALERT_RECOMMENDATION, DEFAULT_TABLES

SATURDAY = datetime.date(2025, 1, 4)
TUESDAY = datetime.date(2025, 1, 7)
NOW = datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)


def make_event(**overrides) -> EventInput:
    data = {
        "event_type": "political",
        "expected_attendance": 20000,
        "date": SATURDAY,
        "start_time": "19:00",
        "celebrity_name": "unknown",
    }
    data.update(overrides)
    return EventInput(**data)


def test_large_weekend_political_rally_is_high_risk():
    """
    20000 x 1.5 (political) x 1.2 (evening) x 1.15 (weekend) = 41400,
    widened by 20% each side; every band fires and the score clamps at 100.
    """
    event = make_event()

    result = analyze(event, NOW, venue_capacity=25000)

    assert result.prediction.min == 33120
    assert result.prediction.max == 49680
    assert result.assessment.score == 100
    assert result.assessment.level == RiskLevel.HIGH
    assert result.assessment.factors == [
        "Venue approaching maximum capacity",
        "Very large crowd expected",
        "political events carry elevated risk",
        "Evening event increases crowd density risk",
        "Weekend events typically draw larger crowds",
        "Clear weather conditions expected",
    ]
    assert result.source.value == "deterministic"


def test_small_weekday_cultural_event_clamps_to_zero():
    event = make_event(
        event_type="cultural", expected_attendance=500, date=TUESDAY, start_time="11:00"
    )

    result = analyze(event, NOW, venue_capacity=10000)

    assert result.prediction.min == 400
    assert result.prediction.max == 600
    assert result.assessment.score == 0
    assert result.assessment.level == RiskLevel.LOW
    assert result.assessment.factors == [
        "cultural events carry elevated risk",
        "Clear weather conditions expected",
    ]


def test_celebrity_multiplier_is_case_insensitive():
    plain = predict(make_event(event_type="movie", celebrity_name=""), NOW)
    star = predict(make_event(event_type="movie", celebrity_name="  Rajinikanth "), NOW)

    assert star.min == pytest.approx(plain.min * 2, abs=1)
    assert star.max == pytest.approx(plain.max * 2, abs=1)


def test_prediction_range_is_ordered_and_grows_with_attendance():
    previous = None
    for attendance in (1, 10, 500, 5000, 50000):
        prediction = predict(make_event(expected_attendance=attendance), NOW)
        assert 0 <= prediction.min <= prediction.max
        if previous is not None:
            assert prediction.min >= previous.min
            assert prediction.max >= previous.max
        previous = prediction


def test_predict_rejects_malformed_start_time():
    event = EventInput.model_construct(
        event_type=make_event().event_type,
        expected_attendance=100,
        date=SATURDAY,
        start_time="7pm",
        celebrity_name="",
    )

    with pytest.raises(InvalidInputError) as exc_info:
        predict(event, NOW)

    assert exc_info.value.field == "start_time"


def test_predict_rejects_non_positive_attendance():
    event = make_event().model_copy(update={"expected_attendance": 0})

    with pytest.raises(InvalidInputError):
        predict(event, NOW)


def test_event_input_validates_time_format():
    with pytest.raises(ValueError):
        make_event(start_time="25:00")


@pytest.mark.parametrize("bad_time", ["19:00\n", " 19:00", "19:00 ", "1900"])
def test_time_must_match_exactly(bad_time):
    with pytest.raises(ValueError):
        make_event(start_time=bad_time)
    with pytest.raises(InvalidInputError):
        start_hour(bad_time)


def test_attendance_above_limit_is_invalid_input():
    with pytest.raises(ValueError):
        make_event(expected_attendance=MAX_EXPECTED_ATTENDANCE + 1)

    oversized = make_event().model_copy(update={"expected_attendance": 10**309})
    with pytest.raises(InvalidInputError) as exc_info:
        predict(oversized, NOW)
    assert exc_info.value.field == "expected_attendance"


def test_attendance_at_limit_is_scored():
    prediction = predict(make_event(expected_attendance=MAX_EXPECTED_ATTENDANCE), NOW)

    assert prediction.max > prediction.min > 0


@pytest.mark.parametrize(
    "score, expected",
    [
        (0, RiskLevel.LOW),
        (39, RiskLevel.LOW),
        (40, RiskLevel.MEDIUM),
        (69, RiskLevel.MEDIUM),
        (70, RiskLevel.HIGH),
        (100, RiskLevel.HIGH),
    ],
)
def test_risk_level_thresholds_are_inclusive(score, expected):
    assert risk_level_for(score) == expected


def test_alternate_tables_change_thresholds():
    strict = replace(DEFAULT_TABLES, high_risk_threshold=50, medium_risk_threshold=20)

    assert risk_level_for(50, strict) == RiskLevel.HIGH
    assert risk_level_for(20, strict) == RiskLevel.MEDIUM
    assert risk_level_for(50) == RiskLevel.MEDIUM


def test_utilization_bands():
    event = make_event(event_type="other", date=TUESDAY, start_time="10:00")

    def factors_for(average: int):
        prediction = CrowdPrediction(min=average, max=average, confidence=0.7)
        return assess(prediction, event, venue_capacity=1000).factors

    assert "Venue approaching maximum capacity" in factors_for(950)
    assert "High venue utilization" in factors_for(800)
    assert "Moderate venue utilization" in factors_for(600)
    assert factors_for(400)[0] == "other events carry elevated risk"


def test_assess_rejects_non_positive_venue_capacity():
    prediction = CrowdPrediction(min=10, max=20, confidence=0.7)

    with pytest.raises(InvalidInputError):
        assess(prediction, make_event(), venue_capacity=0)
    with pytest.raises(InvalidInputError):
        assess(prediction, make_event(), venue_capacity=10**309)


def test_afternoon_start_adds_traffic_factor():
    prediction = CrowdPrediction(min=100, max=100, confidence=0.7)
    assessment = assess(prediction, make_event(start_time="15:30", date=TUESDAY), 10000)

    assert "Afternoon timing may affect traffic flow" in assessment.factors
    assert "Evening event increases crowd density risk" not in assessment.factors


def test_high_tier_recommendations_lead_with_officer_deployment():
    assessment = RiskAssessment(score=85, level=RiskLevel.HIGH, factors=[])
    prediction = CrowdPrediction(min=100, max=200, confidence=0.7)

    recommendations = recommend(assessment, prediction, venue_capacity=10000)

    assert recommendations[0] == "Deploy additional 25+ officers for crowd control"
    assert len(recommendations) == 6
    assert not any("15+ officers" in r or "standard security" in r for r in recommendations)
    assert CAPACITY_ALERT_RECOMMENDATION not in recommendations


def test_capacity_alert_is_appended_last():
    assessment = RiskAssessment(score=10, level=RiskLevel.LOW, factors=[])
    prediction = CrowdPrediction(min=9000, max=10000, confidence=0.7)

    recommendations = recommend(assessment, prediction, venue_capacity=10000)

    assert recommendations[0] == "Deploy standard security personnel"
    assert recommendations[-1] == CAPACITY_ALERT_RECOMMENDATION


def test_confidence_depends_on_lead_time():
    event = make_event(celebrity_name="virat", event_type="sports")

    soon = calculate_confidence(event, NOW)
    weeks_out = calculate_confidence(event, NOW - datetime.timedelta(days=20))
    months_out = calculate_confidence(event, NOW - datetime.timedelta(days=60))

    assert soon == 0.95
    assert weeks_out == 0.85
    assert months_out == 0.75


def test_confidence_for_unknown_event_type_and_no_celebrity():
    event = make_event(event_type="movie", celebrity_name="")

    assert calculate_confidence(event, NOW) == 0.7
    assert calculate_confidence(event, NOW - datetime.timedelta(days=40)) == 0.5


def test_traffic_impact_follows_score():
    assert traffic_impact_for(65) == RiskLevel.HIGH
    assert traffic_impact_for(45) == RiskLevel.MEDIUM
    assert traffic_impact_for(10) == RiskLevel.LOW


def test_venue_check_for_known_venue():
    venue = VenueCapacity(max_capacity=20000, safe_capacity=16000, name="Test Ground")

    response = check_venue_capacity("Test Road", 19000, venue)

    assert response.venue_known is True
    assert response.utilization_percentage == 95.0
    assert response.recommendation == "overcrowded"


def test_venue_check_for_unknown_venue_uses_default_capacity():
    response = check_venue_capacity("Nowhere", 2500, None, default_capacity=10000)

    assert response.venue_known is False
    assert response.max_capacity == 10000
    assert response.utilization_percentage == 25.0
    assert response.recommendation == "venue_verification_needed"


def test_deployment_plan_scales_with_risk():
    high = plan_deployment(RiskLevel.HIGH)
    low = plan_deployment(RiskLevel.LOW)

    assert high.officers_required == 25
    assert high.emergency_response.ambulances == 3
    assert low.officers_required == 8
    assert len(high.checkpoints) == 3
    assert high.route_mapping[0] == "Primary access via Brigade Road"
