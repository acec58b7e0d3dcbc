# crowdsafe/features/risk/service.py
"""
Deterministic crowd prediction, risk scoring and recommendations.

This is the rules engine that runs whenever the LLM analysis is switched off
or fails. Every function here is pure: the clock is passed in as `now`.
"""

import math
from datetime import datetime, time, timezone
from typing import List, Optional

from crowdsafe.core.exceptions import InvalidInputError

from .schemas import (
    MAX_EXPECTED_ATTENDANCE,
    TIME_PATTERN,
    AnalysisResult,
    AnalysisSource,
    CrowdPrediction,
    DeploymentPlanResponse,
    EventInput,
    RiskAssessment,
    RiskLevel,
    VenueCapacity,
    VenueCapacityCheckResponse,
)
from .tables import CAPACITY_ALERT_RECOMMENDATION, DEFAULT_TABLES, RiskTables

SECONDS_PER_DAY = 24 * 60 * 60


def start_hour(start_time: str) -> int:
    """Hour component of an HH:MM string."""
    match = TIME_PATTERN.fullmatch(start_time or "")
    if not match:
        raise InvalidInputError(
            f"Malformed start time {start_time!r}, expected HH:MM", field="start_time"
        )
    return int(match.group(1))


def is_weekend(event: EventInput) -> bool:
    return event.date.weekday() >= 5


def days_until_event(event: EventInput, now: datetime) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    event_start = datetime.combine(event.date, time.min, tzinfo=timezone.utc)
    return math.ceil((event_start - now).total_seconds() / SECONDS_PER_DAY)


def validate_event_input(event: EventInput) -> None:
    """Re-check the invariants scoring depends on, for models built without validation."""
    attendance = event.expected_attendance
    if attendance is None or not 0 < attendance <= MAX_EXPECTED_ATTENDANCE:
        raise InvalidInputError(
            f"Expected attendance must be an integer between 1 and {MAX_EXPECTED_ATTENDANCE}",
            field="expected_attendance",
        )
    start_hour(event.start_time)


def _time_multiplier(hour: int) -> float:
    if hour >= 18:
        return 1.2
    if hour >= 15:
        return 1.1
    return 1.0


def calculate_confidence(
    event: EventInput, now: datetime, tables: RiskTables = DEFAULT_TABLES
) -> float:
    confidence = 0.7

    if event.event_type.value in tables.well_known_event_types:
        confidence += 0.1

    if tables.is_known_celebrity(event.celebrity_name):
        confidence += 0.15

    days_until = days_until_event(event, now)
    if days_until > 30:
        confidence -= 0.2
    elif days_until > 14:
        confidence -= 0.1

    return round(max(0.3, min(0.95, confidence)), 2)


def predict(
    event: EventInput, now: datetime, tables: RiskTables = DEFAULT_TABLES
) -> CrowdPrediction:
    """
    Predicts the crowd range for an event.

    Multipliers compound on the expected attendance in a fixed order:
    event type, celebrity, start time, weekend. The result is widened by
    the table's variance on each side.
    """
    validate_event_input(event)

    base = float(event.expected_attendance)
    base *= tables.type_multiplier(event.event_type.value)
    base *= tables.celebrity_multiplier(event.celebrity_name)
    base *= _time_multiplier(start_hour(event.start_time))
    base *= 1.15 if is_weekend(event) else 1.0

    # Rounding before floor keeps 33119.999999 from becoming 33119
    variance = tables.prediction_variance
    predicted_min = math.floor(round(base * (1 - variance), 6))
    predicted_max = math.floor(round(base * (1 + variance), 6))

    return CrowdPrediction(
        min=predicted_min,
        max=predicted_max,
        confidence=calculate_confidence(event, now, tables),
    )


def risk_level_for(score: int, tables: RiskTables = DEFAULT_TABLES) -> RiskLevel:
    if score >= tables.high_risk_threshold:
        return RiskLevel.HIGH
    if score >= tables.medium_risk_threshold:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess(
    prediction: CrowdPrediction,
    event: EventInput,
    venue_capacity: Optional[int] = None,
    tables: RiskTables = DEFAULT_TABLES,
) -> RiskAssessment:
    """
    Scores an event on a 0-100 scale from independent additive bands.

    Factors are recorded in evaluation order. Bands that add nothing are
    silent, except event type and weather which are always listed.
    """
    if venue_capacity is None:
        venue_capacity = tables.default_venue_capacity
    if not 0 < venue_capacity <= MAX_EXPECTED_ATTENDANCE:
        raise InvalidInputError(
            f"Venue capacity must be between 1 and {MAX_EXPECTED_ATTENDANCE}",
            field="venue_capacity",
        )

    score = 0
    factors: List[str] = []

    avg_crowd = prediction.average
    capacity_ratio = avg_crowd / venue_capacity

    if capacity_ratio > 0.9:
        score += 35
        factors.append("Venue approaching maximum capacity")
    elif capacity_ratio > 0.75:
        score += 25
        factors.append("High venue utilization")
    elif capacity_ratio > 0.5:
        score += 15
        factors.append("Moderate venue utilization")

    if avg_crowd > 20000:
        score += 25
        factors.append("Very large crowd expected")
    elif avg_crowd > 10000:
        score += 15
        factors.append("Large crowd expected")
    elif avg_crowd > 5000:
        score += 10
        factors.append("Medium-sized crowd expected")

    event_type = event.event_type.value
    score += tables.type_risk(event_type)
    factors.append(f"{event_type} events carry elevated risk")

    hour = start_hour(event.start_time)
    if hour >= 18:
        score += 15
        factors.append("Evening event increases crowd density risk")
    elif hour >= 15:
        score += 10
        factors.append("Afternoon timing may affect traffic flow")

    if is_weekend(event):
        score += 10
        factors.append("Weekend events typically draw larger crowds")

    # TODO: replace the fixed clear-weather adjustment with a forecast lookup
    score += tables.weather_adjustment
    factors.append("Clear weather conditions expected")

    score = max(0, min(100, score))

    return RiskAssessment(score=score, level=risk_level_for(score, tables), factors=factors)


def recommend(
    assessment: RiskAssessment,
    prediction: CrowdPrediction,
    venue_capacity: int,
    tables: RiskTables = DEFAULT_TABLES,
) -> List[str]:
    """Tier recommendations, most urgent first, then the capacity alert if it applies."""
    recommendations = list(tables.recommendations[assessment.level.value])

    if prediction.average > venue_capacity * tables.capacity_alert_ratio:
        recommendations.append(CAPACITY_ALERT_RECOMMENDATION)

    return recommendations


def traffic_impact_for(score: int) -> RiskLevel:
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def analyze(
    event: EventInput,
    now: datetime,
    venue_capacity: Optional[int] = None,
    tables: RiskTables = DEFAULT_TABLES,
) -> AnalysisResult:
    """Runs prediction, assessment and recommendations as one analysis."""
    if venue_capacity is None:
        venue_capacity = tables.default_venue_capacity

    prediction = predict(event, now, tables)
    assessment = assess(prediction, event, venue_capacity, tables)

    return AnalysisResult(
        prediction=prediction,
        assessment=assessment,
        recommendations=recommend(assessment, prediction, venue_capacity, tables),
        venue_capacity=venue_capacity,
        traffic_impact=traffic_impact_for(assessment.score),
        source=AnalysisSource.DETERMINISTIC,
    )


def check_venue_capacity(
    location: str,
    expected_attendance: int,
    venue: Optional[VenueCapacity],
    default_capacity: int = DEFAULT_TABLES.default_venue_capacity,
) -> VenueCapacityCheckResponse:
    """Utilization of a venue for a given attendance, or an estimate when the venue is unknown."""
    if venue is None:
        return VenueCapacityCheckResponse(
            location=location,
            venue_known=False,
            max_capacity=default_capacity,
            utilization_percentage=round(expected_attendance / default_capacity * 100, 2),
            recommendation="venue_verification_needed",
        )

    utilization = expected_attendance / venue.max_capacity * 100
    if utilization > 90:
        recommendation = "overcrowded"
    elif utilization > 75:
        recommendation = "high_utilization"
    else:
        recommendation = "safe"

    return VenueCapacityCheckResponse(
        location=location,
        venue_known=True,
        venue_name=venue.name,
        max_capacity=venue.max_capacity,
        safe_capacity=venue.safe_capacity,
        utilization_percentage=round(utilization, 2),
        recommendation=recommendation,
    )


_DEPLOYMENT_SCALE = {
    RiskLevel.HIGH: {"officers": 25, "vehicles": 6, "ambulances": 3, "fire_services": 2},
    RiskLevel.MEDIUM: {"officers": 15, "vehicles": 4, "ambulances": 2, "fire_services": 1},
    RiskLevel.LOW: {"officers": 8, "vehicles": 2, "ambulances": 2, "fire_services": 1},
}


_DEPLOYMENT_ROUTES = (
    "Primary access via Brigade Road",
    "Secondary access via MG Road",
    "Emergency evacuation via Ring Road",
)


def plan_deployment(risk_level: RiskLevel) -> DeploymentPlanResponse:
    """Police deployment sized to the risk tier."""
    scale = _DEPLOYMENT_SCALE[risk_level]

    return DeploymentPlanResponse(
        risk_level=risk_level,
        officers_required=scale["officers"],
        vehicles_required=scale["vehicles"],
        checkpoints=[
            DeploymentPlanResponse.Checkpoint(location="Main Entry", officers=4),
            DeploymentPlanResponse.Checkpoint(location="Side Entry", officers=2),
            DeploymentPlanResponse.Checkpoint(location="Emergency Exit", officers=2),
        ],
        emergency_response=DeploymentPlanResponse.EmergencyResponse(
            ambulances=scale["ambulances"],
            fire_services=scale["fire_services"],
        ),
        route_mapping=list(_DEPLOYMENT_ROUTES),
    )
