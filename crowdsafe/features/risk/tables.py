# crowdsafe/features/risk/tables.py
"""
Lookup data for the deterministic risk engine.

Tables are frozen and passed into the scoring functions, so tests and
regional deployments can swap in their own values without touching globals.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .schemas import EventType, RiskLevel


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class RiskTables:
    event_type_multipliers: Mapping[str, float]
    event_type_risk: Mapping[str, int]
    celebrity_impact: Mapping[str, float]
    recommendations: Mapping[str, Tuple[str, ...]]

    default_multiplier: float = 1.0
    default_type_risk: int = 10
    default_venue_capacity: int = 10000

    # Thresholds are inclusive lower bounds: score >= high -> HIGH
    high_risk_threshold: int = 70
    medium_risk_threshold: int = 40
    capacity_alert_ratio: float = 0.9
    weather_adjustment: int = -5
    prediction_variance: float = 0.2

    well_known_event_types: frozenset = field(
        default_factory=lambda: frozenset(
            {EventType.CONCERT.value, EventType.SPORTS.value, EventType.POLITICAL.value}
        )
    )

    def type_multiplier(self, event_type: str) -> float:
        return self.event_type_multipliers.get(event_type, self.default_multiplier)

    def type_risk(self, event_type: str) -> int:
        return self.event_type_risk.get(event_type, self.default_type_risk)

    def celebrity_multiplier(self, celebrity_name: str) -> float:
        return self.celebrity_impact.get(
            celebrity_name.strip().lower(), self.default_multiplier
        )

    def is_known_celebrity(self, celebrity_name: str) -> bool:
        return celebrity_name.strip().lower() in self.celebrity_impact


CAPACITY_ALERT_RECOMMENDATION = (
    "Venue approaching maximum capacity - implement strict entry controls"
)

DEFAULT_TABLES = RiskTables(
    event_type_multipliers=_frozen(
        {
            EventType.CONCERT.value: 1.3,
            EventType.MOVIE.value: 1.1,
            EventType.POLITICAL.value: 1.5,
            EventType.SPORTS.value: 1.2,
            EventType.CULTURAL.value: 1.0,
            EventType.OTHER.value: 1.0,
        }
    ),
    event_type_risk=_frozen(
        {
            EventType.CONCERT.value: 20,
            EventType.POLITICAL.value: 25,
            EventType.SPORTS.value: 15,
            EventType.MOVIE.value: 10,
            EventType.CULTURAL.value: 5,
            EventType.OTHER.value: 10,
        }
    ),
    # Seed list only; unknown names score as ordinary events.
    celebrity_impact=_frozen(
        {
            "rajinikanth": 2.0,
            "virat": 1.8,
            "cm of karnataka": 1.9,
        }
    ),
    recommendations=_frozen(
        {
            RiskLevel.HIGH.value: (
                "Deploy additional 25+ officers for crowd control",
                "Set up 3+ emergency medical stations",
                "Implement traffic diversions on major routes",
                "Consider limiting entry after 85% capacity",
                "Deploy emergency response teams on standby",
                "Coordinate with nearby hospitals for emergency preparedness",
            ),
            RiskLevel.MEDIUM.value: (
                "Deploy additional 15+ officers for crowd control",
                "Set up 2 emergency medical stations",
                "Monitor traffic flow and prepare diversions if needed",
                "Consider limiting entry after 90% capacity",
                "Establish clear evacuation routes",
            ),
            RiskLevel.LOW.value: (
                "Deploy standard security personnel",
                "Set up 1 emergency medical station",
                "Monitor crowd density regularly",
                "Ensure clear emergency exit signage",
            ),
        }
    ),
)
