# crowdsafe/features/risk/schemas.py
import re
import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"([01]?\d|2[0-3]):([0-5]\d)")

# Upper bound for attendance and capacity figures, far above any real venue
MAX_EXPECTED_ATTENDANCE = 10_000_000


class EventType(str, Enum):
    CONCERT = "concert"
    MOVIE = "movie"
    POLITICAL = "political"
    SPORTS = "sports"
    CULTURAL = "cultural"
    OTHER = "other"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisSource(str, Enum):
    DETERMINISTIC = "deterministic"
    LLM = "llm"


class EventInput(BaseModel):
    """Event attributes the risk engine scores. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    expected_attendance: int = Field(..., gt=0, le=MAX_EXPECTED_ATTENDANCE)
    date: datetime.date
    start_time: str = Field(..., description="Local start time, HH:MM")
    end_time: Optional[str] = None
    celebrity_name: str = ""
    location: str = ""
    special_requirements: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time_format(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not TIME_PATTERN.fullmatch(value):
            raise ValueError("time must be formatted as HH:MM")
        return value


class VenueCapacity(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_capacity: int = Field(..., gt=0, le=MAX_EXPECTED_ATTENDANCE)
    safe_capacity: Optional[int] = None
    name: Optional[str] = None


class CrowdPrediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0.30, le=0.95)

    @model_validator(mode="after")
    def check_range(self) -> "CrowdPrediction":
        if self.min > self.max:
            raise ValueError("predicted minimum exceeds predicted maximum")
        return self

    @property
    def average(self) -> float:
        return (self.min + self.max) / 2


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    factors: List[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Output shape shared by every analysis strategy."""

    prediction: CrowdPrediction
    assessment: RiskAssessment
    recommendations: List[str]
    venue_capacity: int
    traffic_impact: RiskLevel
    source: AnalysisSource = AnalysisSource.DETERMINISTIC


# --- Request / response bodies ---


class AnalysisRequest(BaseModel):
    event: EventInput
    venue_capacity: Optional[int] = Field(default=None, gt=0, le=MAX_EXPECTED_ATTENDANCE)


class VenueCapacityCheckRequest(BaseModel):
    location: str
    expected_attendance: int = Field(..., gt=0, le=MAX_EXPECTED_ATTENDANCE)


class VenueCapacityCheckResponse(BaseModel):
    location: str
    venue_known: bool
    venue_name: Optional[str] = None
    max_capacity: int
    safe_capacity: Optional[int] = None
    utilization_percentage: float
    recommendation: str  # overcrowded, high_utilization, safe, venue_verification_needed


class DeploymentPlanRequest(BaseModel):
    risk_level: RiskLevel


class DeploymentPlanResponse(BaseModel):
    class Checkpoint(BaseModel):
        location: str
        officers: int

    class EmergencyResponse(BaseModel):
        ambulances: int
        fire_services: int

    risk_level: RiskLevel
    officers_required: int
    vehicles_required: int
    checkpoints: List[Checkpoint]
    emergency_response: EmergencyResponse
    route_mapping: List[str]
