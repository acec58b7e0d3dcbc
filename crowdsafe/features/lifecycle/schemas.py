# crowdsafe/features/lifecycle/schemas.py
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crowdsafe.features.risk.schemas import EventInput, EventType, RiskLevel


class EventStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LifecycleAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Role(str, Enum):
    PUBLIC = "public"
    ORGANIZER = "organizer"
    POLICE = "police"


class TokenPayload(BaseModel):
    sub: str  # user id
    role: str = Role.PUBLIC.value
    exp: Optional[int] = None

    model_config = {"from_attributes": True}


class LifecycleState(BaseModel):
    """The part of an event the state machine owns."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    status: EventStatus = EventStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class EventCreate(EventInput):
    title: str = Field(..., min_length=1, max_length=200)

    def to_event_input(self) -> EventInput:
        return EventInput(**self.model_dump(exclude={"title"}))


class RejectRequest(BaseModel):
    # Blank reasons are turned into MissingReasonError by the service
    reason: Optional[str] = None


class RiskAnalysisRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    predicted_crowd_min: int
    predicted_crowd_max: int
    confidence: float
    risk_score: int
    risk_level: RiskLevel
    risk_factors: List[str]
    recommendations: List[str]
    venue_capacity: int
    traffic_impact: RiskLevel
    source: str


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    event_type: EventType
    date: date
    start_time: str
    end_time: Optional[str] = None
    location: str
    expected_attendance: int
    celebrity_name: str
    organizer_id: str
    status: EventStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class EventWithAnalysis(EventRead):
    special_requirements: Optional[str] = None
    risk_analysis: Optional[RiskAnalysisRead] = None


class PublicEvent(BaseModel):
    """What anyone can see about an approved event."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    event_type: EventType
    date: date
    start_time: str
    end_time: Optional[str] = None
    location: str


class StatusSummary(BaseModel):
    total_events: int
    counts: Dict[EventStatus, int]
