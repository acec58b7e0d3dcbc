# crowdsafe/db/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from crowdsafe.db.base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}")
    title = Column(String, nullable=False)
    event_type = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=True)
    location = Column(Text, nullable=False)
    expected_attendance = Column(Integer, nullable=False)
    celebrity_name = Column(String, nullable=False, default="")
    special_requirements = Column(Text, nullable=True)
    organizer_id = Column(String, nullable=False, index=True)

    # pending, approved, rejected
    status = Column(String, nullable=False, default="pending", index=True)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    risk_analysis = relationship(
        "RiskAnalysis", back_populates="event", uselist=False, cascade="all, delete-orphan"
    )


class RiskAnalysis(Base):
    __tablename__ = "risk_analyses"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String, ForeignKey("events.id"), nullable=False, unique=True)
    predicted_crowd_min = Column(Integer, nullable=False)
    predicted_crowd_max = Column(Integer, nullable=False)
    confidence = Column(Float, nullable=False)
    risk_score = Column(Integer, nullable=False)
    risk_level = Column(String, nullable=False)
    risk_factors = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)
    venue_capacity = Column(Integer, nullable=False)
    traffic_impact = Column(String, nullable=False)
    source = Column(String, nullable=False)  # deterministic, llm
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    event = relationship("Event", back_populates="risk_analysis")


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    location = Column(Text, nullable=False, index=True)
    max_capacity = Column(Integer, nullable=False)
    safe_capacity = Column(Integer, nullable=False)
    venue_type = Column(String, nullable=False)
    facilities = Column(JSON, nullable=True)
