# crowdsafe/db/crud.py
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from . import models


def create_event(
    db: Session, *, organizer_id: str, event_data: dict, analysis_data: dict
) -> models.Event:
    """Stores a new pending event together with its one risk analysis."""
    db_obj = models.Event(**event_data, organizer_id=organizer_id, status="pending")
    db_obj.risk_analysis = models.RiskAnalysis(**analysis_data)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_event(db: Session, event_id: str) -> Optional[models.Event]:
    return (
        db.query(models.Event)
        .options(joinedload(models.Event.risk_analysis))
        .filter(models.Event.id == event_id)
        .first()
    )


def list_events_by_status(db: Session, status: str) -> List[models.Event]:
    return (
        db.query(models.Event)
        .options(joinedload(models.Event.risk_analysis))
        .filter(models.Event.status == status)
        .order_by(models.Event.date, models.Event.start_time)
        .all()
    )


def list_events_by_organizer(db: Session, organizer_id: str) -> List[models.Event]:
    return (
        db.query(models.Event)
        .options(joinedload(models.Event.risk_analysis))
        .filter(models.Event.organizer_id == organizer_id)
        .order_by(models.Event.created_at.desc())
        .all()
    )


def count_events_by_status(db: Session) -> Dict[str, int]:
    rows = (
        db.query(models.Event.status, func.count(models.Event.id))
        .group_by(models.Event.status)
        .all()
    )
    return {status: count for status, count in rows}


def transition_status(
    db: Session, *, event_id: str, from_status: str, to_status: str, **changes
) -> bool:
    """
    Compare-and-set on the status column.

    The UPDATE only matches while the row still holds `from_status`, so of two
    concurrent transitions exactly one sees an affected row. Returns False for
    the loser.
    """
    result = db.execute(
        update(models.Event)
        .where(models.Event.id == event_id, models.Event.status == from_status)
        .values(status=to_status, updated_at=datetime.now(timezone.utc), **changes)
    )
    db.commit()
    return result.rowcount == 1


def get_venue_by_location(db: Session, location: str) -> Optional[models.Venue]:
    return db.query(models.Venue).filter(models.Venue.location == location).first()


def create_venue(db: Session, *, venue_data: dict) -> models.Venue:
    db_obj = models.Venue(**venue_data)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj
