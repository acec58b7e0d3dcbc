# crowdsafe/features/lifecycle/router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crowdsafe.api import deps

from . import service
from .schemas import (
    EventCreate,
    EventWithAnalysis,
    PublicEvent,
    RejectRequest,
    StatusSummary,
    TokenPayload,
)

router = APIRouter()


@router.post(
    "/events",
    response_model=EventWithAnalysis,
    status_code=status.HTTP_201_CREATED,
    tags=["Event Lifecycle"],
)
async def submit_event(
    *,
    db: Session = Depends(deps.get_db),
    event_in: EventCreate,
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Submit an event for approval.

    The event is analyzed on submission and stored as `pending` with its
    risk analysis attached.
    """
    return await service.submit_event(db, organizer=current_user, event_in=event_in)


@router.get("/events/public", response_model=List[PublicEvent], tags=["Event Lifecycle"])
def list_public_events(db: Session = Depends(deps.get_db)):
    """Approved events, visible to anyone."""
    return service.list_public_events(db)


@router.get("/events/mine", response_model=List[EventWithAnalysis], tags=["Event Lifecycle"])
def list_my_events(
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.list_events_for_organizer(db, current_user)


@router.get("/events/pending", response_model=List[EventWithAnalysis], tags=["Event Lifecycle"])
def list_pending_events(
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """The approval queue. Approvers only."""
    return service.list_pending_events(db, current_user)


@router.get("/events/summary", response_model=StatusSummary, tags=["Event Lifecycle"])
def get_status_summary(
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.summarize(db, current_user)


@router.get("/events/{event_id}", response_model=EventWithAnalysis, tags=["Event Lifecycle"])
def get_event(
    event_id: str,
    db: Session = Depends(deps.get_db),
    current_user: Optional[TokenPayload] = Depends(deps.get_current_user_optional),
):
    return service.get_event_for_viewer(db, event_id, current_user)


@router.patch(
    "/events/{event_id}/approve",
    response_model=EventWithAnalysis,
    tags=["Event Lifecycle"],
)
def approve_event(
    event_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.approve_event(db, event_id=event_id, approver=current_user)


@router.patch(
    "/events/{event_id}/reject",
    response_model=EventWithAnalysis,
    tags=["Event Lifecycle"],
)
def reject_event(
    event_id: str,
    body: RejectRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Reject a pending event. A non-blank reason is required."""
    return service.reject_event(
        db, event_id=event_id, approver=current_user, reason=body.reason
    )
