# crowdsafe/features/lifecycle/service.py
"""
Event submission and the approve/reject workflow.

The state machine decides whether a transition is legal; the write itself
goes through crud.transition_status so that two racing approvers cannot
both succeed.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from crowdsafe.core.audit import AuditAction, audit_logger
from crowdsafe.core.exceptions import (
    CrowdSafeError,
    EventNotFoundError,
    InvalidStateTransitionError,
)
from crowdsafe.db import crud, models
from crowdsafe.features.risk.schemas import AnalysisResult
from crowdsafe.features.risk.strategies import (
    AnalysisStrategy,
    analyze_with_fallback,
    get_analysis_strategy,
)
from crowdsafe.features.risk.venues import resolve_venue_capacity

from . import state_machine
from .schemas import (
    EventCreate,
    EventStatus,
    LifecycleAction,
    LifecycleState,
    StatusSummary,
    TokenPayload,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _analysis_row(result: AnalysisResult) -> dict:
    return {
        "predicted_crowd_min": result.prediction.min,
        "predicted_crowd_max": result.prediction.max,
        "confidence": result.prediction.confidence,
        "risk_score": result.assessment.score,
        "risk_level": result.assessment.level.value,
        "risk_factors": list(result.assessment.factors),
        "recommendations": list(result.recommendations),
        "venue_capacity": result.venue_capacity,
        "traffic_impact": result.traffic_impact.value,
        "source": result.source.value,
    }


async def submit_event(
    db: Session,
    *,
    organizer: TokenPayload,
    event_in: EventCreate,
    strategy: Optional[AnalysisStrategy] = None,
    now: Optional[datetime] = None,
) -> models.Event:
    """
    Analyze and store a new event in `pending`.

    The analysis falls back to the deterministic engine on any strategy
    failure, so a submission only fails on bad input or storage errors.
    """
    now = now or _utcnow()
    event = event_in.to_event_input()
    venue_capacity, _ = resolve_venue_capacity(db, event.location)

    result = await analyze_with_fallback(
        event,
        venue_capacity,
        now,
        strategy=strategy if strategy is not None else get_analysis_strategy(),
    )

    db_event = crud.create_event(
        db,
        organizer_id=organizer.sub,
        event_data={**event_in.model_dump(), "event_type": event_in.event_type.value},
        analysis_data=_analysis_row(result),
    )
    logger.info(
        f"Event {db_event.id} submitted by {organizer.sub}: "
        f"risk={result.assessment.level.value} ({result.source.value})"
    )
    audit_logger.log_event_submitted(
        organizer.sub, db_event.id, result.assessment.level.value, result.source.value
    )
    return db_event


def get_event_for_viewer(
    db: Session, event_id: str, viewer: Optional[TokenPayload]
) -> models.Event:
    """Events the viewer may not see are reported as not found."""
    db_event = crud.get_event(db, event_id)
    if db_event is None or not state_machine.is_visible_to(
        db_event.status, db_event.organizer_id, viewer
    ):
        raise EventNotFoundError(event_id)
    return db_event


def _apply_transition(
    db: Session,
    *,
    event_id: str,
    principal: TokenPayload,
    action: LifecycleAction,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Event:
    try:
        state_machine.require_approver(principal, action)
        if action == LifecycleAction.REJECT:
            reason = state_machine.validate_rejection_reason(reason, event_id)

        db_event = crud.get_event(db, event_id)
        if db_event is None:
            raise EventNotFoundError(event_id)

        current = LifecycleState.model_validate(db_event)
        if action == LifecycleAction.APPROVE:
            target = state_machine.approve(
                current, principal, now or _utcnow(), event_id=event_id
            )
        else:
            target = state_machine.reject(current, reason, principal, event_id=event_id)

        changed = crud.transition_status(
            db,
            event_id=event_id,
            from_status=current.status.value,
            to_status=target.status.value,
            approved_by=target.approved_by,
            approved_at=target.approved_at,
            rejection_reason=target.rejection_reason,
        )
        if not changed:
            # Someone else moved the event after we read it
            db.expire_all()
            latest = crud.get_event(db, event_id)
            raise InvalidStateTransitionError(
                current_status=latest.status if latest else "unknown",
                action=action.value,
                event_id=event_id,
            )
    except CrowdSafeError as e:
        logger.warning(f"{action.value} of {event_id} by {principal.sub} denied: {e.message}")
        audit_logger.log_transition_denied(principal.sub, event_id, action.value, e.error_code)
        raise

    db.expire_all()
    db_event = crud.get_event(db, event_id)
    audit_action = (
        AuditAction.EVENT_APPROVED
        if action == LifecycleAction.APPROVE
        else AuditAction.EVENT_REJECTED
    )
    audit_logger.log_transition(audit_action, principal.sub, event_id, reason=reason)
    logger.info(f"Event {event_id} {target.status.value} by {principal.sub}")
    return db_event


def approve_event(
    db: Session,
    *,
    event_id: str,
    approver: TokenPayload,
    now: Optional[datetime] = None,
) -> models.Event:
    return _apply_transition(
        db, event_id=event_id, principal=approver, action=LifecycleAction.APPROVE, now=now
    )


def reject_event(
    db: Session, *, event_id: str, approver: TokenPayload, reason: Optional[str]
) -> models.Event:
    return _apply_transition(
        db,
        event_id=event_id,
        principal=approver,
        action=LifecycleAction.REJECT,
        reason=reason,
    )


def list_public_events(db: Session) -> List[models.Event]:
    return crud.list_events_by_status(db, EventStatus.APPROVED.value)


def list_events_for_organizer(db: Session, organizer: TokenPayload) -> List[models.Event]:
    return crud.list_events_by_organizer(db, organizer.sub)


def list_pending_events(db: Session, viewer: TokenPayload) -> List[models.Event]:
    """The approval queue."""
    state_machine.require_approver(viewer, LifecycleAction.APPROVE)
    return crud.list_events_by_status(db, EventStatus.PENDING.value)


def summarize(db: Session, viewer: TokenPayload) -> StatusSummary:
    state_machine.require_approver(viewer, LifecycleAction.APPROVE)
    counts = crud.count_events_by_status(db)
    by_status = {status: counts.get(status.value, 0) for status in EventStatus}
    return StatusSummary(total_events=sum(by_status.values()), counts=by_status)
