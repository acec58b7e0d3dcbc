# crowdsafe/features/lifecycle/state_machine.py
"""
Event lifecycle: pending -> approved | rejected.

`pending` is the only state with outgoing transitions. The functions here
decide what a transition produces; persisting it atomically is the storage
layer's job (see crud.transition_status).
"""

from datetime import datetime
from typing import Iterable, Optional

from crowdsafe.core.config import settings
from crowdsafe.core.exceptions import (
    InvalidStateTransitionError,
    MissingReasonError,
    NotAuthorizedError,
)

from .schemas import EventStatus, LifecycleAction, LifecycleState, TokenPayload

TERMINAL_STATUSES = {EventStatus.APPROVED, EventStatus.REJECTED}

VALID_TRANSITIONS = {
    EventStatus.PENDING: {
        LifecycleAction.APPROVE: EventStatus.APPROVED,
        LifecycleAction.REJECT: EventStatus.REJECTED,
    },
    # Terminal states have no outgoing transitions
}


def can_transition(status: EventStatus | str, action: LifecycleAction | str) -> bool:
    """Route/UI guard: whether `action` is allowed from `status`."""
    try:
        status = EventStatus(status)
        action = LifecycleAction(action)
    except ValueError:
        return False
    return action in VALID_TRANSITIONS.get(status, {})


def next_status(
    status: EventStatus | str, action: LifecycleAction, event_id: Optional[str] = None
) -> EventStatus:
    if not can_transition(status, action):
        raise InvalidStateTransitionError(
            current_status=EventStatus(status).value,
            action=action.value,
            event_id=event_id,
        )
    return VALID_TRANSITIONS[EventStatus(status)][action]


def is_approver(
    principal: Optional[TokenPayload], approver_roles: Optional[Iterable[str]] = None
) -> bool:
    if principal is None:
        return False
    roles = set(approver_roles) if approver_roles is not None else settings.approver_roles
    return principal.role.lower() in roles


def require_approver(
    principal: Optional[TokenPayload],
    action: LifecycleAction,
    approver_roles: Optional[Iterable[str]] = None,
) -> None:
    if not is_approver(principal, approver_roles):
        raise NotAuthorizedError(
            user_id=principal.sub if principal else None,
            action=f"{action.value} events",
        )


def validate_rejection_reason(reason: Optional[str], event_id: Optional[str] = None) -> str:
    """Boundary check run before reject(); returns the trimmed reason."""
    if reason is None or not reason.strip():
        raise MissingReasonError(event_id=event_id)
    return reason.strip()


def approve(
    state: LifecycleState,
    approver: TokenPayload,
    now: datetime,
    event_id: Optional[str] = None,
) -> LifecycleState:
    require_approver(approver, LifecycleAction.APPROVE)
    status = next_status(state.status, LifecycleAction.APPROVE, event_id)
    return state.model_copy(
        update={"status": status, "approved_by": approver.sub, "approved_at": now}
    )


def reject(
    state: LifecycleState,
    reason: str,
    approver: TokenPayload,
    event_id: Optional[str] = None,
) -> LifecycleState:
    """`reason` must already have passed validate_rejection_reason."""
    require_approver(approver, LifecycleAction.REJECT)
    status = next_status(state.status, LifecycleAction.REJECT, event_id)
    return state.model_copy(update={"status": status, "rejection_reason": reason})


def is_visible_to(
    status: EventStatus | str,
    organizer_id: str,
    viewer: Optional[TokenPayload],
    approver_roles: Optional[Iterable[str]] = None,
) -> bool:
    """
    Read policy coupled to state.

    Approved events are public. Pending and rejected events are visible only
    to their organizer and to approvers.
    """
    if EventStatus(status) == EventStatus.APPROVED:
        return True
    if viewer is None:
        return False
    return viewer.sub == organizer_id or is_approver(viewer, approver_roles)
