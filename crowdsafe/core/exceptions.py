# crowdsafe/core/exceptions.py
"""
Custom exception hierarchy for the CrowdSafe risk service.
All exceptions inherit from CrowdSafeError for consistent handling.
"""

from typing import Optional


class CrowdSafeError(Exception):
    """Base exception for all CrowdSafe service errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "CROWDSAFE_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ===========================================
# Input Exceptions
# ===========================================


class InvalidInputError(CrowdSafeError):
    """Event attributes that the risk engine cannot score."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(
            message=message,
            error_code="INVALID_INPUT",
            details={"field": field} if field else {},
        )


class MissingReasonError(CrowdSafeError):
    """An event was rejected without a usable reason."""

    def __init__(self, event_id: Optional[str] = None):
        self.event_id = event_id
        super().__init__(
            message="A rejection reason is required",
            error_code="MISSING_REASON",
            details={"event_id": event_id} if event_id else {},
        )


# ===========================================
# Lifecycle Exceptions
# ===========================================


class LifecycleError(CrowdSafeError):
    """Base exception for event lifecycle errors."""

    def __init__(self, message: str, event_id: Optional[str] = None, **kwargs):
        self.event_id = event_id
        super().__init__(message, error_code="LIFECYCLE_ERROR", **kwargs)


class InvalidStateTransitionError(LifecycleError):
    """A transition was attempted from a state that does not allow it."""

    def __init__(self, current_status: str, action: str, event_id: Optional[str] = None):
        self.current_status = current_status
        self.action = action
        super().__init__(
            message=f"Cannot {action} an event that is {current_status}",
            event_id=event_id,
            details={
                "event_id": event_id,
                "current_status": current_status,
                "action": action,
            },
        )
        self.error_code = "INVALID_STATE_TRANSITION"


class EventNotFoundError(LifecycleError):
    """No event with the given id."""

    def __init__(self, event_id: str):
        super().__init__(
            message=f"Event {event_id} not found",
            event_id=event_id,
            details={"event_id": event_id},
        )
        self.error_code = "EVENT_NOT_FOUND"


class NotAuthorizedError(CrowdSafeError):
    """Caller's role does not permit the operation."""

    def __init__(self, user_id: Optional[str], action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(
            message=f"User {user_id} is not allowed to {action}",
            error_code="NOT_AUTHORIZED",
            details={"user_id": user_id, "action": action},
        )


# ===========================================
# Circuit Breaker Exceptions
# ===========================================


class CircuitBreakerOpenError(CrowdSafeError):
    """Circuit breaker is open - service unavailable."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(
            message=f"Circuit breaker open for {service_name}. Service temporarily unavailable.",
            error_code="CIRCUIT_BREAKER_OPEN",
            details={"service": service_name},
        )


# ===========================================
# External API Exceptions
# ===========================================


class ExternalAPIError(CrowdSafeError):
    """Error from external API call."""

    def __init__(
        self,
        service_name: str,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.service_name = service_name
        self.status_code = status_code
        super().__init__(
            message=message or f"External API error from {service_name}",
            error_code="EXTERNAL_API_ERROR",
            details={
                "service": service_name,
                "status_code": status_code,
            },
        )


class AnthropicAPIError(ExternalAPIError):
    """Error from Anthropic API."""

    def __init__(self, status_code: Optional[int] = None, message: Optional[str] = None):
        super().__init__(
            service_name="anthropic",
            status_code=status_code,
            message=message or "Anthropic API error",
        )
        self.error_code = "ANTHROPIC_API_ERROR"


class MalformedAnalysisError(ExternalAPIError):
    """LLM returned something that is not a usable analysis."""

    def __init__(self, message: str):
        super().__init__(service_name="anthropic", message=message)
        self.error_code = "MALFORMED_ANALYSIS"
