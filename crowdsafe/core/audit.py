# crowdsafe/core/audit.py
"""
Structured audit logging for event approval decisions.

Every submission and every approve/reject attempt, successful or not, is
written as one JSON line on the "audit" logger.
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger("audit")


class AuditAction(str, Enum):
    """Audit action types."""

    EVENT_SUBMITTED = "event.submitted"
    EVENT_APPROVED = "event.approved"
    EVENT_REJECTED = "event.rejected"
    TRANSITION_DENIED = "event.transition_denied"

    ANALYSIS_FALLBACK = "analysis.fallback"


class AuditLogger:
    """Writes audit entries in JSON so they can be shipped as-is."""

    def __init__(self, service_name: str = "crowdsafe-risk-service"):
        self.service_name = service_name

    def log(
        self,
        action: AuditAction,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = "event",
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
        error: Optional[str] = None,
    ) -> None:
        audit_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "action": action.value,
            "user_id": user_id,
            "resource_id": resource_id,
            "resource_type": resource_type,
            "success": success,
            "error": error,
            "details": details or {},
        }
        logger.info(json.dumps(audit_entry, default=str))

    def log_event_submitted(
        self, organizer_id: str, event_id: str, risk_level: str, source: str
    ) -> None:
        self.log(
            action=AuditAction.EVENT_SUBMITTED,
            user_id=organizer_id,
            resource_id=event_id,
            details={"risk_level": risk_level, "analysis_source": source},
        )

    def log_transition(
        self,
        action: AuditAction,
        user_id: str,
        event_id: str,
        reason: Optional[str] = None,
    ) -> None:
        self.log(
            action=action,
            user_id=user_id,
            resource_id=event_id,
            details={"reason": reason} if reason else None,
        )

    def log_transition_denied(
        self, user_id: Optional[str], event_id: str, attempted: str, error: str
    ) -> None:
        self.log(
            action=AuditAction.TRANSITION_DENIED,
            user_id=user_id,
            resource_id=event_id,
            success=False,
            error=error,
            details={"attempted": attempted},
        )

    def log_analysis_fallback(self, strategy: str, error: str) -> None:
        self.log(
            action=AuditAction.ANALYSIS_FALLBACK,
            resource_type="analysis",
            success=False,
            error=error,
            details={"strategy": strategy},
        )


# Global audit logger instance
audit_logger = AuditLogger()
