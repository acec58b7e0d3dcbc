# crowdsafe/api/errors.py
"""
Maps the CrowdSafeError hierarchy onto HTTP responses.

Every domain error leaves the service as
{"error": {"code", "message", "timestamp", "path", "details"}}.
"""

import logging
from datetime import datetime, timezone

from fastapi import Request, status
from fastapi.responses import JSONResponse

from crowdsafe.core.exceptions import (
    CircuitBreakerOpenError,
    CrowdSafeError,
    EventNotFoundError,
    ExternalAPIError,
    InvalidInputError,
    InvalidStateTransitionError,
    MissingReasonError,
    NotAuthorizedError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses must come before their bases
STATUS_CODES = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (MissingReasonError, status.HTTP_400_BAD_REQUEST),
    (NotAuthorizedError, status.HTTP_403_FORBIDDEN),
    (EventNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (CircuitBreakerOpenError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ExternalAPIError, status.HTTP_502_BAD_GATEWAY),
)


def status_code_for(error: CrowdSafeError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def crowdsafe_error_handler(request: Request, exc: CrowdSafeError) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": exc.error_code,
                "message": exc.message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "details": exc.details,
            }
        },
    )
