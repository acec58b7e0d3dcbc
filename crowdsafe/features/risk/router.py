# crowdsafe/features/risk/router.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crowdsafe.api import deps
from crowdsafe.core.config import settings
from crowdsafe.features.lifecycle.schemas import TokenPayload

from . import service
from .schemas import (
    AnalysisRequest,
    AnalysisResult,
    DeploymentPlanRequest,
    DeploymentPlanResponse,
    VenueCapacityCheckRequest,
    VenueCapacityCheckResponse,
)
from .strategies import analyze_with_fallback, get_analysis_strategy
from .venues import lookup_venue, resolve_venue_capacity

router = APIRouter()


@router.post(
    "/risk/analysis",
    response_model=AnalysisResult,
    tags=["Crowd Risk Analysis"],
)
async def get_risk_analysis(request: AnalysisRequest, db: Session = Depends(deps.get_db)):
    """
    Predicts crowd size and risk for an event without storing it.

    When no venue capacity is given, the capacity of the known venue at the
    event's location is used.
    """
    venue_capacity = request.venue_capacity
    if venue_capacity is None:
        venue_capacity, _ = resolve_venue_capacity(db, request.event.location)
    return await analyze_with_fallback(
        request.event,
        venue_capacity,
        datetime.now(timezone.utc),
        strategy=get_analysis_strategy(),
    )


@router.post(
    "/risk/venue-capacity-check",
    response_model=VenueCapacityCheckResponse,
    tags=["Crowd Risk Analysis"],
)
def check_venue_capacity(request: VenueCapacityCheckRequest, db: Session = Depends(deps.get_db)):
    """Utilization of the venue at a location for the expected attendance."""
    return service.check_venue_capacity(
        request.location,
        request.expected_attendance,
        lookup_venue(db, request.location),
        default_capacity=settings.DEFAULT_VENUE_CAPACITY,
    )


@router.post(
    "/risk/deployment-plan",
    response_model=DeploymentPlanResponse,
    tags=["Crowd Risk Analysis"],
)
def get_deployment_plan(
    request: DeploymentPlanRequest,
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Police deployment sized to a risk level. Requires an authenticated caller."""
    return service.plan_deployment(request.risk_level)
