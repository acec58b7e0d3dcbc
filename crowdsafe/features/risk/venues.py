# crowdsafe/features/risk/venues.py
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from crowdsafe.core.config import settings
from crowdsafe.db import crud

from .schemas import VenueCapacity


def lookup_venue(db: Session, location: str) -> Optional[VenueCapacity]:
    """Known venue at exactly this location, if any."""
    venue = crud.get_venue_by_location(db, location.strip()) if location else None
    if venue is None:
        return None
    return VenueCapacity(
        max_capacity=venue.max_capacity,
        safe_capacity=venue.safe_capacity,
        name=venue.name,
    )


def resolve_venue_capacity(db: Session, location: str) -> Tuple[int, Optional[VenueCapacity]]:
    """Known venue capacity for a location, or the configured default."""
    venue = lookup_venue(db, location)
    if venue is None:
        return settings.DEFAULT_VENUE_CAPACITY, None
    return venue.max_capacity, venue
