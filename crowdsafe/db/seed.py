# crowdsafe/db/seed.py
import logging

from sqlalchemy.orm import Session

from . import crud

logger = logging.getLogger(__name__)


def get_seed_venues() -> list[dict]:
    """Known venues and their capacities for the capacity lookup."""
    return [
        {
            "name": "Brigade Road Event Ground",
            "location": "Brigade Road, Bengaluru",
            "max_capacity": 15000,
            "safe_capacity": 12000,
            "venue_type": "outdoor",
            "facilities": ["parking", "medical_station", "security_booth", "restrooms"],
        },
        {
            "name": "MG Road Stadium",
            "location": "MG Road, Bengaluru",
            "max_capacity": 25000,
            "safe_capacity": 20000,
            "venue_type": "stadium",
            "facilities": ["parking", "medical_station", "security_booth", "restrooms", "food_court"],
        },
        {
            "name": "Chinnaswamy Stadium",
            "location": "Cubbon Park, Bengaluru",
            "max_capacity": 40000,
            "safe_capacity": 35000,
            "venue_type": "stadium",
            "facilities": [
                "parking",
                "medical_station",
                "security_booth",
                "restrooms",
                "food_court",
                "vip_lounge",
            ],
        },
        {
            "name": "Palace Grounds",
            "location": "Palace Grounds, Bengaluru",
            "max_capacity": 50000,
            "safe_capacity": 40000,
            "venue_type": "fairground",
            "facilities": ["parking", "medical_station", "security_booth", "restrooms", "multiple_stages"],
        },
        {
            "name": "Koramangala Community Hall",
            "location": "Koramangala, Bengaluru",
            "max_capacity": 2000,
            "safe_capacity": 1500,
            "venue_type": "indoor",
            "facilities": ["parking", "medical_station", "restrooms", "air_conditioning"],
        },
    ]


def seed_venues(db: Session) -> int:
    """Adds any seed venue whose location is not yet known. Returns how many were created."""
    created = 0
    for venue in get_seed_venues():
        if crud.get_venue_by_location(db, venue["location"]):
            continue
        crud.create_venue(db, venue_data=venue)
        logger.info(f"Created venue: {venue['name']}")
        created += 1
    return created
