# crowdsafe/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from crowdsafe.api.errors import crowdsafe_error_handler
from crowdsafe.core.circuit_breaker import get_all_breaker_stats
from crowdsafe.core.config import settings
from crowdsafe.core.exceptions import CrowdSafeError
from crowdsafe.db import models  # noqa: F401  registers tables on Base.metadata
from crowdsafe.db import seed
from crowdsafe.db.base_class import Base
from crowdsafe.db.session import SessionLocal, engine
from crowdsafe.features import api

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CrowdSafe risk service...")
    Base.metadata.create_all(bind=engine)

    if settings.SEED_VENUES:
        db = SessionLocal()
        try:
            created = seed.seed_venues(db)
            logger.info(f"Venue seeding complete: {created} new venues")
        finally:
            db.close()

    analysis = "llm with deterministic fallback" if settings.llm_enabled else "deterministic"
    logger.info(f"Risk analysis mode: {analysis}")
    yield
    logger.info("Shutting down CrowdSafe risk service...")


app = FastAPI(title="CrowdSafe Risk Service", version="1.0.0", lifespan=lifespan)

app.add_exception_handler(CrowdSafeError, crowdsafe_error_handler)

app.include_router(api.api_router, prefix="/crowdsafe")


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "llm_analysis": settings.llm_enabled,
        "circuit_breakers": get_all_breaker_stats(),
    }
