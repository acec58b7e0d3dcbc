import os

# Settings are read at import time, so the test environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_VENUES"] = "true"
os.environ["LLM_ANALYSIS_ENABLED"] = "false"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from crowdsafe.core.config import settings
from crowdsafe.db import models  # noqa: F401
from crowdsafe.db.base_class import Base
from crowdsafe.db.session import SessionLocal, engine
from crowdsafe.features.lifecycle.schemas import TokenPayload
from crowdsafe.main import app


@pytest.fixture
def db():
    """A session on a freshly created schema."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client() -> TestClient:
    """
    A test client for the FastAPI application. The lifespan creates the
    tables and seeds the venues; they are dropped again afterwards.
    """
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


def make_token(sub: str, role: str) -> str:
    return jwt.encode({"sub": sub, "role": role}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    """Builds a bearer header for a caller with the given id and role."""

    def _headers(sub: str, role: str = "organizer") -> dict:
        return {"Authorization": f"Bearer {make_token(sub, role)}"}

    return _headers


@pytest.fixture
def organizer() -> TokenPayload:
    return TokenPayload(sub="org_1", role="organizer")


@pytest.fixture
def police() -> TokenPayload:
    return TokenPayload(sub="officer_1", role="police")
