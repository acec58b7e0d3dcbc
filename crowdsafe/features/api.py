# crowdsafe/features/api.py
from fastapi import APIRouter

from crowdsafe.features.lifecycle.router import router as lifecycle_router
from crowdsafe.features.risk.router import router as risk_router

api_router = APIRouter()

api_router.include_router(risk_router)
api_router.include_router(lifecycle_router)
