# activity_stats/api/v1/api.py

from fastapi import APIRouter
from activity_stats.api.v1.endpoints import health, stats

# This is the main router for the v1 API.
api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(stats.router)
