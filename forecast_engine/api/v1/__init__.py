"""
API v1 - REST endpoints for the forecast engine.

Implements:
- Forecast record endpoints (list, upsert, month edit, totals, commit)
- AI forecast review endpoints (review, acknowledge, reject, close)
- Acknowledgment log and CSV export
"""
from fastapi import APIRouter

from .forecasts import router as forecasts_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(forecasts_router, prefix="/projects", tags=["Forecasts"])
