"""
Main FastAPI Application for the forecast engine.
"""
import logging

from fastapi import FastAPI

from forecast_engine import __version__
from forecast_engine.models import init_db, get_db
from forecast_engine.api.v1 import api_router as v1_router

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Forecast Distribution & Acknowledgment Engine",
    description="Rolling 12-month budget forecasts with an acknowledgment gate for AI forecasts",
    version=__version__
)

app.include_router(v1_router)


@app.on_event("startup")
def on_startup():
    """Create tables on startup."""
    init_db()
    logger.info("Forecast engine started")


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


__all__ = ['app', 'get_db']
