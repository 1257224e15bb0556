"""
Shared pytest setup: point the application engine at a throwaway database.
"""
import os

os.environ.setdefault("FORECAST_DATABASE_URL", "sqlite:///./test_forecast_engine.db")
