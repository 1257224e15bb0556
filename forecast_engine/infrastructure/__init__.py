"""
Infrastructure Layer - Persistence for the forecast engine.

Components:
- repositories/: SQLAlchemy data access per table
- persistence: ForecastPersistence interface and its implementations
"""

from .persistence import (
    ForecastPersistence,
    InMemoryForecastPersistence,
    SqlAlchemyForecastPersistence,
)

__all__ = [
    'ForecastPersistence',
    'InMemoryForecastPersistence',
    'SqlAlchemyForecastPersistence',
]
