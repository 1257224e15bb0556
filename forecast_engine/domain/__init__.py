"""
Domain Layer - Core entities and services for forecast distribution.

This module contains:
- entities/: ForecastRecord, Acknowledgment and their enums
- services/: Distribution calculator, variance engine, record store,
  acknowledgment workflow and the per-project ForecastSession
"""

from .entities import (
    ForecastRecord, ForecastType, ForecastMethod,
    Acknowledgment, AcknowledgmentState,
)

__all__ = [
    'ForecastRecord', 'ForecastType', 'ForecastMethod',
    'Acknowledgment', 'AcknowledgmentState',
]
