"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .forecast_repository import ForecastRecordRepository
from .acknowledgment_repository import AcknowledgmentRepository, PreviousMethodRepository

__all__ = [
    'BaseRepository',
    'ForecastRecordRepository',
    'AcknowledgmentRepository',
    'PreviousMethodRepository',
]
