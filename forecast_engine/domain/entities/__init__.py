"""
Domain Entities - Core business objects.
"""

from .forecast_record import (
    ForecastRecord, ForecastType, ForecastMethod,
    coerce_budget, coerce_weight, rolling_month_keys, month_label,
)
from .acknowledgment import Acknowledgment, AcknowledgmentState

__all__ = [
    'ForecastRecord', 'ForecastType', 'ForecastMethod',
    'coerce_budget', 'coerce_weight', 'rolling_month_keys', 'month_label',
    'Acknowledgment', 'AcknowledgmentState',
]
