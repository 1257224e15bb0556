"""
Domain Services - Distribution, variance, record storage and the
AI forecast acknowledgment workflow.
"""

from .distribution_calculator import (
    CurveParameters, DEFAULT_CURVE_PARAMETERS,
    distribute, distribute_to_months, shape_factors, weight_adjustments, ai_noise,
)
from .variance_engine import variance, aggregate_totals, ForecastTotals
from .record_store import ForecastRecordStore
from .rationale_provider import Rationale, RationaleProvider, StaticRationaleProvider
from .acknowledgment_store import AcknowledgmentStore
from .acknowledgment_state_machine import AcknowledgmentStateMachine
from .method_change_orchestrator import MethodChangeOrchestrator, MethodChangeResult
from .forecast_session import ForecastSession
from .export_service import ForecastExportService

__all__ = [
    'CurveParameters',
    'DEFAULT_CURVE_PARAMETERS',
    'distribute',
    'distribute_to_months',
    'shape_factors',
    'weight_adjustments',
    'ai_noise',
    'variance',
    'aggregate_totals',
    'ForecastTotals',
    'ForecastRecordStore',
    'Rationale',
    'RationaleProvider',
    'StaticRationaleProvider',
    'AcknowledgmentStore',
    'AcknowledgmentStateMachine',
    'MethodChangeOrchestrator',
    'MethodChangeResult',
    'ForecastSession',
    'ForecastExportService',
]
