"""
CLI Module - Command-line interface for the forecast engine.

Provides management commands for:
- Forecast records and totals
- AI forecast reviews
- Snapshot commits and export
"""

from .forecast_commands import forecast, register_commands

__all__ = ['forecast', 'register_commands']
