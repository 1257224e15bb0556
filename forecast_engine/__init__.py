"""
Forecast Distribution & Acknowledgment Engine.

Spreads construction budgets across a rolling 12-month window, tracks
variance against the last committed forecast, and gates AI forecast
recommendations behind an acknowledgment workflow.
"""

__version__ = "1.0.0"
