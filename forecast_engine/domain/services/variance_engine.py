"""
Variance Engine - Period-over-period variance and table totals.

Implements:
- Monthly variance: current[k] - previous[k], missing months treated as 0
- Aggregate totals: summary fields and every monthly column summed
  independently across the included records
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional

if TYPE_CHECKING:
    from ..entities.forecast_record import ForecastRecord


def variance(
    current: Mapping[str, float],
    previous: Mapping[str, float],
) -> Dict[str, float]:
    """
    Per-month variance between two distributions.

    Keys follow the current map's order, then any keys only present in
    the previous map. Never raises; gaps are filled with 0.
    """
    keys = list(current) + [k for k in previous if k not in current]
    return {
        key: float(current.get(key, 0.0) or 0.0) - float(previous.get(key, 0.0) or 0.0)
        for key in keys
    }


@dataclass
class ForecastTotals:
    """Footer totals for a set of forecast records."""
    budget: float = 0.0
    cost_to_complete: float = 0.0
    estimated_at_completion: float = 0.0
    variance: float = 0.0
    record_count: int = 0
    monthly_actual: Dict[str, float] = field(default_factory=dict)
    monthly_previous: Dict[str, float] = field(default_factory=dict)
    monthly_variance: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'budget': self.budget,
            'cost_to_complete': self.cost_to_complete,
            'estimated_at_completion': self.estimated_at_completion,
            'variance': self.variance,
            'record_count': self.record_count,
            'monthly_actual': dict(self.monthly_actual),
            'monthly_previous': dict(self.monthly_previous),
            'monthly_variance': dict(self.monthly_variance),
        }


def aggregate_totals(
    records: Iterable["ForecastRecord"],
    month_keys: Optional[List[str]] = None,
) -> ForecastTotals:
    """
    Sum summary fields and monthly columns across records.

    Args:
        records: Records to include
        month_keys: Column order for the monthly totals. Defaults to the
            union of the records' keys in first-seen order.

    Returns:
        ForecastTotals with every column summed independently
    """
    totals = ForecastTotals()
    actual: Dict[str, float] = defaultdict(float)
    previous: Dict[str, float] = defaultdict(float)
    monthly_var: Dict[str, float] = defaultdict(float)
    seen_keys: List[str] = []

    for record in records:
        totals.record_count += 1
        totals.budget += record.budget
        totals.cost_to_complete += record.cost_to_complete
        totals.estimated_at_completion += record.estimated_at_completion
        totals.variance += record.variance

        record_variance = variance(
            record.monthly_distribution, record.previous_monthly_distribution
        )
        for key, amount in record_variance.items():
            if key not in actual:
                seen_keys.append(key)
            actual[key] += record.monthly_distribution.get(key, 0.0)
            previous[key] += record.previous_monthly_distribution.get(key, 0.0)
            monthly_var[key] += amount

    columns = month_keys if month_keys is not None else seen_keys
    totals.monthly_actual = {k: actual.get(k, 0.0) for k in columns}
    totals.monthly_previous = {k: previous.get(k, 0.0) for k in columns}
    totals.monthly_variance = {k: monthly_var.get(k, 0.0) for k in columns}
    return totals
